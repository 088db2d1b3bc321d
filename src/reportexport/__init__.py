"""ReportExport package."""

from reportexport.exceptions import (
    CaptureFailure,
    ContentFetchFailure,
    DependencyError,
    ExportCancelled,
    PackageError,
    SandboxAccessDenied,
    SandboxError,
    SandboxLoadTimeout,
    SettingsError,
)
from reportexport.logging import configure_logging, get_logger
from reportexport.settings import Settings, get_settings

__version__ = "0.1.0"

# Initialize package logger at import time via `get_logger`.
logger = get_logger("reportexport")

from reportexport.cancellation import CancelToken  # noqa: E402
from reportexport.pipeline import export_document  # noqa: E402
from reportexport.typing.models import ExportOptions  # noqa: E402

__all__ = [
    "CancelToken",
    "CaptureFailure",
    "ContentFetchFailure",
    "DependencyError",
    "ExportCancelled",
    "ExportOptions",
    "PackageError",
    "SandboxAccessDenied",
    "SandboxError",
    "SandboxLoadTimeout",
    "Settings",
    "SettingsError",
    "__version__",
    "configure_logging",
    "export_document",
    "get_logger",
    "get_settings",
    "logger",
]
