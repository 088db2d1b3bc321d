"""Runtime dependency checks for CLI commands."""

from __future__ import annotations

import importlib.util

from reportexport.exceptions import DependencyError

_EXPORT_MODULES = {
    "playwright": "playwright",
    "pymupdf": "fitz",
    "pillow": "PIL",
    "httpx": "httpx",
}


def _is_module_available(module_name: str) -> bool:
    """Check whether a module can be imported.

    Args:
        module_name (str): Python module name.

    Returns:
        bool: True if import spec exists.
    """
    return importlib.util.find_spec(module_name) is not None


def ensure_cli_dependencies_for_export() -> None:
    """Validate required runtime dependencies for `reportexport export`.

    Raises:
        DependencyError: If one or more required modules are missing.
    """
    missing = [package for package, module in _EXPORT_MODULES.items() if not _is_module_available(module)]
    if missing:
        raise DependencyError(missing_package=missing, message="export")
