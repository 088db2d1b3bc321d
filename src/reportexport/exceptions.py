"""Package exceptions."""

from __future__ import annotations

from dataclasses import dataclass, field


class PackageError(Exception):
    """Root exception for the package."""


@dataclass(frozen=True)
class SettingsError(PackageError):
    """Raised when settings cannot be loaded or validated."""

    message: str = "Failed to load settings"
    exc: BaseException | None = None

    def __str__(self) -> str:
        """Return error message payload."""
        return f"{self.message}: {self.exc}" if self.exc else self.message


@dataclass(frozen=True)
class DependencyError(PackageError):
    """Raised when optional runtime dependencies are missing."""

    missing_package: list[str]
    message: str

    def __str__(self) -> str:
        """Return error message payload."""
        return f"Missing runtime dependencies for '{self.message}': {', '.join(self.missing_package)}"


class SandboxError(PackageError):
    """Base class for render sandbox failures."""


@dataclass(frozen=True)
class SandboxLoadTimeout(SandboxError):
    """Raised when the report page does not finish loading in time."""

    timeout_s: float
    url: str = ""

    def __str__(self) -> str:
        """Return error message payload."""
        target = f" ({self.url})" if self.url else ""
        return f"Report page load timed out after {self.timeout_s:g}s{target}"


@dataclass(frozen=True)
class SandboxAccessDenied(SandboxError):
    """Raised when the render surface cannot be reached or read."""

    message: str

    def __str__(self) -> str:
        """Return error message payload."""
        return self.message


@dataclass(frozen=True)
class CaptureFailure(PackageError):
    """Raised when one chunk of the report cannot be rasterized."""

    message: str
    offset: int | None = None

    def __str__(self) -> str:
        """Return error message payload."""
        if self.offset is None:
            return self.message
        return f"{self.message} (offset {self.offset}px)"


@dataclass(frozen=True)
class ContentFetchFailure(PackageError):
    """Raised when one or more report sections cannot be fetched."""

    message: str
    statuses: dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        """Return error message payload."""
        failed = [name for name, status in self.statuses.items() if status.startswith("failed")]
        if not failed:
            return self.message
        return f"{self.message}: {', '.join(failed)}"


@dataclass(frozen=True)
class ExportCancelled(PackageError):
    """Raised at a suspension point once the caller asked to stop."""

    stage: str = "export"

    def __str__(self) -> str:
        """Return error message payload."""
        return f"Export cancelled during {self.stage}"
