"""Monotonic progress reporting shared by every export stage."""

from __future__ import annotations

from typing import TYPE_CHECKING

from reportexport.logging import get_logger
from reportexport.typing.models import ProgressReport

if TYPE_CHECKING:
    from reportexport.typing.models import ProgressCallback

logger = get_logger(__name__)


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


class ProgressScope:
    """View of the run's progress mapped onto the `[start, end]` sub-range.

    Stages report `0..100` of their own work; the scope translates it into the
    slice of the overall run the orchestrator gave them.
    """

    def __init__(self, sink: ProgressReporter, start: float, end: float) -> None:
        """Initialize scope.

        Args:
            sink (ProgressReporter): Root reporter receiving mapped updates.
            start (float): Overall percent reported for local 0.
            end (float): Overall percent reported for local 100.
        """
        self._sink = sink
        self._start = start
        self._end = end

    def _map(self, percent: float) -> float:
        return self._start + (self._end - self._start) * _clamp(percent, 0.0, 100.0) / 100.0

    def update(self, percent: float, status: str) -> None:
        """Report local progress.

        Args:
            percent (float): Local progress in `[0, 100]`.
            status (str): Human-readable status.
        """
        self._sink.emit(self._map(percent), status)

    def scoped(self, start: float, end: float) -> ProgressScope:
        """Return a nested scope covering `[start, end]` of this one."""
        return ProgressScope(self._sink, self._map(start), self._map(end))


class ProgressReporter(ProgressScope):
    """Root progress sink; clamps updates so the percent never decreases."""

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        """Initialize reporter.

        Args:
            callback (ProgressCallback | None): Invoked synchronously with `(percent, status)`.
        """
        super().__init__(self, 0.0, 100.0)
        self._callback = callback
        self._report = ProgressReport(percent=0.0, status="Starting")

    @property
    def report(self) -> ProgressReport:
        """Return the latest progress report."""
        return self._report

    def emit(self, percent: float, status: str) -> None:
        """Publish an overall progress value.

        Values below the last published percent are raised to it.

        Args:
            percent (float): Overall progress.
            status (str): Human-readable status.
        """
        value = _clamp(percent, self._report.percent, 100.0)
        self._report = ProgressReport(percent=value, status=status)
        logger.debug("Export progress", extra={"percent": round(value, 1), "status": status})
        if self._callback is None:
            return
        try:
            self._callback(value, status)
        except Exception:
            logger.warning("Progress callback failed", exc_info=True)

    def finish(self, status: str = "Complete!") -> None:
        """Publish 100%."""
        self.emit(100.0, status)
