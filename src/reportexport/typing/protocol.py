"""Interfaces of the external collaborators."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Self

if TYPE_CHECKING:
    from types import TracebackType

    from reportexport.typing.models import ContentValue, SurfaceSize


class ContentStore(Protocol):
    """Source of report section data."""

    async def fetch_section(self, name: str) -> ContentValue:
        """Fetch one report section.

        Args:
            name: Section name, e.g. `hero` or `impactSection`.

        Returns:
            ContentValue: Section payload, or None when the section does not exist.
        """


class RenderSandbox(Protocol):
    """Isolated off-screen surface rendering the report."""

    async def prepare(self) -> SurfaceSize:
        """Load the report, let it settle and size the surface to the full content.

        Returns:
            SurfaceSize: Full content width and height.
        """

    async def scroll_to(self, offset: int) -> int:
        """Scroll the surface to a vertical offset.

        Args:
            offset: Target offset in CSS pixels.

        Returns:
            int: Scroll position actually reached.
        """

    async def capture(self, offset: int, height: int) -> bytes:
        """Rasterize exactly `[offset, offset + height)` of the content.

        Args:
            offset: Interval start in CSS pixels.
            height: Interval height in CSS pixels.

        Returns:
            bytes: Encoded PNG bitmap at the device scale factor.
        """

    async def dispose(self) -> None:
        """Release the surface. Safe to call more than once."""

    async def __aenter__(self) -> Self:
        """Acquire the sandbox."""

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Dispose the sandbox on every exit path."""
