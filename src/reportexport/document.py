"""PyMuPDF writer for the exported report document."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Self

import fitz

from reportexport.logging import get_logger
from reportexport.text_layout import MM, TextLayout

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import date, datetime
    from pathlib import Path
    from types import TracebackType

    from reportexport.typing.enums import PageFormat
    from reportexport.typing.models import PageSlice, TextPage

logger = get_logger(__name__)

_BLACK = (0.0, 0.0, 0.0)
_GREY = (100 / 255, 100 / 255, 100 / 255)
_WHITESPACE = re.compile(r"\s+")


def build_output_path(output_dir: Path, *, prefix: str, title_label: str, day: date) -> Path:
    """Return `<output_dir>/<prefix>-<label>-<YYYY-MM-DD>.pdf`, whitespace in the label turned into dashes.

    Args:
        output_dir (Path): Target directory.
        prefix (str): File name prefix.
        title_label (str): Report label, e.g. `2025`.
        day (date): Export date.

    Returns:
        Path: Output file path.
    """
    label = _WHITESPACE.sub("-", title_label.strip()) or "report"
    return output_dir / f"{prefix}-{label}-{day.isoformat()}.pdf"


class ReportDocument:
    """Portrait, fixed-size multi-page PDF being assembled by an export run."""

    def __init__(self, page_format: PageFormat) -> None:
        """Initialize an empty document.

        Args:
            page_format (PageFormat): Physical page format.
        """
        self._doc = fitz.open()
        self.page_format = page_format
        self.page_width, self.page_height = page_format.size_points()
        self.text_layout = TextLayout(page_width=self.page_width, page_height=self.page_height)

    @property
    def page_count(self) -> int:
        """Return the number of pages written so far."""
        return self._doc.page_count

    def _new_page(self) -> fitz.Page:
        return self._doc.new_page(width=self.page_width, height=self.page_height)

    def _centered(
        self,
        page: fitz.Page,
        text: str,
        *,
        y_mm: float,
        fontname: str,
        fontsize: float,
        color: tuple[float, float, float] = _BLACK,
    ) -> None:
        width = fitz.get_text_length(text, fontname=fontname, fontsize=fontsize)
        origin = fitz.Point((self.page_width - width) / 2, y_mm * MM)
        page.insert_text(origin, text, fontname=fontname, fontsize=fontsize, color=color)

    def add_title_page(self, *, title: str, title_label: str, generated_on: date) -> None:
        """Append the cover page."""
        page = self._new_page()
        self._centered(page, title, y_mm=60, fontname="hebo", fontsize=28)
        self._centered(page, title_label, y_mm=75, fontname="helv", fontsize=20)
        self._centered(page, f"Generated: {generated_on.isoformat()}", y_mm=90, fontname="helv", fontsize=12)
        self._centered(
            page,
            "This document contains the impact report as displayed on the web,",
            y_mm=120,
            fontname="helv",
            fontsize=10,
            color=_GREY,
        )
        self._centered(
            page,
            "followed by a full dump of all customization settings.",
            y_mm=127,
            fontname="helv",
            fontsize=10,
            color=_GREY,
        )

    def add_image_page(self, page_slice: PageSlice) -> None:
        """Append one captured page slice, anchored at the top-left and spanning the page width."""
        page = self._new_page()
        rect = fitz.Rect(0, 0, self.page_width, min(page_slice.placement_height, self.page_height))
        page.insert_image(rect, stream=page_slice.image_bytes, keep_proportion=False)

    def add_error_page(self, lines: Sequence[str], *, detail: str | None = None) -> None:
        """Append a page explaining why part of the export is missing.

        Args:
            lines (Sequence[str]): Message lines.
            detail (str | None): Optional technical detail printed below the message.
        """
        page = self._new_page()
        x = 20 * MM
        y = 30 * MM
        for line in lines:
            page.insert_text(fitz.Point(x, y), line, fontname="helv", fontsize=12, color=_GREY)
            y += 12 * MM
        if detail:
            page.insert_text(
                fitz.Point(x, y + 4 * MM),
                f"Technical details: {detail}",
                fontname="helv",
                fontsize=9,
                color=_GREY,
            )

    def add_dump_header_page(self, *, title_label: str, generated_at: datetime) -> None:
        """Append the page introducing the configuration data dump."""
        page = self._new_page()
        x = 20 * MM
        page.insert_text(fitz.Point(x, 30 * MM), "Configuration Data Dump", fontname="hebo", fontsize=22)
        notes = (
            "Full customization options from the content store (image URLs excluded)",
            f"Report: {title_label}",
            f"Generated: {generated_at.isoformat()}",
        )
        for offset, note in enumerate(notes):
            page.insert_text(fitz.Point(x, (42 + offset * 10) * MM), note, fontname="helv", fontsize=10, color=_GREY)

    def add_text_page(self, text_page: TextPage, layout: TextLayout | None = None) -> None:
        """Append one laid-out text page."""
        layout = layout or self.text_layout
        page = self._new_page()
        for line in text_page.lines:
            fontname, fontsize = (
                (layout.title_font, layout.title_size) if line.is_title else (layout.body_font, layout.body_size)
            )
            page.insert_text(fitz.Point(layout.margin, line.y), line.text, fontname=fontname, fontsize=fontsize)

    def truncate(self, page_count: int) -> None:
        """Drop every page after the first `page_count` pages."""
        if page_count < self._doc.page_count:
            self._doc.delete_pages(from_page=page_count, to_page=self._doc.page_count - 1)

    def save(self, path: Path) -> Path:
        """Write the document, creating the parent directory when needed.

        Args:
            path (Path): Target file.

        Returns:
            Path: The written file.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        self._doc.save(str(path), garbage=3, deflate=True)
        logger.info("Document saved", extra={"output_path": str(path), "pages": self.page_count})
        return path

    def close(self) -> None:
        """Release the underlying PyMuPDF document."""
        self._doc.close()

    def __enter__(self) -> Self:
        """Enter context."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close the document."""
        self.close()
