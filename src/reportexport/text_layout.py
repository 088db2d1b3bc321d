"""Pagination of the redacted data dump into fixed-size text pages."""

from __future__ import annotations

import json
from collections.abc import Callable
from functools import partial
from typing import TYPE_CHECKING

import fitz
from pydantic import BaseModel, ConfigDict, Field

from reportexport.logging import get_logger
from reportexport.typing.models import TextLine, TextPage

if TYPE_CHECKING:
    from reportexport.progress import ProgressScope
    from reportexport.typing.models import ContentRecord, ContentValue

logger = get_logger(__name__)

MM = 72 / 25.4

Measure = Callable[[str], float]


class TextLayout(BaseModel):
    """Geometry and fonts of text pages, in PDF points."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    page_width: float = Field(gt=0)
    page_height: float = Field(gt=0)
    margin: float = Field(default=20 * MM, ge=0)
    line_height: float = Field(default=5 * MM, gt=0)
    blank_line_ratio: float = Field(default=0.5, gt=0, le=1)
    title_offset: float = Field(default=10 * MM, ge=0)
    body_offset: float = Field(default=25 * MM, ge=0)
    continuation_offset: float = Field(default=10 * MM, ge=0)
    title_font: str = "hebo"
    title_size: float = 16
    body_font: str = "cour"
    body_size: float = 9

    @property
    def usable_width(self) -> float:
        """Return the width available between margins."""
        return self.page_width - 2 * self.margin

    @property
    def bottom(self) -> float:
        """Return the lowest baseline a line may end on."""
        return self.page_height - self.margin

    def body_measure(self) -> Measure:
        """Return a text width function for the body font."""
        return partial(fitz.get_text_length, fontname=self.body_font, fontsize=self.body_size)


def section_title(name: str) -> str:
    """Return the page title of a section (`hero` -> `Section: Hero`)."""
    return f"Section: {name[:1].upper()}{name[1:]}"


def format_section(data: ContentValue) -> str:
    """Pretty-print a section payload as indented JSON."""
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _split_word(word: str, max_width: float, measure: Measure) -> list[str]:
    pieces: list[str] = []
    current = ""
    for char in word:
        if current and measure(current + char) > max_width:
            pieces.append(current)
            current = char
        else:
            current += char
    if current:
        pieces.append(current)
    return pieces


def wrap_line(line: str, max_width: float, measure: Measure) -> list[str]:
    """Wrap one source line into visual lines no wider than `max_width`.

    Breaks happen between words; a word wider than the page is broken between
    characters. Leading indentation is kept on every visual line.

    Args:
        line (str): Source line without newline.
        max_width (float): Available width.
        measure (Measure): Text width function.

    Returns:
        list[str]: Visual lines, in order.
    """
    if measure(line) <= max_width:
        return [line]

    stripped = line.lstrip(" ")
    indent = line[: len(line) - len(stripped)]
    if measure(indent) >= max_width / 2:
        indent = ""

    visual: list[str] = []
    current = indent
    for word in stripped.split(" "):
        candidate = f"{current} {word}" if current.strip() else f"{current}{word}"
        if measure(candidate) <= max_width:
            current = candidate
            continue
        if current.strip():
            visual.append(current)
        current = indent + word
        if measure(current) > max_width:
            *full, current = _split_word(current, max_width, measure)
            visual.extend(full)
    if current.strip():
        visual.append(current)
    return visual


class _PageCursor:
    """Places lines top to bottom, opening a page only when a line lands on it."""

    def __init__(self, section: str, layout: TextLayout) -> None:
        self.layout = layout
        self.section = section
        self.pages: list[TextPage] = []
        self._page: TextPage | None = None
        self.y = 0.0

    def break_if_full(self) -> None:
        if self.y + self.layout.line_height > self.layout.bottom:
            self._page = None
            self.y = self.layout.margin + self.layout.continuation_offset

    def place(self, text: str, *, is_title: bool = False) -> None:
        if self._page is None:
            self._page = TextPage(section=self.section)
            self.pages.append(self._page)
        self._page.lines.append(TextLine(text=text, y=self.y, is_title=is_title))


def layout_section(
    name: str,
    body: str,
    layout: TextLayout,
    *,
    measure: Measure | None = None,
) -> list[TextPage]:
    """Lay out one titled section across as many pages as it needs.

    Args:
        name (str): Section name; the title is derived from it.
        body (str): Pre-formatted multi-line text.
        layout (TextLayout): Page geometry.
        measure (Measure | None): Body text width function; PyMuPDF font metrics by default.

    Returns:
        list[TextPage]: Pages of the section, the first one carrying the title.
    """
    measure = measure or layout.body_measure()
    cursor = _PageCursor(name, layout)
    cursor.y = layout.margin + layout.title_offset
    cursor.place(section_title(name), is_title=True)
    cursor.y = layout.margin + layout.body_offset

    for line in body.split("\n"):
        cursor.break_if_full()
        if not line:
            cursor.y += layout.line_height * layout.blank_line_ratio
            continue
        for visual in wrap_line(line, layout.usable_width, measure):
            cursor.break_if_full()
            cursor.place(visual)
            cursor.y += layout.line_height

    return cursor.pages


def layout_sections(
    record: ContentRecord,
    layout: TextLayout,
    *,
    measure: Measure | None = None,
    progress: ProgressScope | None = None,
) -> list[TextPage]:
    """Lay out every present section of a record, in record order.

    Sections whose payload is None are skipped without emitting a page.

    Args:
        record (ContentRecord): Redacted section payloads.
        layout (TextLayout): Page geometry.
        measure (Measure | None): Body text width function.
        progress (ProgressScope | None): Progress sink receiving `sections done / total`.

    Returns:
        list[TextPage]: Pages of all sections.
    """
    pages: list[TextPage] = []
    total = len(record)
    for index, (name, data) in enumerate(record.items(), start=1):
        if progress is not None:
            progress.update(index / total * 100, f"Adding {name} configuration...")
        if data is None:
            logger.debug("Skipping empty section", extra={"section": name})
            continue
        pages.extend(layout_section(name, format_section(data), layout, measure=measure))
    return pages
