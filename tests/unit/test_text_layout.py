from __future__ import annotations

import pytest

from reportexport.progress import ProgressReporter
from reportexport.text_layout import (
    TextLayout,
    format_section,
    layout_section,
    layout_sections,
    section_title,
    wrap_line,
)

_LAYOUT = TextLayout(
    page_width=100,
    page_height=100,
    margin=10,
    line_height=10,
    title_offset=5,
    body_offset=15,
    continuation_offset=5,
)


def _measure(text: str) -> float:
    return float(len(text))


def test_section_title_capitalizes_first_letter() -> None:
    assert section_title("impactSection") == "Section: ImpactSection"


def test_format_section_keeps_non_ascii_and_order() -> None:
    text = format_section({"b": "Café", "a": [1, 2]})

    assert text.splitlines()[1] == '  "b": "Café",'
    assert text.index('"b"') < text.index('"a"')


def test_wrap_line_breaks_between_words() -> None:
    assert wrap_line("aaa bbb ccc", 7, _measure) == ["aaa bbb", "ccc"]


def test_wrap_line_keeps_indentation() -> None:
    assert wrap_line("  aaa bbb", 6, _measure) == ["  aaa", "  bbb"]


def test_wrap_line_hard_breaks_long_words() -> None:
    assert wrap_line("abcdefghij", 4, _measure) == ["abcd", "efgh", "ij"]


def test_wrap_line_returns_fitting_line_unchanged() -> None:
    assert wrap_line("short", 80, _measure) == ["short"]


def test_layout_section_places_title_then_body() -> None:
    pages = layout_section("hero", "one\ntwo", _LAYOUT, measure=_measure)

    assert len(pages) == 1
    title, first, second = pages[0].lines
    assert title.is_title
    assert title.text == "Section: Hero"
    assert title.y == pytest.approx(15)
    assert (first.text, first.y) == ("one", pytest.approx(25))
    assert (second.text, second.y) == ("two", pytest.approx(35))


def test_layout_section_breaks_pages_when_full() -> None:
    body = "\n".join(f"line{index}" for index in range(10))

    pages = layout_section("hero", body, _LAYOUT, measure=_measure)

    assert len(pages) == 2
    assert len(pages[0].lines) == 1 + 6
    assert [line.text for line in pages[1].lines] == ["line6", "line7", "line8", "line9"]
    assert pages[1].lines[0].y == pytest.approx(15)
    assert all(line.y + _LAYOUT.line_height <= _LAYOUT.bottom for page in pages for line in page.lines)


def test_layout_section_blank_lines_advance_half_a_line() -> None:
    pages = layout_section("hero", "a\n\nb", _LAYOUT, measure=_measure)

    body = pages[0].lines[1:]
    assert [line.text for line in body] == ["a", "b"]
    assert body[1].y - body[0].y == pytest.approx(15)


def test_layout_sections_skips_missing_sections() -> None:
    reporter = ProgressReporter()
    record = {"hero": {"title": "x"}, "footer": None}

    pages = layout_sections(record, _LAYOUT, measure=_measure, progress=reporter)

    assert {page.section for page in pages} == {"hero"}
    assert [line.text for line in pages[0].lines] == ["Section: Hero", "{", '  "title": "x"', "}"]
    assert reporter.report.percent == 100.0


def test_body_measure_uses_font_metrics() -> None:
    layout = TextLayout(page_width=612, page_height=792)

    measure = layout.body_measure()

    assert measure("abcd") == pytest.approx(2 * measure("ab"))
    assert measure("abcd") > 0
