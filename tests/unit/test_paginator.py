from __future__ import annotations

import io
import math

import pytest
from PIL import Image

from reportexport.paginator import page_scale_factor, paginate_composite, plan_page_slices
from reportexport.progress import ProgressReporter


@pytest.mark.parametrize("height", [1, 500, 1279, 1280, 1281, 10_000])
def test_plan_page_slices_are_contiguous(height: int) -> None:
    spans = plan_page_slices(640, height, page_width=320, page_height=640)

    scaled_page_height = 640 / (320 / 640)
    assert len(spans) == math.ceil(height / scaled_page_height)
    assert spans[0].top == 0
    for previous, current in zip(spans, spans[1:], strict=False):
        assert current.top == previous.bottom
    assert spans[-1].bottom == height


def test_plan_page_slices_with_fractional_page_height() -> None:
    spans = plan_page_slices(1680, 10_000, page_width=612, page_height=792)

    assert len(spans) == math.ceil(10_000 / (792 * 1680 / 612))
    assert all(span.height > 0 for span in spans)
    assert spans[-1].bottom == 10_000


def test_plan_page_slices_for_empty_composite() -> None:
    assert plan_page_slices(100, 0, page_width=612, page_height=792) == []


def test_page_scale_factor_rejects_empty_width() -> None:
    with pytest.raises(ValueError, match="composite_width"):
        page_scale_factor(0, 612)


def test_paginate_composite_yields_jpeg_pages() -> None:
    composite = Image.new("RGB", (200, 500), (10, 20, 30))
    reporter = ProgressReporter()

    pages = list(
        paginate_composite(
            composite,
            page_width=100,
            page_height=100,
            background="#0f1118",
            progress=reporter,
        ),
    )

    assert len(pages) == 3
    assert [page.span.height for page in pages] == [200, 200, 100]
    assert pages[0].placement_height == pytest.approx(100)
    assert pages[-1].placement_height == pytest.approx(50)
    with Image.open(io.BytesIO(pages[-1].image_bytes)) as decoded:
        assert decoded.format == "JPEG"
        assert decoded.size == (200, 100)
    assert reporter.report.percent == 100.0
