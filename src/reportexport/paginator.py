"""Re-tiling of the composite bitmap into output-page-shaped slices."""

from __future__ import annotations

import io
import math
from typing import TYPE_CHECKING

from PIL import Image, ImageColor

from reportexport.logging import get_logger
from reportexport.typing.models import PageSlice, SliceSpan

if TYPE_CHECKING:
    from collections.abc import Iterator

    from reportexport.progress import ProgressScope

logger = get_logger(__name__)


def page_scale_factor(composite_width: int, page_width: float) -> float:
    """Return the factor mapping composite pixels to output units."""
    if composite_width <= 0:
        raise ValueError("composite_width must be positive")  # noqa: TRY003
    return page_width / composite_width


def plan_page_slices(
    composite_width: int,
    composite_height: int,
    *,
    page_width: float,
    page_height: float,
) -> list[SliceSpan]:
    """Split the composite height into page-sized source rectangles.

    One output page holds `page_height / scale_factor` composite pixels, so
    `ceil(composite_height / scaled_page_height)` slices are produced. Slice
    edges are floored to whole pixels and the last slice ends exactly at the
    composite bottom, keeping slices contiguous and non-overlapping.

    Args:
        composite_width (int): Composite width in pixels.
        composite_height (int): Composite height in pixels.
        page_width (float): Output page width.
        page_height (float): Output page height.

    Raises:
        ValueError: If a dimension is not positive.

    Returns:
        list[SliceSpan]: Slices in ascending order.
    """
    if page_width <= 0 or page_height <= 0:
        raise ValueError("page dimensions must be positive")  # noqa: TRY003
    if composite_height < 0:
        raise ValueError("composite_height must not be negative")  # noqa: TRY003

    scaled_page_height = page_height / page_scale_factor(composite_width, page_width)
    total_pages = math.ceil(composite_height / scaled_page_height)

    spans: list[SliceSpan] = []
    for index in range(total_pages):
        top = math.floor(index * scaled_page_height)
        bottom = composite_height if index == total_pages - 1 else math.floor((index + 1) * scaled_page_height)
        spans.append(SliceSpan(index=index, top=top, bottom=min(bottom, composite_height)))
    return spans


def _encode_jpeg(image: Image.Image, quality: int) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def paginate_composite(
    composite: Image.Image,
    *,
    page_width: float,
    page_height: float,
    background: str,
    jpeg_quality: int = 90,
    progress: ProgressScope | None = None,
) -> Iterator[PageSlice]:
    """Yield one rendered page slice per output page, top to bottom.

    Every slice is drawn over a background-filled base so a short last page
    never shows unpainted pixels.

    Args:
        composite (Image.Image): Full-height composite bitmap.
        page_width (float): Output page width in points.
        page_height (float): Output page height in points.
        background (str): Fill colour.
        jpeg_quality (int): JPEG quality of the encoded slices.
        progress (ProgressScope | None): Progress sink receiving `pages done / total`.

    Yields:
        PageSlice: Encoded slice and its placement height in points.
    """
    width, height = composite.size
    scale_factor = page_scale_factor(width, page_width)
    spans = plan_page_slices(width, height, page_width=page_width, page_height=page_height)
    fill = ImageColor.getrgb(background)
    total = len(spans)
    logger.info("Paginating composite", extra={"pages": total, "width": width, "height": height})

    for span in spans:
        if progress is not None:
            progress.update(span.index / total * 100, f"Creating PDF page {span.index + 1} of {total}...")

        page_image = Image.new("RGB", (width, span.height), fill)
        with composite.crop((0, span.top, width, span.bottom)) as region:
            page_image.paste(region, (0, 0))
        encoded = _encode_jpeg(page_image, jpeg_quality)
        page_image.close()

        yield PageSlice(span=span, image_bytes=encoded, placement_height=span.height * scale_factor)

        if progress is not None:
            progress.update((span.index + 1) / total * 100, f"Created PDF page {span.index + 1} of {total}")
