"""Reassembly of captured chunks into one full-height bitmap."""

from __future__ import annotations

from typing import TYPE_CHECKING

from PIL import Image, ImageColor

from reportexport.logging import get_logger

if TYPE_CHECKING:
    from reportexport.typing.models import CaptureSession

logger = get_logger(__name__)


def compose_chunks(session: CaptureSession, *, background: str) -> Image.Image:
    """Draw every chunk of the session onto a single background-filled bitmap.

    Chunks are drawn in ascending offset order at `round(offset * scale)`.
    The session's chunk list is emptied afterwards; chunks must not be read
    again once composited.

    Args:
        session (CaptureSession): Session holding the captured chunks.
        background (str): Fill colour, e.g. `#0f1118`.

    Returns:
        Image.Image: RGB bitmap of size `session.scaled_size`.
    """
    width, height = session.scaled_size
    composite = Image.new("RGB", (width, height), ImageColor.getrgb(background))

    for chunk in sorted(session.chunks, key=lambda item: item.offset):
        composite.paste(chunk.bitmap, (0, round(chunk.offset * session.scale)))
        chunk.bitmap.close()

    logger.info(
        "Chunks composited",
        extra={"chunks": len(session.chunks), "width": width, "height": height},
    )
    session.chunks.clear()
    return composite
