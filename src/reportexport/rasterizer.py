"""Sequential, bounded-height capture of the prepared report."""

from __future__ import annotations

import io
import math
from typing import TYPE_CHECKING

from PIL import Image, UnidentifiedImageError

from reportexport.cancellation import settle
from reportexport.exceptions import CaptureFailure
from reportexport.logging import get_logger
from reportexport.typing.models import Chunk, ChunkSpan

if TYPE_CHECKING:
    from reportexport.cancellation import CancelToken
    from reportexport.progress import ProgressScope
    from reportexport.typing.models import CaptureSession
    from reportexport.typing.protocol import RenderSandbox

logger = get_logger(__name__)


def plan_chunks(full_height: int, chunk_height: int) -> list[ChunkSpan]:
    """Partition `[0, full_height)` into contiguous spans of at most `chunk_height`.

    Args:
        full_height (int): Report height in CSS pixels.
        chunk_height (int): Maximum span height.

    Raises:
        ValueError: If `chunk_height` is not positive or `full_height` is negative.

    Returns:
        list[ChunkSpan]: `ceil(full_height / chunk_height)` spans in ascending offset order.
    """
    if chunk_height <= 0:
        raise ValueError("chunk_height must be positive")  # noqa: TRY003
    if full_height < 0:
        raise ValueError("full_height must not be negative")  # noqa: TRY003

    count = math.ceil(full_height / chunk_height)
    return [
        ChunkSpan(
            index=index,
            offset=index * chunk_height,
            height=min(chunk_height, full_height - index * chunk_height),
        )
        for index in range(count)
    ]


def _decode_chunk(payload: bytes, span: ChunkSpan) -> Image.Image:
    try:
        with Image.open(io.BytesIO(payload)) as raw:
            return raw.convert("RGB")
    except (UnidentifiedImageError, OSError) as exc:
        raise CaptureFailure(message="Captured chunk is not a readable image", offset=span.offset) from exc


async def capture_chunks(
    sandbox: RenderSandbox,
    session: CaptureSession,
    *,
    scroll_settle_s: float,
    progress: ProgressScope | None = None,
    cancel_token: CancelToken | None = None,
) -> list[Chunk]:
    """Capture the whole report one span at a time.

    Only one raw capture is in flight at a time, so peak memory is bounded by
    the chunk height whatever the report length.

    Args:
        sandbox (RenderSandbox): Prepared render surface.
        session (CaptureSession): Session whose `height` was discovered; chunks are appended to it.
        scroll_settle_s (float): Wait after each scroll before capturing.
        progress (ProgressScope | None): Progress sink receiving `completed / total`.
        cancel_token (CancelToken | None): Optional cancellation signal.

    Raises:
        CaptureFailure: If any span cannot be rasterized; no partial result is kept.

    Returns:
        list[Chunk]: The session's chunks, in ascending offset order.
    """
    spans = plan_chunks(session.height, session.chunk_height)
    total = len(spans)
    logger.info("Capturing report", extra={"chunks": total, "height": session.height})

    for span in spans:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled("chunk capture")
        if progress is not None:
            progress.update(span.index / total * 100, f"Capturing section {span.index + 1} of {total}...")

        await sandbox.scroll_to(span.offset)
        await settle(scroll_settle_s, cancel_token, stage="chunk capture")

        try:
            payload = await sandbox.capture(span.offset, span.height)
            bitmap = _decode_chunk(payload, span)
        except CaptureFailure:
            session.chunks.clear()
            raise
        except Exception as exc:
            session.chunks.clear()
            raise CaptureFailure(message=f"Rasterization failed: {exc}", offset=span.offset) from exc

        session.chunks.append(Chunk(offset=span.offset, height=span.height, bitmap=bitmap))
        logger.debug("Chunk captured", extra={"index": span.index, "offset": span.offset, "height": span.height})
        if progress is not None:
            progress.update((span.index + 1) / total * 100, f"Captured section {span.index + 1} of {total}")

    return session.chunks
