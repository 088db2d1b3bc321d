"""Typing-centric domain modules."""

from reportexport.typing.enums import PageFormat, SectionStatus
from reportexport.typing.models import (
    CaptureSession,
    Chunk,
    ChunkSpan,
    ContentRecord,
    ContentValue,
    ExportOptions,
    PageSlice,
    ProgressReport,
    RedactionPolicy,
    SliceSpan,
    SurfaceSize,
    TextLine,
    TextPage,
)
from reportexport.typing.protocol import ContentStore, RenderSandbox

__all__ = [
    "CaptureSession",
    "Chunk",
    "ChunkSpan",
    "ContentRecord",
    "ContentStore",
    "ContentValue",
    "ExportOptions",
    "PageFormat",
    "PageSlice",
    "ProgressReport",
    "RedactionPolicy",
    "RenderSandbox",
    "SectionStatus",
    "SliceSpan",
    "SurfaceSize",
    "TextLine",
    "TextPage",
]
