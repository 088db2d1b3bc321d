"""Core domain model exports."""

from reportexport.typing.models.capture import CaptureSession, Chunk, ChunkSpan, SurfaceSize
from reportexport.typing.models.content import (
    IMAGE_KEYS,
    REDACTION_PLACEHOLDER,
    ContentRecord,
    ContentValue,
    RedactionPolicy,
)
from reportexport.typing.models.export import ExportOptions, ProgressCallback, ProgressReport
from reportexport.typing.models.pages import PageSlice, SliceSpan, TextLine, TextPage

__all__ = [
    "IMAGE_KEYS",
    "REDACTION_PLACEHOLDER",
    "CaptureSession",
    "Chunk",
    "ChunkSpan",
    "ContentRecord",
    "ContentValue",
    "ExportOptions",
    "PageSlice",
    "ProgressCallback",
    "ProgressReport",
    "RedactionPolicy",
    "SliceSpan",
    "SurfaceSize",
    "TextLine",
    "TextPage",
]
