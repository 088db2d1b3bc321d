"""Capture session and chunk models."""

from PIL import Image
from pydantic import BaseModel, ConfigDict, Field


class SurfaceSize(BaseModel):
    """Settled size of the render surface, in CSS pixels."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    width: int = Field(ge=1)
    height: int = Field(ge=0)


class ChunkSpan(BaseModel):
    """Planned vertical interval `[offset, offset + height)` of the report."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    index: int = Field(ge=0)
    offset: int = Field(ge=0)
    height: int = Field(ge=1)

    @property
    def end(self) -> int:
        """Return the exclusive bottom edge of the span."""
        return self.offset + self.height


class Chunk(BaseModel):
    """One bounded-height raster capture."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    offset: int = Field(ge=0)
    height: int = Field(ge=1)
    bitmap: Image.Image


class CaptureSession(BaseModel):
    """State of one capture run."""

    model_config = ConfigDict(extra="forbid")

    width: int = Field(ge=1)
    chunk_height: int = Field(ge=1)
    scale: float = Field(gt=0)
    height: int = Field(default=0, ge=0)
    chunks: list[Chunk] = Field(default_factory=list)

    @property
    def scaled_size(self) -> tuple[int, int]:
        """Return the composite bitmap size in device pixels."""
        return round(self.width * self.scale), round(self.height * self.scale)
