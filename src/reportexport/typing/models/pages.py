"""Output page models."""

from pydantic import BaseModel, ConfigDict, Field


class SliceSpan(BaseModel):
    """Source rectangle of one image page within the composite bitmap."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    index: int = Field(ge=0)
    top: int = Field(ge=0)
    bottom: int = Field(ge=0)

    @property
    def height(self) -> int:
        """Return the slice height in composite pixels."""
        return self.bottom - self.top


class PageSlice(BaseModel):
    """One rendered image page ready to be placed in the output document."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    span: SliceSpan
    image_bytes: bytes
    placement_height: float = Field(gt=0)


class TextLine(BaseModel):
    """One visual line of text placed on a page."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    text: str
    y: float
    is_title: bool = False


class TextPage(BaseModel):
    """One output page of laid-out text."""

    model_config = ConfigDict(extra="forbid")

    section: str
    lines: list[TextLine] = Field(default_factory=list)
