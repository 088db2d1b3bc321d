"""Report content value model and redaction policy."""

from pydantic import BaseModel, ConfigDict, Field

type ContentValue = dict[str, ContentValue] | list[ContentValue] | str | int | float | bool | None
type ContentRecord = dict[str, ContentValue]

IMAGE_KEYS: tuple[str, ...] = (
    "backgroundImage",
    "imageUrl",
    "backgroundImagePreview",
    "populationPhotos",
    "topCarouselImages",
    "bottomCarouselImages",
    "heroImage",
    "poster",
    "logo",
)
REDACTION_PLACEHOLDER = "[Image URL - not included in export]"


class RedactionPolicy(BaseModel):
    """Keys to elide from content before it is dumped as text."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    matchers: tuple[str, ...] = IMAGE_KEYS
    max_depth: int = Field(default=10, ge=0)
    placeholder: str = REDACTION_PLACEHOLDER
