"""Export request and progress models."""

from collections.abc import Callable
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from reportexport.cancellation import CancelToken

ProgressCallback = Callable[[float, str], None]


class ProgressReport(BaseModel):
    """Externally observable state of a running export."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    percent: float = Field(ge=0.0, le=100.0)
    status: str


class ExportOptions(BaseModel):
    """Options accepted by the export entry point."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    title_label: str = "Impact Report"
    on_progress: ProgressCallback | None = None
    cancel_token: CancelToken | None = None
    output_dir: Path | None = None
