"""Pytest marker auto-assignment by folder and shared fakes."""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from PIL import Image

from reportexport import logger
from reportexport.exceptions import CaptureFailure
from reportexport.typing.models import SurfaceSize


def _mark_tests_by_directory(
    config: pytest.Config,
    items: list[pytest.Item],
    marker: str,
) -> None:
    """Mark collected tests located under tests/<marker>/."""
    target_dir = Path(config.rootpath) / "tests" / marker
    target_dir = target_dir.resolve()

    for item in items:
        try:
            path = Path(str(item.fspath)).resolve()
        except Exception:
            logger.warning(
                f"Could not resolve path for test item {item.name!s}; skipping {marker!s} marker assignment",
            )
            continue

        if path == target_dir or target_dir in path.parents:
            item.add_marker(getattr(pytest.mark, marker))


def pytest_collection_modifyitems(
    config: pytest.Config,
    items: list[pytest.Item],
) -> None:
    """Apply directory-based markers to test items."""
    _mark_tests_by_directory(config, items, "unit")
    _mark_tests_by_directory(config, items, "integration")
    _mark_tests_by_directory(config, items, "end2end")


def png_bytes(width: int, height: int, color: tuple[int, int, int] = (200, 10, 10)) -> bytes:
    """Encode a solid-colour PNG."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeSandbox:
    """In-memory render surface producing solid PNG chunks."""

    def __init__(
        self,
        *,
        width: int = 100,
        height: int = 250,
        scale: float = 1.0,
        prepare_error: Exception | None = None,
        fail_at_offset: int | None = None,
    ) -> None:
        self.width = width
        self.height = height
        self.scale = scale
        self.prepare_error = prepare_error
        self.fail_at_offset = fail_at_offset
        self.scrolled: list[int] = []
        self.captured: list[tuple[int, int]] = []
        self.dispose_calls = 0

    async def prepare(self) -> SurfaceSize:
        if self.prepare_error is not None:
            raise self.prepare_error
        return SurfaceSize(width=self.width, height=self.height)

    async def scroll_to(self, offset: int) -> int:
        self.scrolled.append(offset)
        return 0

    async def capture(self, offset: int, height: int) -> bytes:
        if offset == self.fail_at_offset:
            raise CaptureFailure(message="boom", offset=offset)
        self.captured.append((offset, height))
        return png_bytes(round(self.width * self.scale), round(height * self.scale))

    async def dispose(self) -> None:
        self.dispose_calls += 1

    async def __aenter__(self) -> FakeSandbox:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()


class FakeContentStore:
    """Content store serving sections from a dict."""

    def __init__(self, sections: dict[str, object], *, failing: set[str] | None = None) -> None:
        self.sections = sections
        self.failing = failing or set()
        self.requested: list[str] = []

    async def fetch_section(self, name: str) -> object:
        self.requested.append(name)
        if name in self.failing:
            raise RuntimeError(f"{name} unavailable")
        return self.sections.get(name)


@pytest.fixture
def fake_sandbox_cls() -> type[FakeSandbox]:
    return FakeSandbox


@pytest.fixture
def fake_store_cls() -> type[FakeContentStore]:
    return FakeContentStore
