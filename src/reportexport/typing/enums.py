"""Project enums."""

from __future__ import annotations

from enum import StrEnum

import fitz


class _EnumMixin(StrEnum):
    """Shared conversion helpers for user-facing enums."""

    @classmethod
    def from_str(cls, value: str) -> _EnumMixin:
        """Parse enum from string.

        Args:
            value: Raw string value.

        Raises:
            ValueError: If the value is not supported.

        Returns:
            _EnumMixin: Parsed enum value.
        """
        try:
            return cls(value.strip().lower())
        except ValueError as exc:
            supported = ", ".join(member.value for member in cls)
            raise ValueError(
                f"Unsupported {cls.__name__} value '{value}'. Expected one of: {supported}",
            ) from exc

    def to_str(self) -> str:
        """Return string representation.

        Returns:
            str: Enum string value.
        """
        return self.value


class PageFormat(_EnumMixin):
    """Physical output page formats (portrait)."""

    LETTER = "letter"
    A4 = "a4"
    LEGAL = "legal"

    def size_points(self) -> tuple[float, float]:
        """Return the portrait page size in PDF points.

        Returns:
            tuple[float, float]: Width and height.
        """
        width, height = fitz.paper_size(self.value)
        return float(width), float(height)


class SectionStatus(_EnumMixin):
    """Outcome of one section fetch."""

    OK = "ok"
    FAILED = "failed"
    CANCELLED = "cancelled"
