"""
Detection models for decoded network output.

Boxes come in two coordinate systems:
- NormalizedBox: fractions of frame width/height, as emitted by the network.
- PixelBox: integer pixel coordinates in the source frame.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class NormalizedBox:
    """
    A bounding box in normalized [0, 1] coordinates.

    Attributes:
        left: Left edge as a fraction of frame width.
        top: Top edge as a fraction of frame height.
        right: Right edge as a fraction of frame width.
        bottom: Bottom edge as a fraction of frame height.
    """
    left: float
    top: float
    right: float
    bottom: float

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (left, top, right, bottom) tuple."""
        return (self.left, self.top, self.right, self.bottom)


@dataclass(frozen=True)
class PixelBox:
    """
    A bounding box in integer pixel coordinates.

    Values are not clamped; a box may extend past the frame edges.
    """
    left: int
    top: int
    right: int
    bottom: int

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    def as_tuple(self) -> Tuple[int, int, int, int]:
        """Return as (left, top, right, bottom) tuple."""
        return (self.left, self.top, self.right, self.bottom)

    def is_within(self, frame_width: int, frame_height: int) -> bool:
        """True if every corner lies inside the frame."""
        return (
            0 <= self.left <= frame_width
            and 0 <= self.right <= frame_width
            and 0 <= self.top <= frame_height
            and 0 <= self.bottom <= frame_height
        )

    def clamped(self, frame_width: int, frame_height: int) -> "PixelBox":
        """Return a copy with every coordinate clamped to the frame."""
        def clamp(value: int, upper: int) -> int:
            return max(0, min(value, upper))

        return PixelBox(
            left=clamp(self.left, frame_width),
            top=clamp(self.top, frame_height),
            right=clamp(self.right, frame_width),
            bottom=clamp(self.bottom, frame_height),
        )


@dataclass(frozen=True)
class Detection:
    """
    A single detection decoded from the network output.

    Attributes:
        class_id: Index into the label table (not validated here).
        confidence: Score as read from the output buffer; the scalar keeps
            the buffer's dtype so its printed form matches the backend value.
        box: Normalized bounding box.
    """
    class_id: int
    confidence: float
    box: NormalizedBox
