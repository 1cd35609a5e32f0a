"""
Captured frames as they travel from a source to the display/record sinks.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass
class FrameData:
    """
    One captured image and where/when it was taken.

    ``frame`` is the live buffer, (H, W, 3) or (H, W, 4) uint8. The detector
    draws on it in place, so sinks see the annotated pixels.
    """
    frame: np.ndarray
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None

    @classmethod
    def capture(
        cls,
        frame: np.ndarray,
        source: Optional[str] = None,
        frame_index: int = 0,
    ) -> "FrameData":
        """Wrap ``frame`` stamped with the current time."""
        return cls(frame=frame, timestamp=time.time(), frame_index=frame_index, source=source)

    @property
    def width(self) -> int:
        return self.frame.shape[1]

    @property
    def height(self) -> int:
        return self.frame.shape[0]

    @property
    def channels(self) -> int:
        return 1 if self.frame.ndim == 2 else self.frame.shape[2]

    @property
    def has_alpha(self) -> bool:
        return self.channels == 4
