"""
Frame source interface.

The detector never owns the camera: a source hands out FrameData one frame
at a time and the stream engine passes each frame on to the sinks once it is
annotated. Sources drop frames themselves if they outpace the pipeline;
nothing is queued on the pipeline side.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import numpy as np

from models.frame import FrameData


@dataclass
class ObservationConfig:
    """
    Settings every frame source understands.

    Attributes:
        source_id: Name stamped on each FrameData and used in log lines.
        resolution: Requested (width, height); None keeps the device default.
        fps: Requested frame rate; None keeps the device default.
    """
    source_id: str = "camera"
    resolution: Optional[Tuple[int, int]] = None
    fps: Optional[int] = None


class ObservationSource(ABC):
    """
    A camera, stream or file producing frames.

    Subclasses supply the device hooks (_open, _grab, _close) and set
    _exhausted when a finite source runs out; this class keeps the open flag
    and numbers the frames it hands out, starting at 1 after every open().
    Usable as a context manager and, once open, as an iterator that ends at
    the first missing frame.
    """

    def __init__(self, config: ObservationConfig):
        self.config = config
        self._opened = False
        self._frames_read = 0
        self._exhausted = False

    @property
    def source_id(self) -> str:
        return self.config.source_id

    @property
    def is_open(self) -> bool:
        return self._opened

    @property
    def frame_index(self) -> int:
        """Index of the last frame handed out; 0 right after open()."""
        return self._frames_read

    @property
    def exhausted(self) -> bool:
        """True once a finite source (e.g. a video file) has no frames left."""
        return self._exhausted

    def open(self) -> None:
        """
        Raises:
            RuntimeError: If the device cannot be acquired.
        """
        if self._opened:
            return
        self._open()
        self._opened = True
        self._frames_read = 0
        self._exhausted = False

    def read(self) -> Optional[FrameData]:
        """Next frame, or None if the source is closed or has nothing to give."""
        if not self._opened:
            return None
        image = self._grab()
        if image is None:
            return None
        self._frames_read += 1
        return FrameData.capture(image, source=self.source_id, frame_index=self._frames_read)

    def close(self) -> None:
        """Release the device. Safe to call more than once."""
        self._close()
        self._opened = False

    @abstractmethod
    def _open(self) -> None:
        ...

    @abstractmethod
    def _grab(self) -> Optional[np.ndarray]:
        ...

    @abstractmethod
    def _close(self) -> None:
        ...

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[FrameData]:
        if not self._opened:
            raise RuntimeError(f"{self.source_id}: call open() before iterating")
        return iter(self.read, None)
