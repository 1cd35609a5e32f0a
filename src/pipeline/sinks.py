"""
Where annotated frames go: an OpenCV window and/or a video file.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Optional

import cv2

from models.frame import FrameData


class WindowSink:
    """Shows frames in a HighGUI window. Pressing 'q' asks the stream to stop."""

    def __init__(self, window_name: str = "Detector"):
        self.window_name = window_name

    def write(self, frame_data: FrameData) -> bool:
        cv2.imshow(self.window_name, frame_data.frame)
        return (cv2.waitKey(1) & 0xFF) != ord("q")

    def close(self) -> None:
        cv2.destroyAllWindows()


class VideoFileSink:
    """
    Appends frames to ``<output_dir>/detections_<timestamp>.avi`` (XVID).

    The writer is created on the first frame, sized to it. RGBA frames are
    written without their alpha channel.
    """

    def __init__(self, output_dir: str, fps: float = 30.0):
        self.output_dir = output_dir
        self.fps = fps
        self.path: Optional[str] = None
        self._writer: Optional[cv2.VideoWriter] = None

    def write(self, frame_data: FrameData) -> bool:
        image = frame_data.frame
        if frame_data.has_alpha:
            image = cv2.cvtColor(image, cv2.COLOR_RGBA2RGB)
        if self._writer is None:
            self._start(frame_data.width, frame_data.height)
        self._writer.write(image)
        return True

    def _start(self, width: int, height: int) -> None:
        os.makedirs(self.output_dir, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.path = os.path.join(self.output_dir, f"detections_{stamp}.avi")
        self._writer = cv2.VideoWriter(
            self.path, cv2.VideoWriter_fourcc(*"XVID"), self.fps, (width, height), True
        )
        logging.info(f"Recording to {self.path}")

    def close(self) -> None:
        if self._writer is None:
            return
        self._writer.release()
        self._writer = None
        logging.info(f"Recording saved: {self.path}")
