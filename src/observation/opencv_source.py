"""
cv2.VideoCapture frame source.

device_id may be a camera index, a stream URL or a video file path.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import cv2
import numpy as np

from .base import ObservationConfig, ObservationSource
from .rtsp_utils import is_stream_url, sanitize_url


_ROTATIONS = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}

# (horizontal, vertical) -> cv2.flip code
_FLIP_CODES = {
    (True, False): 1,
    (False, True): 0,
    (True, True): -1,
}


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Attributes:
        device_id: Camera index, stream URL or file path.
        buffer_size: Capture buffer length for cameras; 1 keeps the feed live.
        max_retries: Open attempts before open() gives up.
        max_read_failures: Failed reads in a row a live source tolerates,
            reconnecting after each, before it stops trying.
        swap_rb: Swap red and blue.
        rotate: Clockwise rotation in degrees: 0, 90, 180 or 270.
        flip_horizontal: Mirror left/right.
        flip_vertical: Mirror top/bottom.
    """
    device_id: Union[int, str] = 0
    buffer_size: int = 1
    max_retries: int = 3
    max_read_failures: int = 3
    swap_rb: bool = False
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def from_camera_config(cls, camera_cfg: Dict[str, Any], source_id: str = "camera") -> "OpenCVSourceConfig":
        """Build from the ``camera`` section of the config dict."""
        defaults = cls()
        resolution = camera_cfg.get("resolution")
        return cls(
            source_id=source_id,
            resolution=tuple(resolution) if resolution else None,
            fps=camera_cfg.get("fps"),
            device_id=camera_cfg.get("device_id", defaults.device_id),
            buffer_size=camera_cfg.get("buffer_size", defaults.buffer_size),
            max_retries=camera_cfg.get("max_retries", defaults.max_retries),
            max_read_failures=camera_cfg.get("max_read_failures", defaults.max_read_failures),
            swap_rb=bool(camera_cfg.get("swap_rb", False)),
            rotate=camera_cfg.get("rotate") or 0,
            flip_horizontal=bool(camera_cfg.get("flip_horizontal", False)),
            flip_vertical=bool(camera_cfg.get("flip_vertical", False)),
        )


class OpenCVSource(ObservationSource):
    """
    BGR frames from cv2.VideoCapture.

    Files end at EOF. Cameras and streams reconnect after a failed read and
    report a missing frame for that read.

    Example:
        with OpenCVSource(OpenCVSourceConfig(device_id="clip.mp4")) as source:
            for frame_data in source:
                pipeline.process(frame_data.frame)
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._cap: Optional[cv2.VideoCapture] = None
        self._read_failures = 0

    @property
    def device_id(self) -> Union[int, str]:
        return self.config.device_id

    @property
    def device_label(self) -> str:
        """device_id safe for logs."""
        return sanitize_url(self.device_id)

    @property
    def is_stream(self) -> bool:
        return is_stream_url(self.device_id)

    @property
    def is_file(self) -> bool:
        if not isinstance(self.device_id, str) or self.is_stream:
            return False
        return os.path.exists(self.device_id)

    def _open(self) -> None:
        self._connect()
        logging.info(f"Source {self.source_id} opened: {self.device_label}")

    def _connect(self) -> None:
        """(Re)create the capture, backing off between attempts."""
        self._release()
        attempts = max(1, self.config.max_retries)

        for attempt in range(1, attempts + 1):
            cap = cv2.VideoCapture(self.device_id)
            if cap.isOpened():
                self._cap = cap
                break
            cap.release()
            logging.warning(f"Cannot open {self.device_label} (attempt {attempt}/{attempts})")
            if attempt < attempts:
                time.sleep(min(2 ** attempt, 10))
        else:
            raise RuntimeError(f"Cannot open {self.device_label} after {attempts} attempts")

        if isinstance(self.device_id, int):
            self._apply_capture_settings()
        self._read_failures = 0

    def _apply_capture_settings(self) -> None:
        cfg = self.config
        if cfg.resolution:
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, cfg.resolution[0])
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, cfg.resolution[1])
        if cfg.fps:
            self._cap.set(cv2.CAP_PROP_FPS, cfg.fps)
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, cfg.buffer_size)

        info = self.describe()
        logging.info(f"Camera running at {info['width']}x{info['height']} @ {info['fps']} fps")

    def _grab(self) -> Optional[np.ndarray]:
        if self._cap is None:
            return None

        ok, image = self._cap.read()
        if ok and image is not None:
            self._read_failures = 0
            return self._orient(image)

        if self.is_file:
            if not self._exhausted:
                logging.info(f"Source {self.source_id}: end of file")
            self._exhausted = True
            return None

        self._read_failures += 1
        limit = self.config.max_read_failures
        if self._read_failures > limit:
            logging.error(f"Source {self.source_id}: {self._read_failures} failed reads in a row")
            return None

        logging.warning(f"Source {self.source_id}: read failed ({self._read_failures}/{limit}), reconnecting")
        try:
            self._connect()
        except RuntimeError as e:
            logging.error(f"Reconnect failed: {e}")
        return None

    def _orient(self, image: np.ndarray) -> np.ndarray:
        """Apply rotate, then flip, then swap_rb."""
        cfg = self.config
        rotation = _ROTATIONS.get(cfg.rotate)
        if rotation is not None:
            image = cv2.rotate(image, rotation)
        flip_code = _FLIP_CODES.get((cfg.flip_horizontal, cfg.flip_vertical))
        if flip_code is not None:
            image = cv2.flip(image, flip_code)
        if cfg.swap_rb:
            image = np.ascontiguousarray(image[..., ::-1])
        return image

    def _close(self) -> None:
        if self._release():
            logging.info(f"Source {self.source_id} closed")

    def _release(self) -> bool:
        if self._cap is None:
            return False
        self._cap.release()
        self._cap = None
        return True

    def describe(self) -> Dict[str, Any]:
        """Size and rate reported by the open capture; empty when closed."""
        if self._cap is None:
            return {}
        return {
            "width": int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            "height": int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            "fps": self._cap.get(cv2.CAP_PROP_FPS),
        }
