"""
Frame -> network input tensor.
"""

from __future__ import annotations

import cv2
import numpy as np

from models.config import PreprocessConfig
from .errors import PreprocessError


# Layout of the tensor handed to the inference engine (OpenCV DNN convention).
TENSOR_LAYOUT = "NCHW"


class FrameTensorBuilder:
    """
    Converts interleaved 3/4-channel frames into normalized NCHW tensors.

    Equivalent to cv2.dnn.blobFromImage with swapRB=False and crop=False:
    alpha is dropped, the image is resized bilinearly to the target size and
    each value becomes (pixel - mean_value) * scale_factor. The input frame
    is only read.
    """

    def __init__(self, config: PreprocessConfig | None = None):
        self.config = config or PreprocessConfig()

    def __call__(self, frame: np.ndarray) -> np.ndarray:
        cfg = self.config
        return self.build(frame, cfg.width, cfg.height, cfg.scale_factor, cfg.mean_value)

    @staticmethod
    def build(
        frame: np.ndarray,
        target_width: int,
        target_height: int,
        scale_factor: float,
        mean_value: float,
    ) -> np.ndarray:
        """
        Build a (1, 3, target_height, target_width) float32 tensor.

        Raises:
            PreprocessError: On unsupported frame shapes, invalid target
                sizes or OpenCV failures.
        """
        if frame is None or frame.ndim != 3 or frame.shape[2] not in (3, 4):
            shape = None if frame is None else frame.shape
            raise PreprocessError(f"Expected a 3 or 4 channel frame, got shape {shape}")
        if frame.shape[0] == 0 or frame.shape[1] == 0:
            raise PreprocessError(f"Empty frame: shape {frame.shape}")
        if target_width <= 0 or target_height <= 0:
            raise PreprocessError(f"Invalid target size {target_width}x{target_height}")

        try:
            if frame.shape[2] == 4:
                # cvtColor without dst allocates, so the caller's frame keeps its alpha.
                image = cv2.cvtColor(frame, cv2.COLOR_RGBA2RGB)
            else:
                image = frame
            return cv2.dnn.blobFromImage(
                image,
                scalefactor=scale_factor,
                size=(target_width, target_height),
                mean=(mean_value, mean_value, mean_value),
                swapRB=False,
                crop=False,
            )
        except cv2.error as e:
            raise PreprocessError(f"Failed to build input tensor: {e}") from e
