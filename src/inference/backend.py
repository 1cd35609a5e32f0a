"""
Inference engine interface.

The pipeline treats the network as an opaque capability: it hands over an
NCHW float32 tensor and gets back a flat buffer of 7-value detection records
[batch_index, class_id, confidence, x1, y1, x2, y2] with normalized
coordinates. Model loading and engine setup belong to the implementation.
"""

from __future__ import annotations

from typing import Protocol

import numpy as np


class InferenceEngine(Protocol):
    def set_input(self, tensor: np.ndarray) -> None:
        ...

    def forward(self) -> np.ndarray:
        ...
