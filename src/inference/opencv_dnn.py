"""
OpenCV DNN inference engine.

Wraps a cv2.dnn.Net built from in-memory model buffers. Works with any
framework cv2.dnn.readNet understands; the default deployment is the
MobileNet-SSD Caffe model (deploy.prototxt + mobilenet_iter_73000.caffemodel)
whose DetectionOutput layer emits the 7-value records the decoder expects.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

import cv2
import numpy as np

from .backend import InferenceEngine


def load_model_bytes(path: str) -> np.ndarray:
    """
    Read a model file into a uint8 buffer suitable for cv2.dnn.readNet.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Model file not found: {path}")
    with open(path, "rb") as f:
        data = f.read()
    return np.frombuffer(data, dtype=np.uint8)


class OpenCvDnnEngine(InferenceEngine):
    """Synchronous forward passes through a cv2.dnn.Net; one call in flight at a time."""

    def __init__(self, net: Any):
        self._net = net
        self._has_input = False

    @classmethod
    def from_files(
        cls,
        framework: str,
        weights_path: str,
        config_path: Optional[str] = None,
    ) -> "OpenCvDnnEngine":
        """
        Build an engine from model files on disk.

        Args:
            framework: cv2.dnn framework name ("caffe", "tensorflow", "onnx", ...).
            weights_path: Trained weights (e.g. .caffemodel).
            config_path: Network description (e.g. .prototxt); optional for
                self-describing formats such as ONNX.

        Raises:
            FileNotFoundError: If a model file is missing.
            RuntimeError: If OpenCV cannot build a network from the buffers.
        """
        model_bytes = load_model_bytes(weights_path)
        config_bytes = load_model_bytes(config_path) if config_path else np.array([], dtype=np.uint8)
        logging.info(f"Model files loaded: weights={weights_path}, config={config_path}")

        try:
            net = cv2.dnn.readNet(framework, model_bytes, config_bytes)
        except cv2.error as e:
            raise RuntimeError(f"Failed to load {framework} network: {e}") from e
        if net is None or net.empty():
            raise RuntimeError(f"Failed to load {framework} network from {weights_path}")

        logging.info(f"Network loaded successfully ({framework})")
        return cls(net)

    def set_input(self, tensor: np.ndarray) -> None:
        self._net.setInput(tensor)
        self._has_input = True

    def forward(self) -> np.ndarray:
        if not self._has_input:
            raise RuntimeError("set_input() must be called before forward()")
        return self._net.forward()
