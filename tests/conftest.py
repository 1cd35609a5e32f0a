"""
Shared fixtures: an in-memory frame source, a canned inference engine and
config on disk.
"""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from observation.base import ObservationConfig, ObservationSource  # noqa: E402


class StubEngine:
    """Inference engine that returns a fixed output buffer and keeps its inputs."""

    def __init__(self, output=None):
        self.output = np.zeros((1, 1, 0, 7), dtype=np.float32) if output is None else output
        self.inputs = []

    def set_input(self, tensor):
        self.inputs.append(tensor)

    def forward(self):
        return self.output


class ListSource(ObservationSource):
    """
    Hands out the given arrays in order, then runs dry.

    With finite=True it then reports itself exhausted, like a video file;
    otherwise it keeps returning no frame, like a camera that dropped out.
    """

    def __init__(self, frames, source_id="test", fps=None, finite=False):
        super().__init__(ObservationConfig(source_id=source_id, fps=fps))
        self.frames = list(frames)
        self.finite = finite
        self.closed = False
        self._pending = []

    def _open(self):
        self._pending = list(self.frames)
        self.closed = False

    def _grab(self):
        if self._pending:
            return self._pending.pop(0)
        self._exhausted = self.finite
        return None

    def _close(self):
        self.closed = True


@pytest.fixture
def stub_engine_factory():
    return StubEngine


@pytest.fixture
def list_source_factory():
    return ListSource


@pytest.fixture
def blank_frames():
    def make(count, width=640, height=480, channels=3):
        return [np.zeros((height, width, channels), dtype=np.uint8) for _ in range(count)]
    return make


@pytest.fixture
def frame_640x480():
    return np.zeros((480, 640, 3), dtype=np.uint8)


DEFAULT_YAML = """
camera:
  device_id: 0
  resolution: [640, 480]
  fps: 30

model:
  framework: "caffe"
  weights: "models/mobilenet_iter_73000.caffemodel"
  config: "models/deploy.prototxt"

detection:
  confidence_threshold: 0.2

log_path: "logs/test.log"
log_level: "INFO"
"""


@pytest.fixture
def temp_config_dir(tmp_path):
    """A config/ directory holding only default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "default.yaml").write_text(DEFAULT_YAML)
    return config_dir


@pytest.fixture
def valid_config():
    return {
        "camera": {"device_id": 0, "resolution": [1280, 720], "fps": 30},
        "model": {
            "framework": "caffe",
            "weights": "models/mobilenet_iter_73000.caffemodel",
            "config": "models/deploy.prototxt",
        },
        "preprocess": {
            "width": 300,
            "height": 300,
            "scale_factor": 0.007843,
            "mean_value": 127.5,
        },
        "detection": {"confidence_threshold": 0.2},
        "render": {"out_of_bounds": "draw"},
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
