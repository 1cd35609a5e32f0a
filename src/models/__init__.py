"""
Typed models for the detector application.

Use the from_dict adapters to build configs from the raw YAML dicts.
"""

from .frame import FrameData
from .detection import Detection, NormalizedBox, PixelBox
from .labels import LabelTable, VOC_CLASSES, VOC_LABELS
from .config import (
    Config,
    CameraConfig,
    ModelConfig,
    PreprocessConfig,
    DetectionConfig,
    RenderConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "Detection",
    "NormalizedBox",
    "PixelBox",
    # Labels
    "LabelTable",
    "VOC_CLASSES",
    "VOC_LABELS",
    # Config
    "Config",
    "CameraConfig",
    "ModelConfig",
    "PreprocessConfig",
    "DetectionConfig",
    "RenderConfig",
]
