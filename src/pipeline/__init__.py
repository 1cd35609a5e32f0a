"""
Per-frame detection pipeline.

Flow for each frame:
- preprocess: frame -> network input tensor
- inference: tensor -> raw detection buffer (external engine)
- decoder: raw buffer -> confidence-filtered detections
- coords: normalized boxes -> pixel boxes
- render: boxes and labels drawn onto the frame

Submodules are imported directly (e.g. ``from pipeline.frame_pipeline import
FramePipeline``); only the error types are re-exported here.
"""

from .errors import (
    MalformedOutputError,
    PipelineError,
    PreprocessError,
    RenderError,
    UnknownClassError,
)

__all__ = [
    "PipelineError",
    "PreprocessError",
    "MalformedOutputError",
    "RenderError",
    "UnknownClassError",
]
