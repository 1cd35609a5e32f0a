"""
Frame sources for the detection stream.
"""

from typing import Any, Dict

from .base import ObservationConfig, ObservationSource
from .opencv_source import OpenCVSource, OpenCVSourceConfig


def create_source_from_config(camera_cfg: Dict[str, Any], source_id: str = "camera") -> ObservationSource:
    """The ``camera`` section always maps to an OpenCVSource; device_id picks camera, stream or file."""
    return OpenCVSource(OpenCVSourceConfig.from_camera_config(camera_cfg or {}, source_id=source_id))


__all__ = [
    "ObservationConfig",
    "ObservationSource",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "create_source_from_config",
]
