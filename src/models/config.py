"""
Typed views of the YAML config sections.

Unknown keys in a section are ignored so one YAML file can also carry
settings read elsewhere (e.g. the ``pipeline`` section).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar, Union


# Channel order follows the frame; green, white and black read the same in BGR and RGB.
Color = Tuple[int, int, int]

OUT_OF_BOUNDS_POLICIES = ("draw", "clamp", "skip")
MODEL_FRAMEWORKS = ("caffe", "tensorflow", "onnx", "darknet", "torch")

S = TypeVar("S", bound="_Section")


class _Section:
    """from_dict/to_dict for flat dataclass sections."""

    @classmethod
    def from_dict(cls: Type[S], d: Optional[Dict[str, Any]]) -> S:
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (d or {}).items() if k in names})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CameraConfig(_Section):
    """Frame source settings; device_id is a camera index, stream URL or file."""
    device_id: Union[int, str] = 0
    resolution: Optional[List[int]] = None
    fps: Optional[int] = None
    swap_rb: bool = False
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False


@dataclass
class ModelConfig(_Section):
    """Network files for the inference engine; config may be None for ONNX."""
    framework: str = "caffe"
    weights: str = "models/mobilenet_iter_73000.caffemodel"
    config: Optional[str] = "models/deploy.prototxt"


@dataclass
class PreprocessConfig(_Section):
    """
    Tensor normalization constants.

    Defaults are the MobileNet-SSD values: 300x300 input,
    (pixel - 127.5) * 0.007843.
    """
    width: int = 300
    height: int = 300
    scale_factor: float = 0.007843
    mean_value: float = 127.5


@dataclass
class DetectionConfig(_Section):
    confidence_threshold: float = 0.2


@dataclass
class RenderConfig(_Section):
    """
    Annotation drawing configuration.

    Attributes:
        box_color: Rectangle outline color.
        label_background: Fill color behind the label text.
        label_color: Label text color.
        font_scale: Hershey Simplex font scale.
        thickness: Line thickness for the box and the text.
        out_of_bounds: What to do with boxes reaching past the frame:
            "draw" (as mapped, OpenCV clips), "clamp" or "skip".
    """
    box_color: Color = (0, 255, 0)
    label_background: Color = (255, 255, 255)
    label_color: Color = (0, 0, 0)
    font_scale: float = 0.5
    thickness: int = 1
    out_of_bounds: str = "draw"

    def __post_init__(self):
        # YAML gives lists
        self.box_color = tuple(self.box_color)
        self.label_background = tuple(self.label_background)
        self.label_color = tuple(self.label_color)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        for key in ("box_color", "label_background", "label_color"):
            d[key] = list(d[key])
        return d


@dataclass
class Config:
    """
    The whole application config, as merged by load_config.

    ``labels`` replaces the built-in VOC class names when set.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    preprocess: PreprocessConfig = field(default_factory=PreprocessConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    labels: Optional[List[str]] = None
    log_path: str = "logs/detector.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        defaults = cls()
        return cls(
            camera=CameraConfig.from_dict(d.get("camera")),
            model=ModelConfig.from_dict(d.get("model")),
            preprocess=PreprocessConfig.from_dict(d.get("preprocess")),
            detection=DetectionConfig.from_dict(d.get("detection")),
            render=RenderConfig.from_dict(d.get("render")),
            labels=d.get("labels"),
            log_path=d.get("log_path", defaults.log_path),
            log_level=d.get("log_level", defaults.log_level),
        )

    def to_dict(self) -> Dict[str, Any]:
        sections = ("camera", "model", "preprocess", "detection", "render")
        d: Dict[str, Any] = {name: getattr(self, name).to_dict() for name in sections}
        d["log_path"] = self.log_path
        d["log_level"] = self.log_level
        if self.labels is not None:
            d["labels"] = list(self.labels)
        return d
