"""
Live object detection overlay.

Reads frames from a camera, stream or video file, runs every frame through a
MobileNet-SSD network and draws the detected boxes with class labels and
confidences before the frame is displayed or recorded.

Usage:
    python src/main.py --display
    python src/main.py --config config/night.yaml --record
"""

import argparse
import logging
import os
import sys
from typing import Any, Callable, Dict, List, Optional, Tuple

import yaml

from models.config import MODEL_FRAMEWORKS, OUT_OF_BOUNDS_POLICIES
from ops.logging import setup_logging
from pipeline.engine import create_engine_from_config

REQUIRED_KEYS = ("camera", "model", "log_path", "log_level")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _deep_merge(base: Dict[str, Any], layer: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``layer`` into ``base`` in place; nested dicts merge key by key."""
    for key, value in layer.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            _deep_merge(current, value)
        else:
            base[key] = value
    return base


def _config_layers(config_path: str) -> List[str]:
    """default.yaml, then config.yaml, then the given file; each path once."""
    config_dir = os.path.dirname(config_path)
    candidates = [
        os.path.join(config_dir, "default.yaml"),
        os.path.join(config_dir, "config.yaml"),
        config_path,
    ]
    layers: List[str] = []
    for path in candidates:
        if os.path.exists(path) and os.path.abspath(path) not in map(os.path.abspath, layers):
            layers.append(path)
    return layers


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Merge the config layers found next to ``config_path``.

    The checked-in ``default.yaml`` comes first, local ``config.yaml``
    overrides it, and ``config_path`` itself (when it is neither) is applied
    last. Exits the process on unreadable or invalid YAML.
    """
    merged: Dict[str, Any] = {}
    for path in _config_layers(config_path):
        try:
            with open(path, "r") as f:
                layer = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logging.error(f"Cannot read config layer {path}: {e}")
            sys.exit(1)
        _deep_merge(merged, layer)
    return merged


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _is_color(value: Any) -> bool:
    return (
        isinstance(value, list)
        and len(value) == 3
        and all(isinstance(c, int) and 0 <= c <= 255 for c in value)
    )


def _check_camera(camera: Dict[str, Any]) -> Optional[str]:
    device_id = camera.get("device_id", 0)
    if isinstance(device_id, bool) or not isinstance(device_id, (int, str)):
        return "camera.device_id must be a camera index or a URL/file path"
    if isinstance(device_id, int) and device_id < 0:
        return "camera.device_id must not be negative"
    resolution = camera.get("resolution")
    if resolution is not None:
        if not isinstance(resolution, list) or len(resolution) != 2:
            return "camera.resolution must be [width, height]"
        if not all(_is_positive_int(v) for v in resolution):
            return "camera.resolution values must be positive integers"
    if camera.get("fps") is not None and not _is_positive_int(camera["fps"]):
        return "camera.fps must be a positive integer"
    return None


def _check_model(model: Dict[str, Any]) -> Optional[str]:
    if model.get("framework", "caffe") not in MODEL_FRAMEWORKS:
        return f"model.framework must be one of: {', '.join(MODEL_FRAMEWORKS)}"
    weights = model.get("weights")
    if not isinstance(weights, str) or not weights:
        return "model.weights must name the trained weights file"
    if model.get("config") is not None and not isinstance(model["config"], str):
        return "model.config must be a file path"
    return None


def _check_preprocess(preprocess: Dict[str, Any]) -> Optional[str]:
    for key in ("width", "height"):
        if key in preprocess and not _is_positive_int(preprocess[key]):
            return f"preprocess.{key} must be a positive integer"
    for key in ("scale_factor", "mean_value"):
        if key in preprocess and not _is_number(preprocess[key]):
            return f"preprocess.{key} must be a number"
    return None


def _check_detection(detection: Dict[str, Any]) -> Optional[str]:
    if "confidence_threshold" in detection:
        threshold = detection["confidence_threshold"]
        if not _is_number(threshold) or not 0 <= threshold <= 1:
            return "detection.confidence_threshold must be a number in [0, 1]"
    return None


def _check_render(render: Dict[str, Any]) -> Optional[str]:
    if render.get("out_of_bounds", "draw") not in OUT_OF_BOUNDS_POLICIES:
        return f"render.out_of_bounds must be one of: {', '.join(OUT_OF_BOUNDS_POLICIES)}"
    for key in ("box_color", "label_background", "label_color"):
        if key in render and not _is_color(render[key]):
            return f"render.{key} must be three integers in 0..255"
    if "font_scale" in render and not (_is_number(render["font_scale"]) and render["font_scale"] > 0):
        return "render.font_scale must be a positive number"
    if "thickness" in render and not _is_positive_int(render["thickness"]):
        return "render.thickness must be a positive integer"
    return None


_SECTION_CHECKS: Tuple[Tuple[str, Callable[[Dict[str, Any]], Optional[str]]], ...] = (
    ("camera", _check_camera),
    ("model", _check_model),
    ("preprocess", _check_preprocess),
    ("detection", _check_detection),
    ("render", _check_render),
)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Check the merged config before anything is built from it.

    Returns:
        (True, None) when valid, otherwise (False, message naming the key).
    """
    missing = [key for key in REQUIRED_KEYS if key not in config]
    if missing:
        return False, f"Missing required config key(s): {', '.join(missing)}"

    for section, check in _SECTION_CHECKS:
        error = check(config.get(section) or {})
        if error:
            return False, error

    labels = config.get("labels")
    if labels is not None:
        if not isinstance(labels, list) or not labels or not all(isinstance(n, str) for n in labels):
            return False, "labels must be a non-empty list of class names"

    if config["log_level"] not in LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(LOG_LEVELS)}"

    return True, None


def main():
    parser = argparse.ArgumentParser(description="Live object detection overlay")
    parser.add_argument("--config", default="config/config.yaml",
                        help="Config file; default.yaml and config.yaml beside it load first")
    parser.add_argument("--display", action="store_true",
                        help="Show annotated frames in a window (q quits)")
    parser.add_argument("--record", action="store_true",
                        help="Record annotated frames to output_dir")
    args = parser.parse_args()

    config = load_config(args.config)
    ok, problem = validate_config(config)
    if not ok:
        logging.error(f"Invalid configuration: {problem}")
        sys.exit(1)

    setup_logging(config["log_path"], config["log_level"])
    logging.info("Detector starting")

    try:
        engine = create_engine_from_config(config, display=args.display, record=args.record)
        engine.run()
    except (FileNotFoundError, RuntimeError) as e:
        # Missing model files, an unloadable network or a camera that never opened.
        logging.error(f"Detector failed: {e}")
        sys.exit(1)

    logging.info("Detector stopped")


if __name__ == "__main__":
    main()
