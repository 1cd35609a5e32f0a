#!/usr/bin/env python3
"""
Run the detection pipeline on a single image.

Useful for checking a model/config pairing without a camera.

Usage:
    python tools/detect_image.py --image path/to/photo.jpg
    python tools/detect_image.py --image photo.jpg --output annotated.jpg --threshold 0.5
"""

import argparse
import logging
import os
import sys

# Add project directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

import cv2

from inference.opencv_dnn import OpenCvDnnEngine
from main import load_config, validate_config
from models.config import Config
from ops.logging import setup_logging
from pipeline.errors import PipelineError
from pipeline.frame_pipeline import FramePipeline


def main():
    parser = argparse.ArgumentParser(description="Annotate one image with detections")
    parser.add_argument("--image", required=True, help="Input image path")
    parser.add_argument("--output", default=None,
                        help="Output path (default: <image>_detections.<ext>)")
    parser.add_argument("--config", default="config/config.yaml",
                        help="Path to configuration file")
    parser.add_argument("--threshold", type=float, default=None,
                        help="Override detection.confidence_threshold")
    args = parser.parse_args()

    raw_config = load_config(args.config)
    is_valid, error_msg = validate_config(raw_config)
    if not is_valid:
        print(f"Invalid configuration: {error_msg}")
        return 1

    setup_logging("", raw_config.get("log_level", "INFO"))
    config = Config.from_dict(raw_config)
    if args.threshold is not None:
        config.detection.confidence_threshold = args.threshold

    frame = cv2.imread(args.image)
    if frame is None:
        print(f"Cannot read image: {args.image}")
        return 1

    engine = OpenCvDnnEngine.from_files(config.model.framework, config.model.weights, config.model.config)
    pipeline = FramePipeline.from_config(config, engine)

    try:
        annotations = pipeline.detect(frame)
    except PipelineError as e:
        print(f"Detection failed: {e}")
        return 1

    for detection, box in annotations:
        pipeline.renderer.render(frame, detection, box)
        print(f"{pipeline.renderer.label_for(detection)} at {box.as_tuple()}")
    print(f"{len(annotations)} detection(s)")

    output = args.output
    if output is None:
        stem, ext = os.path.splitext(args.image)
        output = f"{stem}_detections{ext or '.jpg'}"
    cv2.imwrite(output, frame)
    logging.info(f"Annotated image written to {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
