"""
Draws detection boxes and labels onto frames in place.
"""

from __future__ import annotations

import logging
from typing import Tuple

import cv2
import numpy as np

from models.config import OUT_OF_BOUNDS_POLICIES, RenderConfig
from models.detection import Detection, PixelBox
from models.labels import LabelTable, VOC_LABELS
from .errors import RenderError


FONT = cv2.FONT_HERSHEY_SIMPLEX


def format_label(name: str, confidence: float) -> str:
    """"<name>: <confidence>" with the confidence printed as-is, unrounded."""
    return name + ": " + str(confidence)


class AnnotationRenderer:
    """
    Renders one detection per call: box outline, white label background and
    black label text anchored at the box's top-left corner.

    Rendering is not idempotent; calling render twice draws twice.
    """

    def __init__(
        self,
        labels: LabelTable = VOC_LABELS,
        config: RenderConfig | None = None,
    ):
        self.labels = labels
        self.config = config or RenderConfig()
        if self.config.out_of_bounds not in OUT_OF_BOUNDS_POLICIES:
            raise ValueError(
                f"out_of_bounds must be one of {OUT_OF_BOUNDS_POLICIES}, "
                f"got {self.config.out_of_bounds!r}"
            )

    def label_for(self, detection: Detection) -> str:
        """
        Raises:
            UnknownClassError: If the class id is not in the label table.
        """
        return format_label(self.labels.name_for(detection.class_id), detection.confidence)

    def render(self, frame: np.ndarray, detection: Detection, pixel_box: PixelBox) -> None:
        """
        Draw the annotation for ``detection`` at ``pixel_box`` onto ``frame``.

        Raises:
            UnknownClassError: If the class id is not in the label table;
                nothing is drawn in that case.
            RenderError: If OpenCV rejects the box, e.g. coordinates that
                do not fit its int range.
        """
        label = self.label_for(detection)

        frame_height, frame_width = frame.shape[:2]
        policy = self.config.out_of_bounds
        if policy != "draw" and not pixel_box.is_within(frame_width, frame_height):
            if policy == "skip":
                logging.debug(f"Skipping out-of-frame box {pixel_box.as_tuple()} ({label})")
                return
            pixel_box = pixel_box.clamped(frame_width, frame_height)

        try:
            self._draw(frame, label, pixel_box)
        except (cv2.error, OverflowError) as e:
            raise RenderError(f"Cannot draw {label!r} at {pixel_box.as_tuple()}: {e}") from e

    def _draw(self, frame: np.ndarray, label: str, pixel_box: PixelBox) -> None:
        cfg = self.config
        channels = 1 if frame.ndim == 2 else frame.shape[2]
        left, top, right, bottom = pixel_box.as_tuple()

        cv2.rectangle(
            frame, (left, top), (right, bottom),
            _for_channels(cfg.box_color, channels), cfg.thickness,
        )

        (text_width, text_height), baseline = cv2.getTextSize(
            label, FONT, cfg.font_scale, cfg.thickness
        )
        cv2.rectangle(
            frame,
            (left, top - text_height),
            (left + text_width, top + baseline),
            _for_channels(cfg.label_background, channels),
            cv2.FILLED,
        )
        cv2.putText(
            frame, label, (left, top), FONT, cfg.font_scale,
            _for_channels(cfg.label_color, channels), cfg.thickness,
        )


def _for_channels(color: Tuple[int, ...], channels: int) -> Tuple[int, ...]:
    # Opaque alpha on RGBA frames; OpenCV would otherwise fill it with 0.
    if channels == 4 and len(color) == 3:
        return tuple(color) + (255,)
    return tuple(color)
