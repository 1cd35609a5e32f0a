"""
Per-frame orchestration: preprocess -> inference -> decode -> map -> render.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as np

from inference.backend import InferenceEngine
from models.config import Config, DetectionConfig, PreprocessConfig, RenderConfig
from models.detection import Detection, PixelBox
from models.labels import LabelTable, VOC_LABELS
from .coords import CoordinateMapper
from .decoder import DetectionDecoder
from .preprocess import FrameTensorBuilder
from .render import AnnotationRenderer


class FramePipeline:
    """
    Annotates frames with the detections of a single inference engine.

    Stateless between calls apart from the shared engine handle and label
    table. Calls must not overlap: the engine holds one input at a time.

    Example:
        pipeline = FramePipeline(OpenCvDnnEngine.from_files("caffe", weights, prototxt))
        annotated = pipeline.process(frame)  # same object as frame
    """

    def __init__(
        self,
        engine: InferenceEngine,
        labels: LabelTable = VOC_LABELS,
        preprocess: Optional[PreprocessConfig] = None,
        detection: Optional[DetectionConfig] = None,
        render: Optional[RenderConfig] = None,
    ):
        self.engine = engine
        self.labels = labels
        self.tensor_builder = FrameTensorBuilder(preprocess)
        self.decoder = DetectionDecoder((detection or DetectionConfig()).confidence_threshold)
        self.mapper = CoordinateMapper()
        self.renderer = AnnotationRenderer(labels, render)

    @classmethod
    def from_config(cls, config: Config, engine: InferenceEngine) -> "FramePipeline":
        labels = LabelTable(config.labels) if config.labels else VOC_LABELS
        return cls(
            engine,
            labels=labels,
            preprocess=config.preprocess,
            detection=config.detection,
            render=config.render,
        )

    def process(self, frame: np.ndarray) -> np.ndarray:
        """
        Detect objects in ``frame`` and draw them onto it.

        Returns:
            The same array, annotated in place.

        Raises:
            PreprocessError: If the frame cannot be converted to a tensor.
            MalformedOutputError: If the engine output is not whole records.
            UnknownClassError: If a detection's class has no label; the frame
                is left untouched.
            RenderError: If OpenCV cannot draw a box; annotations drawn
                before it stay on the frame.
        """
        logging.debug("handle new frame")
        annotations = self.detect(frame)
        for detection, pixel_box in annotations:
            self.renderer.render(frame, detection, pixel_box)
        return frame

    def detect(self, frame: np.ndarray) -> List[Tuple[Detection, PixelBox]]:
        """
        Run inference and return (detection, pixel box) pairs in output order.

        Every class id is checked against the label table before returning,
        so callers can draw all pairs or none.
        """
        tensor = self.tensor_builder(frame)
        self.engine.set_input(tensor)
        raw = self.engine.forward()

        frame_height, frame_width = frame.shape[:2]
        annotations = []
        for detection in self.decoder(raw):
            self.labels.name_for(detection.class_id)
            annotations.append(
                (detection, self.mapper(detection.box, frame_width, frame_height))
            )
        return annotations
