"""
Raw detection buffer -> Detection objects.

The SSD DetectionOutput layer emits a [1, 1, N, 7] blob; here it is treated
as a flat sequence with a record stride of 7:

    [batch_index, class_id, confidence, x1, y1, x2, y2]

Coordinates are normalized to the frame size. Records holding NaN or
infinite values are dropped like records below the threshold.
"""

from __future__ import annotations

import logging
from typing import Iterator

import numpy as np
from numpy.typing import ArrayLike

from models.detection import Detection, NormalizedBox
from .errors import MalformedOutputError


RECORD_SIZE = 7
DEFAULT_CONFIDENCE_THRESHOLD = 0.2

_CLASS_ID = 1
_CONFIDENCE = 2
_BOX = slice(3, 7)


class DetectionDecoder:
    """Decodes fixed-stride detection records, keeping those above threshold."""

    def __init__(self, confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD):
        self.confidence_threshold = confidence_threshold

    def __call__(self, raw_buffer: ArrayLike) -> Iterator[Detection]:
        return self.decode(raw_buffer, self.confidence_threshold)

    @staticmethod
    def decode(
        raw_buffer: ArrayLike,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    ) -> Iterator[Detection]:
        """
        Decode a raw buffer into detections.

        The length check happens immediately; the records themselves are
        decoded lazily, in buffer order, and the returned iterator can be
        consumed only once.

        Raises:
            MalformedOutputError: If the element count is not a multiple of 7.
        """
        flat = np.asarray(raw_buffer).reshape(-1)
        if flat.size % RECORD_SIZE != 0:
            raise MalformedOutputError(flat.size, RECORD_SIZE)
        return _iter_detections(flat.reshape(-1, RECORD_SIZE), confidence_threshold)


def _iter_detections(records: np.ndarray, confidence_threshold: float) -> Iterator[Detection]:
    for record in records:
        confidence = record[_CONFIDENCE]
        # Written so that a NaN confidence is dropped too
        if not confidence > confidence_threshold:
            continue
        if not np.isfinite(record[_CLASS_ID:]).all():
            logging.debug(f"Dropping detection record with non-finite values: {record.tolist()}")
            continue
        left, top, right, bottom = (float(v) for v in record[_BOX])
        yield Detection(
            class_id=int(record[_CLASS_ID]),
            confidence=confidence,
            box=NormalizedBox(left=left, top=top, right=right, bottom=bottom),
        )
