"""
Class label table for the detection network.
"""

from __future__ import annotations

import operator
from typing import Iterator, Sequence, Tuple

from pipeline.errors import UnknownClassError


# PASCAL VOC classes of the MobileNet-SSD Caffe model, index 0 is background.
VOC_CLASSES: Tuple[str, ...] = (
    "background", "aeroplane", "bicycle", "bird", "boat",
    "bottle", "bus", "car", "cat", "chair", "cow", "diningtable",
    "dog", "horse", "motorbike", "person", "pottedplant",
    "sheep", "sofa", "train", "tvmonitor",
)


class LabelTable:
    """
    Immutable, ordered class-name table indexed by class id.

    Lookups are bounds-checked: any id outside [0, len) raises
    UnknownClassError, negative ids included.
    """

    __slots__ = ("_names",)

    def __init__(self, names: Sequence[str]):
        if not names:
            raise ValueError("Label table must contain at least one name")
        self._names: Tuple[str, ...] = tuple(str(n) for n in names)

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __contains__(self, class_id: object) -> bool:
        try:
            index = operator.index(class_id)
        except TypeError:
            return False
        return 0 <= index < len(self._names)

    def __getitem__(self, class_id: int) -> str:
        return self.name_for(class_id)

    def __repr__(self) -> str:
        return f"LabelTable({len(self._names)} classes)"

    def name_for(self, class_id: int) -> str:
        if class_id not in self:
            raise UnknownClassError(class_id, len(self._names))
        return self._names[operator.index(class_id)]

    @property
    def names(self) -> Tuple[str, ...]:
        return self._names


VOC_LABELS = LabelTable(VOC_CLASSES)
