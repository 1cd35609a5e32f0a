"""
Per-frame pipeline failures.

Every error here is scoped to a single frame: callers skip the frame and
keep the stream running.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for failures while processing one frame."""


class PreprocessError(PipelineError):
    """The frame could not be turned into a network input tensor."""


class MalformedOutputError(PipelineError):
    """The raw detection buffer is not a whole number of records."""

    def __init__(self, size: int, record_size: int):
        self.size = size
        self.record_size = record_size
        super().__init__(
            f"Detection output has {size} values, not a multiple of the "
            f"{record_size}-value record size"
        )


class RenderError(PipelineError):
    """OpenCV refused to draw an annotation, e.g. for coordinates past its int range."""


class UnknownClassError(PipelineError):
    """A decoded class id has no entry in the label table."""

    def __init__(self, class_id: int, table_size: int):
        self.class_id = class_id
        self.table_size = table_size
        super().__init__(
            f"Class id {class_id} is outside the label table (0..{table_size - 1})"
        )
