"""
Inference engines behind the pipeline's set_input/forward boundary.
"""

from .backend import InferenceEngine

__all__ = ["InferenceEngine"]
