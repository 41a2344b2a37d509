"""
Runtime module - Inference boundary

Provides:
- InferenceModel base class and ModelOutputs container
- CallableModel adapter for plain functions
- OnnxModel backed by ONNX Runtime
"""

from .model import (
    ModelOutputs,
    InferenceModel,
    CallableModel,
    OnnxModel,
    load_model,
    resolve_input_size,
)

__all__ = [
    "ModelOutputs",
    "InferenceModel",
    "CallableModel",
    "OnnxModel",
    "load_model",
    "resolve_input_size",
]
