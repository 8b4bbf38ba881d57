"""
Inference backends that produce raw detector tensors.
"""

from .base import InferenceBackend
from .callable_backend import CallableBackend, to_raw_batch
from .torchscript import TorchScriptBackend

__all__ = ["InferenceBackend", "CallableBackend", "TorchScriptBackend", "to_raw_batch"]
