# vision_detect_track/__init__.py
"""
Detection post-processing and frame tracking package for live camera pipelines.
"""

from .core.interfaces import Rect, RawDetectionBatch, Detection, Track
from .core.transform import AffineTransform, build_frame_to_crop, invert
from .core.detection_decoder import decode
from .core.object_tracker import ObjectTracker
from .core.frame_gate import FrameGate
from .core.detection_pipeline import DetectionPipeline, StatusInfo
from .core.backends import InferenceBackend, CallableBackend, TorchScriptBackend
from .utils.config import PipelineConfig, get_default_config

__all__ = [
    "Rect", "RawDetectionBatch", "Detection", "Track",
    "AffineTransform", "build_frame_to_crop", "invert", "decode",
    "ObjectTracker", "FrameGate", "DetectionPipeline", "StatusInfo",
    "InferenceBackend", "CallableBackend", "TorchScriptBackend",
    "PipelineConfig", "get_default_config",
]

__version__ = "0.1.0"
