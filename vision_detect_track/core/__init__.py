"""
Core decoding, transform, tracking and pipeline modules.
"""

from .interfaces import Rect, RawDetectionBatch, Detection, Track
from .transform import AffineTransform, build_frame_to_crop, invert
from .detection_decoder import decode, box_to_crop_rect
from .labels import IndexLabelProvider, LabelMap
from .object_tracker import ObjectTracker
from .frame_gate import FrameGate
from .detection_pipeline import DetectionPipeline, StatusInfo

__all__ = [
    "Rect", "RawDetectionBatch", "Detection", "Track",
    "AffineTransform", "build_frame_to_crop", "invert",
    "decode", "box_to_crop_rect",
    "IndexLabelProvider", "LabelMap",
    "ObjectTracker", "FrameGate",
    "DetectionPipeline", "StatusInfo",
]
