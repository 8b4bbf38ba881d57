"""
Utility functions for the vision_detect_track package.
Contains helper functions for frame handling, logging, validation, and other common operations.
"""

import cv2
import numpy as np
import logging
import time
from pathlib import Path
from typing import List, Dict, Tuple, Optional, Union, Sequence
import torch

from .exceptions import ImageProcessingError, ConfigurationError


# Logging setup
def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """
    Set up logging configuration for the detection and tracking pipeline.
    Handles Unicode output gracefully on Windows consoles.
    """
    import sys

    logger = logging.getLogger("vision_detect_track")

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # ---- Handle console encoding problems (Windows cp1252 etc.) ----
    try:
        stream = sys.stdout
        encoding = getattr(stream, "encoding", None)

        if encoding is None or encoding.lower() in ["cp1252", "ansi_x3.4-1968"]:
            import io
            stream = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")

        console_handler = logging.StreamHandler(stream)
    except Exception:
        console_handler = logging.StreamHandler()

    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

    # ---- Optional file logging ----
    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8", mode="a")
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except Exception as e:
            logger.warning(f"Could not create log file {log_file}: {e}")

    return logger


# Frame utilities
def validate_frame(frame: np.ndarray, expected_size: Optional[Tuple[int, int]] = None) -> bool:
    """
    Validate that a camera frame is suitable for processing.

    Args:
        frame: Input frame array (H x W or H x W x C)
        expected_size: Optional (width, height) the frame must have

    Returns:
        bool: True if frame is valid

    Raises:
        ImageProcessingError: If frame is invalid
    """
    if frame is None:
        raise ImageProcessingError("validation", {"error": "Frame is None"})

    if not isinstance(frame, np.ndarray):
        raise ImageProcessingError("validation",
                                   {"error": f"Expected numpy array, got {type(frame)}"})

    if len(frame.shape) not in [2, 3]:
        raise ImageProcessingError("validation",
                                   {"error": f"Invalid frame dimensions: {frame.shape}"})

    if expected_size is not None:
        height, width = frame.shape[:2]
        if (width, height) != tuple(expected_size):
            raise ImageProcessingError("validation",
                                       {"error": f"Frame is {width}x{height}, expected "
                                                 f"{expected_size[0]}x{expected_size[1]}"})

    return True


def create_test_frame(boxes: Optional[Sequence[Tuple[int, int, int, int]]] = None,
                      size: Tuple[int, int] = (480, 640)) -> np.ndarray:
    """
    Create a synthetic camera frame with filled rectangles.

    Args:
        boxes: Rectangles as (x_min, y_min, x_max, y_max)
        size: Frame size as (height, width)

    Returns:
        np.ndarray: BGR test frame
    """
    if boxes is None:
        boxes = [(80, 60, 240, 220), (360, 200, 560, 400)]

    height, width = size
    frame = np.zeros((height, width, 3), dtype=np.uint8)

    colors = [(255, 0, 0), (0, 0, 255), (0, 255, 0), (0, 255, 255), (255, 0, 255), (255, 255, 0)]

    for i, (x_min, y_min, x_max, y_max) in enumerate(boxes):
        cv2.rectangle(frame, (x_min, y_min), (x_max, y_max), colors[i % len(colors)], -1)

    return frame


def save_frame(frame: np.ndarray, directory: Union[str, Path], name: str) -> Path:
    """
    Write a frame to disk as PNG, creating the directory when needed.

    Raises:
        ImageProcessingError: If the frame cannot be written
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}.png"

    if not cv2.imwrite(str(path), frame):
        raise ImageProcessingError("save", {"path": str(path), "shape": frame.shape})
    return path


# Device utilities
def get_optimal_device(prefer_gpu: bool = True) -> str:
    """
    Get the optimal device for computation.

    Args:
        prefer_gpu: Whether to prefer GPU if available

    Returns:
        str: Device string ("cuda" or "cpu")
    """
    if prefer_gpu and torch.cuda.is_available():
        return "cuda"
    return "cpu"


# Validation utilities
def validate_confidence_threshold(threshold: float, parameter: str = "min_confidence") -> bool:
    """
    Validate confidence threshold value.

    Args:
        threshold: Score threshold to check
        parameter: Name reported in the error

    Raises:
        ConfigurationError: If threshold is invalid
    """
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
        raise ConfigurationError(parameter, threshold, "Must be a number")

    if not 0.0 <= threshold <= 1.0:
        raise ConfigurationError(parameter, threshold, "Must be between 0.0 and 1.0")

    return True


# Performance utilities
class Timer:
    """Simple context manager for timing operations."""

    def __init__(self, name: str = "Operation", logger: Optional[logging.Logger] = None):
        self._name = name
        self._logger = logger
        self._start_time = None
        self.duration_ms = 0.0

    def __enter__(self):
        self._start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = (time.perf_counter() - self._start_time) * 1000.0
        if self._logger:
            self._logger.debug(f"{self._name} took {self.duration_ms:.1f} ms")


def format_detection_results(detections: List, max_items: int = 10) -> str:
    """
    Format detections or tracks for human-readable output.

    Accepts objects exposing ``label`` and ``confidence`` plus either
    ``bounding_box`` (detections) or ``current_box`` (tracks).
    """
    if not detections:
        return "No objects detected"

    lines = [f"Found {len(detections)} objects:"]

    for i, det in enumerate(detections[:max_items]):
        box = getattr(det, "bounding_box", None) or getattr(det, "current_box", None)
        bbox: Dict[str, int] = box.to_bbox() if box is not None else {}
        coords = f"[{bbox.get('x_min', 0)}, {bbox.get('y_min', 0)}, {bbox.get('x_max', 0)}, {bbox.get('y_max', 0)}]"
        lines.append(f"  {i+1}. {det.label.strip()} (confidence: {det.confidence:.2f}) at {coords}")

    if len(detections) > max_items:
        lines.append(f"  ... and {len(detections) - max_items} more")

    return "\n".join(lines)
