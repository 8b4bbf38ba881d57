"""
tests/conftest.py

Pytest configuration and shared fixtures for the vision_detect_track test suite.

Slow tests are tests that load real model files and are therefore time-consuming.
They are skipped by default and can be enabled with: pytest --run-slow
"""

import numpy as np
import pytest

from vision_detect_track.core.interfaces import Detection, RawDetectionBatch, Rect
from vision_detect_track.core.transform import build_frame_to_crop


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add custom CLI options to pytest."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run slow tests that load real model files.",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (loads real model files). " "Deselected by default; use --run-slow to include them.",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    """Skip slow tests unless --run-slow flag is provided."""
    if config.getoption("--run-slow"):
        return  # Don't skip anything

    skip_slow = pytest.mark.skip(reason="Slow test skipped by default. Use --run-slow to enable.")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture
def crop_to_frame():
    """Crop-to-frame transform for a 640x480 preview and a 320x320 crop."""
    return build_frame_to_crop(640, 480, 320, 0, False).invert()


@pytest.fixture
def raw_batch():
    """Three anchors, two of them above 0.5."""
    return RawDetectionBatch(
        locations=[
            0.1, 0.2, 0.8, 0.9,
            0.0, 0.0, 0.5, 0.5,
            0.75, 0.125, 0.25, 0.5,
        ],
        scores=[0.9, 0.3, 0.6],
        class_ids=[1, 2, 3],
        count=3,
    )


@pytest.fixture
def preview_frame():
    """Blank 640x480 BGR preview frame."""
    return np.zeros((480, 640, 3), dtype=np.uint8)


@pytest.fixture
def make_detection():
    """Factory for detections with an index-style label."""

    def _make(index: int, box, label: str = None, confidence: float = 0.9) -> Detection:
        return Detection(
            id=str(index),
            label=label if label is not None else " " + str(index + 1),
            confidence=confidence,
            bounding_box=Rect(*box),
        )

    return _make
