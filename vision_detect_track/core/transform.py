"""
Affine transforms between the camera preview frame and the square model crop.

The frame-to-crop transform is built once per preview size / orientation
change; its inverse maps decoded boxes back into preview coordinates.
"""

import logging
from typing import Iterable, Tuple

import cv2
import numpy as np

from .interfaces import Rect
from ..utils.exceptions import ConfigurationError, SingularTransformError

logger = logging.getLogger(__name__)

_SINGULAR_EPS = 1e-12


class AffineTransform:
    """2D affine transform stored as a 3x3 homogeneous matrix."""

    def __init__(self, matrix: np.ndarray = None):
        if matrix is None:
            matrix = np.eye(3, dtype=np.float64)
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape == (2, 3):
            matrix = np.vstack([matrix, [0.0, 0.0, 1.0]])
        if matrix.shape != (3, 3):
            raise ValueError(f"Expected a 2x3 or 3x3 matrix, got shape {matrix.shape}")
        self._matrix = matrix

    @property
    def matrix(self) -> np.ndarray:
        return self._matrix.copy()

    @property
    def determinant(self) -> float:
        return float(np.linalg.det(self._matrix[:2, :2]))

    def post_concat(self, other: np.ndarray) -> "AffineTransform":
        """Return a transform applying ``self`` first, then ``other``."""
        return AffineTransform(np.asarray(other, dtype=np.float64) @ self._matrix)

    def post_translate(self, dx: float, dy: float) -> "AffineTransform":
        return self.post_concat(np.array([[1.0, 0.0, dx], [0.0, 1.0, dy], [0.0, 0.0, 1.0]]))

    def post_scale(self, sx: float, sy: float) -> "AffineTransform":
        return self.post_concat(np.array([[sx, 0.0, 0.0], [0.0, sy, 0.0], [0.0, 0.0, 1.0]]))

    def post_rotate(self, degrees: float) -> "AffineTransform":
        # Clockwise on screen: image coordinates have y pointing down.
        radians = np.deg2rad(degrees)
        c, s = np.cos(radians), np.sin(radians)
        # Snap quarter turns so 90 degree rotations stay exact
        c, s = round(c, 12) + 0.0, round(s, 12) + 0.0
        return self.post_concat(np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]]))

    def map_point(self, x: float, y: float) -> Tuple[float, float]:
        px, py, _ = self._matrix @ np.array([x, y, 1.0])
        return float(px), float(py)

    def map_points(self, points: Iterable) -> np.ndarray:
        """Map an (N, 2) array of points."""
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        homogeneous = np.hstack([pts, np.ones((pts.shape[0], 1))])
        return (homogeneous @ self._matrix.T)[:, :2]

    def map_rect(self, rect: Rect) -> Rect:
        """Map the four corners of ``rect`` and return their bounding rect."""
        corners = self.map_points(
            [
                (rect.left, rect.top),
                (rect.right, rect.top),
                (rect.right, rect.bottom),
                (rect.left, rect.bottom),
            ]
        )
        x_min, y_min = corners.min(axis=0)
        x_max, y_max = corners.max(axis=0)
        return Rect(float(x_min), float(y_min), float(x_max), float(y_max))

    def invert(self) -> "AffineTransform":
        """
        Return the inverse transform.

        Raises:
            SingularTransformError: If the transform is not invertible
        """
        det = self.determinant
        if abs(det) < _SINGULAR_EPS:
            raise SingularTransformError(det, self._matrix.tolist())
        return AffineTransform(cv2.invertAffineTransform(self.to_cv2()))

    def to_cv2(self) -> np.ndarray:
        """2x3 matrix in the layout ``cv2.warpAffine`` expects."""
        return self._matrix[:2, :].copy()

    def __repr__(self) -> str:
        rows = ", ".join(str([round(v, 4) for v in row]) for row in self._matrix[:2])
        return f"AffineTransform([{rows}])"


def build_frame_to_crop(
    preview_width: int,
    preview_height: int,
    crop_size: int,
    rotation_degrees: int = 0,
    maintain_aspect: bool = False,
) -> AffineTransform:
    """
    Build the transform from preview frame coordinates to the square crop.

    Rotation is applied around the frame centre; scaling is per-axis unless
    ``maintain_aspect`` is set, in which case the larger factor is used on both
    axes so the crop is completely filled.

    Raises:
        ConfigurationError: If any dimension is not positive
    """
    if preview_width <= 0 or preview_height <= 0:
        raise ConfigurationError("preview_size", (preview_width, preview_height), "Dimensions must be positive")
    if crop_size <= 0:
        raise ConfigurationError("crop_size", crop_size, "Must be positive")

    transform = AffineTransform()

    if rotation_degrees != 0:
        if rotation_degrees % 90 != 0:
            logger.warning(f"Rotation of {rotation_degrees} % 90 != 0")

        transform = transform.post_translate(-preview_width / 2.0, -preview_height / 2.0)
        transform = transform.post_rotate(rotation_degrees)

    # Quarter turns swap the axes before scaling
    transpose = (abs(rotation_degrees) + 90) % 180 == 0
    in_width = preview_height if transpose else preview_width
    in_height = preview_width if transpose else preview_height

    if in_width != crop_size or in_height != crop_size:
        scale_x = crop_size / float(in_width)
        scale_y = crop_size / float(in_height)

        if maintain_aspect:
            scale = max(scale_x, scale_y)
            transform = transform.post_scale(scale, scale)
        else:
            transform = transform.post_scale(scale_x, scale_y)

    if rotation_degrees != 0:
        transform = transform.post_translate(crop_size / 2.0, crop_size / 2.0)

    return transform


def invert(transform: AffineTransform) -> AffineTransform:
    """Algebraic inverse of ``transform``; raises SingularTransformError."""
    return transform.invert()
