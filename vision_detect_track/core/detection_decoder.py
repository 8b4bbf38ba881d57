"""
Decoding of raw single-shot detector tensors into frame-space detections.
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from .interfaces import Detection, LabelProvider, RawDetectionBatch, Rect
from .labels import IndexLabelProvider
from .transform import AffineTransform
from ..utils.exceptions import DecodeError

logger = logging.getLogger(__name__)

_DEFAULT_LABELS = IndexLabelProvider()


def box_to_crop_rect(box: Sequence[float], input_size: int) -> Rect:
    """
    Convert a normalized ``[b0, b1, b2, b3]`` box into a crop-space pixel rect.

    The packaged model family is read as left=b1, top=b2, right=b3, bottom=b0.
    Values are truncated toward zero.
    """
    return Rect(
        left=int(box[1] * input_size),
        top=int(box[2] * input_size),
        right=int(box[3] * input_size),
        bottom=int(box[0] * input_size),
    )


def _validate(raw: RawDetectionBatch) -> None:
    capacity = raw.capacity
    if raw.locations.shape[0] != capacity * RawDetectionBatch.BOX_SIZE:
        raise DecodeError(
            f"Expected {capacity * RawDetectionBatch.BOX_SIZE} location values for {capacity} anchors, "
            f"got {raw.locations.shape[0]}"
        )
    if raw.class_ids is not None and raw.class_ids.shape[0] != capacity:
        raise DecodeError(f"Expected {capacity} class ids, got {raw.class_ids.shape[0]}")

    out_of_range = np.flatnonzero((raw.scores < 0.0) | (raw.scores > 1.0) | np.isnan(raw.scores))
    if out_of_range.size:
        index = int(out_of_range[0])
        raise DecodeError("Score outside [0, 1]", anchor_index=index, value=float(raw.scores[index]))


def decode(
    raw: RawDetectionBatch,
    min_confidence: float,
    input_size: int,
    crop_to_frame: AffineTransform,
    label_provider: Optional[LabelProvider] = None,
    respect_count: bool = False,
    strict: bool = False,
) -> List[Detection]:
    """
    Turn raw detector tensors into thresholded detections in frame coordinates.

    Anchors are visited in index order and kept when their score is at least
    ``min_confidence``; the output is not re-sorted by score.

    Args:
        raw: Raw tensors for one frame
        min_confidence: Minimum score for a detection to be emitted
        input_size: Side length of the square model input in pixels
        crop_to_frame: Transform from crop space into frame space
        label_provider: Label source; defaults to index placeholders
        respect_count: Only visit the first ``raw.count`` anchors when set
        strict: Validate tensor shapes and score ranges

    Returns:
        Detections in anchor order

    Raises:
        DecodeError: Only when ``strict`` is set and the tensors are malformed
    """
    if strict:
        _validate(raw)

    labels = label_provider or _DEFAULT_LABELS

    # Only anchors with a complete box are visited
    limit = min(raw.capacity, raw.locations.shape[0] // RawDetectionBatch.BOX_SIZE)
    if respect_count and raw.count is not None:
        limit = min(limit, max(raw.count, 0))

    detections: List[Detection] = []
    for i in range(limit):
        score = float(raw.scores[i])
        # NaN scores never pass
        if not score >= min_confidence:
            continue

        crop_rect = box_to_crop_rect(raw.box(i), input_size)
        frame_rect = crop_to_frame.map_rect(crop_rect)
        class_id = raw.class_id(i)

        detections.append(
            Detection(
                id=str(i),
                label=labels(i, class_id),
                confidence=score,
                bounding_box=frame_rect,
                class_id=class_id,
            )
        )

    logger.debug(f"Decoded {len(detections)} of {limit} anchors above {min_confidence:.2f}")
    return detections
