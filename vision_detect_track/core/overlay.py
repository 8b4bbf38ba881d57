"""
Adapter between the track snapshot and supervision annotators.

Drawing itself belongs to the caller's overlay; these helpers only convert
tracks and render them onto a BGR frame.
"""

from typing import List, Optional, Sequence

import numpy as np
import supervision as sv

from .interfaces import Track
from ..utils.config import AnnotationConfig


def tracks_to_detections(tracks: Sequence[Track]) -> sv.Detections:
    """Convert tracks into a ``supervision.Detections`` (class_id = snapshot index)."""
    if not tracks:
        return sv.Detections.empty()

    return sv.Detections(
        xyxy=np.array([t.current_box.to_xyxy() for t in tracks], dtype=np.float32),
        confidence=np.array([t.confidence for t in tracks], dtype=np.float32),
        class_id=np.arange(len(tracks)),
        data={
            "label": np.array([t.label for t in tracks]),
            "track_id": np.array([t.track_id for t in tracks]),
        },
    )


def _labels(tracks: Sequence[Track], config: AnnotationConfig) -> List[str]:
    labels = []
    for track in tracks:
        parts = []
        if config.show_labels:
            parts.append(track.label.strip())
        if config.show_confidence:
            parts.append(f"{track.confidence:.2f}")
        labels.append(" ".join(parts))
    return labels


def annotate_tracks(
    image: np.ndarray, tracks: Sequence[Track], config: Optional[AnnotationConfig] = None
) -> np.ndarray:
    """
    Draw track boxes and labels on a copy of ``image``.

    Each track keeps its own palette color.
    """
    config = config or AnnotationConfig()
    annotated = image.copy()
    if not tracks:
        return annotated

    detections = tracks_to_detections(tracks)
    palette = sv.ColorPalette([t.color for t in tracks])

    box_annotator = sv.BoxAnnotator(
        color=palette, thickness=config.box_thickness, color_lookup=sv.ColorLookup.INDEX
    )
    annotated = box_annotator.annotate(scene=annotated, detections=detections)

    if config.show_labels or config.show_confidence:
        label_annotator = sv.LabelAnnotator(
            color=palette,
            text_scale=config.text_scale,
            text_padding=config.text_padding,
            color_lookup=sv.ColorLookup.INDEX,
        )
        annotated = label_annotator.annotate(
            scene=annotated, detections=detections, labels=_labels(tracks, config)
        )

    return annotated
