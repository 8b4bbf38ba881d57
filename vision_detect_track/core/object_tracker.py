"""
Track manager that turns per-frame detections into renderable tracks.
By default the whole track set is replaced on every processed frame.
"""

import itertools
import logging
import threading
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import supervision as sv

from .interfaces import Detection, Track

logger = logging.getLogger(__name__)


class ObjectTracker:
    """
    Keeps the set of tracks the overlay draws.

    Features:
    - One track per incoming detection, colored from a fixed palette by index
    - Snapshot swapped atomically so a render thread can read it at any time
    - Optional greedy IoU association that carries ids and colors across frames
    - Optional minimum box size that drops degenerate rectangles
    """

    def __init__(
        self,
        palette: Optional[sv.ColorPalette] = None,
        min_box_size: float = 0.0,
        iou_threshold: Optional[float] = None,
        verbose: bool = False,
    ):
        """
        Args:
            palette: Fixed color palette, cycled by track index
            min_box_size: Skip detections narrower or shorter than this (pixels)
            iou_threshold: Enable association with previous tracks at this IoU
            verbose: Enable verbose logging
        """
        self.palette = palette or sv.ColorPalette.DEFAULT
        self.min_box_size = min_box_size
        self.iou_threshold = iou_threshold
        self.verbose = verbose

        self._tracks: Tuple[Track, ...] = ()
        self._lock = threading.Lock()
        self._id_counter = itertools.count()

    def reset(self):
        """Drop all tracks."""
        with self._lock:
            self._tracks = ()
            self._id_counter = itertools.count()

    def track_results(self, detections: Sequence[Detection], frame_timestamp: int) -> None:
        """
        Replace the current tracks with the detections of a newly processed frame.

        Args:
            detections: Frame-space detections in decoder order
            frame_timestamp: Timestamp of the frame the detections belong to
        """
        candidates = [d for d in detections if self._is_trackable(d)]

        if not candidates and self.verbose:
            logger.debug("Nothing to track")

        with self._lock:
            if self.iou_threshold is None:
                tracks = self._replace(candidates, frame_timestamp)
            else:
                tracks = self._associate(self._tracks, candidates, frame_timestamp)
            self._tracks = tuple(tracks)

        if self.verbose:
            logger.debug(f"Frame {frame_timestamp}: {len(tracks)} tracks")

    def current_tracks(self) -> Tuple[Track, ...]:
        """Read-only snapshot of the most recent track set."""
        with self._lock:
            return self._tracks

    def _is_trackable(self, detection: Detection) -> bool:
        box = detection.bounding_box
        if box.width < self.min_box_size or box.height < self.min_box_size:
            logger.warning(f"Degenerate rectangle! {box}")
            return False
        return True

    def _replace(self, detections: List[Detection], frame_timestamp: int) -> List[Track]:
        return [
            Track(
                track_id=str(i),
                color=self.palette.by_idx(i),
                current_box=detection.bounding_box,
                last_seen_timestamp=frame_timestamp,
                label=detection.label,
                confidence=detection.confidence,
            )
            for i, detection in enumerate(detections)
        ]

    def _associate(
        self, previous: Tuple[Track, ...], detections: List[Detection], frame_timestamp: int
    ) -> List[Track]:
        matches: Dict[int, Track] = {}

        if previous and detections:
            prev_boxes = np.array([t.current_box.to_xyxy() for t in previous], dtype=np.float64)
            new_boxes = np.array([d.bounding_box.to_xyxy() for d in detections], dtype=np.float64)
            iou = sv.box_iou_batch(prev_boxes, new_boxes)

            # Greedy, highest overlap first; ties resolved by index order
            order = np.argsort(-iou, axis=None, kind="stable")
            claimed_prev = set()
            for flat in order:
                p, d = np.unravel_index(flat, iou.shape)
                if iou[p, d] < self.iou_threshold:
                    break
                if p in claimed_prev or d in matches:
                    continue
                claimed_prev.add(p)
                matches[int(d)] = previous[p]

        tracks = []
        for i, detection in enumerate(detections):
            matched = matches.get(i)
            if matched is not None:
                track_id, color = matched.track_id, matched.color
            else:
                number = next(self._id_counter)
                track_id, color = f"t{number}", self.palette.by_idx(number)
                if self.verbose:
                    logger.debug(f"New track detected: ID {track_id}")

            tracks.append(
                Track(
                    track_id=track_id,
                    color=color,
                    current_box=detection.bounding_box,
                    last_seen_timestamp=frame_timestamp,
                    label=detection.label,
                    confidence=detection.confidence,
                )
            )

        return tracks

    def get_track_info(self, track_id: str) -> Optional[Dict[str, Any]]:
        """
        Get tracking information for a specific track ID.

        Returns:
            Dictionary with tracking info or None if track doesn't exist
        """
        for track in self.current_tracks():
            if track.track_id == track_id:
                return {
                    "track_id": track.track_id,
                    "label": track.label,
                    "confidence": track.confidence,
                    "bbox": track.current_box.to_bbox(),
                    "color": track.color.as_hex(),
                    "last_seen_timestamp": track.last_seen_timestamp,
                }
        return None

    def get_all_track_stats(self) -> Dict[str, Dict[str, Any]]:
        """Tracking info for every current track, keyed by track ID."""
        return {track.track_id: self.get_track_info(track.track_id) for track in self.current_tracks()}
