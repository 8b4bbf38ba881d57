"""
vision_detect_track/core/detection_pipeline.py

Camera-session pipeline: warps preview frames into the model crop, runs
inference and decoding on a single background worker, and keeps the track
snapshot and status strings for the overlay.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import cv2
import numpy as np

from .backends.base import InferenceBackend
from .detection_decoder import decode
from .frame_gate import FrameGate
from .interfaces import Detection, LabelProvider, Track
from .labels import IndexLabelProvider, LabelMap
from .object_tracker import ObjectTracker
from .transform import AffineTransform, build_frame_to_crop
from ..utils.config import PipelineConfig, get_default_config
from ..utils.exceptions import (
    ImageProcessingError,
    InterruptedWorkError,
    UnsupportedOperationError,
    VisionTrackError,
    handle_model_loading_error,
)
from ..utils.utils import Timer, save_frame, setup_logging, validate_frame

DEBUG_BOX_COLOR = (0, 0, 255)  # BGR red


@dataclass(frozen=True)
class StatusInfo:
    """Free-text status shown next to the preview."""

    frame_info: str = ""
    crop_info: str = ""
    inference_time: str = ""


@dataclass(frozen=True)
class _FrameTask:
    """Session state captured when a frame is handed to the worker."""

    timestamp: int
    session: int
    preview_size: Tuple[int, int]
    frame_to_crop: AffineTransform
    crop_to_frame: AffineTransform


class DetectionPipeline:
    """
    Detection and tracking pipeline for one camera session.

    Threading model:
    - ``process_image`` is called from the frame producer
    - decode and track run on exactly one background worker
    - ``get_tracks`` may be called from any render thread
    """

    def __init__(
        self,
        backend: InferenceBackend,
        config: Optional[PipelineConfig] = None,
        label_provider: Optional[LabelProvider] = None,
        status_callback: Optional[Callable[[StatusInfo], None]] = None,
        error_callback: Optional[Callable[[str], None]] = None,
    ):
        """
        Initialize the pipeline and load the model.

        Args:
            backend: Inference runtime producing raw detector tensors
            config: Optional PipelineConfig instance
            label_provider: Label source; defaults to the configured label map
                or index placeholders
            status_callback: Receives StatusInfo after every processed frame
            error_callback: Receives a short notice for recoverable errors

        Raises:
            ConfigurationError: If the configuration is invalid
            InferenceUnavailableError: If the model cannot be loaded
        """
        self._config = (config or get_default_config()).validate()
        self.verbose = self._config.verbose
        self._logger = setup_logging(self.verbose)

        self._backend = backend
        self._status_callback = status_callback
        self._error_callback = error_callback
        self._label_provider = label_provider or self._load_label_provider()

        self._tracker = ObjectTracker(
            min_box_size=self._config.tracker.min_box_size,
            iou_threshold=self._config.tracker.iou_threshold,
            verbose=self.verbose,
        )
        self._gate = FrameGate()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="DetectionWorker")

        # Session state, set in on_preview_size_chosen
        self._preview_size: Optional[Tuple[int, int]] = None
        self._sensor_orientation = 0
        self._frame_to_crop: Optional[AffineTransform] = None
        self._crop_to_frame: Optional[AffineTransform] = None
        self._crop_buffer: Optional[np.ndarray] = None
        self._debug_crop: Optional[np.ndarray] = None

        # Bumped on every preview change; results of older sessions are discarded
        self._session = 0
        self._session_lock = threading.Lock()

        self._timestamp = 0
        self._detections: List[Detection] = []
        self._status = StatusInfo()
        self._last_processing_time_ms = 0.0

        self._stats = {
            "frames_processed": 0,
            "frames_failed": 0,
            "frames_discarded": 0,
            "total_processing_ms": 0.0,
        }
        self._stats_lock = threading.Lock()

        try:
            with Timer(f"Loading {self._config.model.name}", self._logger):
                self._backend.load_model()
        except Exception as e:
            model_error = handle_model_loading_error(self._config.model.name, e)
            self._logger.error(str(model_error))
            self._executor.shutdown(wait=False)
            raise model_error from e

        self._apply_runtime_options()

        if self.verbose:
            self._logger.info(f"DetectionPipeline initialized with {self._config.model.name}")

    def _load_label_provider(self) -> LabelProvider:
        labels_file = self._config.model.labels_file
        if labels_file and Path(labels_file).exists():
            return LabelMap.from_file(labels_file)
        if labels_file:
            self._logger.info(f"Label file {labels_file} not found, using index labels")
        return IndexLabelProvider()

    def _apply_runtime_options(self):
        model_config = self._config.model
        try:
            if model_config.use_hardware_acceleration:
                self._backend.set_use_hardware_acceleration(True)
            if model_config.num_threads != 1:
                self._backend.set_num_threads(model_config.num_threads)
        except UnsupportedOperationError as e:
            self._logger.warning(str(e))

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    def get_desired_preview_size(self) -> Tuple[int, int]:
        return self._config.preview.desired_preview_size

    def on_preview_size_chosen(self, width: int, height: int, rotation: int = 0, screen_orientation: int = 0):
        """
        Set up the frame-to-crop mapping for a negotiated preview size.

        Args:
            width: Preview width in pixels
            height: Preview height in pixels
            rotation: Sensor rotation in degrees
            screen_orientation: Current screen rotation in degrees

        Raises:
            ConfigurationError: If the preview size is not positive
            TransformError: If the transform cannot be inverted
        """
        crop_size = self._config.model.input_size
        self._sensor_orientation = rotation - screen_orientation
        self._logger.info(f"Camera orientation relative to screen canvas: {self._sensor_orientation}")
        self._logger.info(f"Initializing at size {width}x{height}")

        frame_to_crop = build_frame_to_crop(
            width, height, crop_size, self._sensor_orientation, self._config.preview.maintain_aspect
        )
        crop_to_frame = frame_to_crop.invert()

        with self._session_lock:
            self._session += 1
            self._frame_to_crop = frame_to_crop
            self._crop_to_frame = crop_to_frame
            self._preview_size = (width, height)
            self._crop_buffer = np.zeros((crop_size, crop_size, 3), dtype=np.uint8)
            self._debug_crop = None
            self._detections = []
            self._status = StatusInfo()
            self._tracker.reset()

    @property
    def crop_to_frame(self) -> Optional[AffineTransform]:
        return self._crop_to_frame

    @property
    def frame_to_crop(self) -> Optional[AffineTransform]:
        return self._frame_to_crop

    @property
    def tracker(self) -> ObjectTracker:
        return self._tracker

    @property
    def frame_gate(self) -> FrameGate:
        return self._gate

    # ------------------------------------------------------------------
    # Frame processing
    # ------------------------------------------------------------------
    def process_image(self, frame: np.ndarray) -> bool:
        """
        Offer a preview frame to the pipeline.

        Returns:
            True if the frame was handed to the background worker, False if it
            was dropped because a previous frame is still in flight

        Raises:
            ImageProcessingError: If no preview size was chosen or the frame is invalid
        """
        self._timestamp += 1
        current_timestamp = self._timestamp

        with self._session_lock:
            if self._frame_to_crop is None:
                raise ImageProcessingError("process", {"error": "Preview size not chosen"})
            task = _FrameTask(
                timestamp=current_timestamp,
                session=self._session,
                preview_size=self._preview_size,
                frame_to_crop=self._frame_to_crop,
                crop_to_frame=self._crop_to_frame,
            )

        if not self._gate.try_begin_frame():
            return False

        try:
            if self.verbose:
                self._logger.debug(f"Preparing image {current_timestamp} for detection in bg thread.")

            crop = self._render_crop(frame, task)
            self._executor.submit(self._run_detection, crop, task)
        except Exception:
            self._gate.end_frame()
            raise

        return True

    def _render_crop(self, frame: np.ndarray, task: "_FrameTask") -> np.ndarray:
        validate_frame(frame, task.preview_size)
        crop_size = self._config.model.input_size

        if self._crop_buffer is None or self._crop_buffer.shape[2:] != frame.shape[2:] \
                or self._crop_buffer.dtype != frame.dtype:
            self._crop_buffer = np.zeros((crop_size, crop_size) + frame.shape[2:], dtype=frame.dtype)

        try:
            cv2.warpAffine(
                frame,
                task.frame_to_crop.to_cv2(),
                (crop_size, crop_size),
                dst=self._crop_buffer,
                flags=cv2.INTER_LINEAR,
            )
        except cv2.error as e:
            raise ImageProcessingError("warp", {"shape": frame.shape}, e) from e

        if self._config.preview.save_preview_frame:
            save_frame(self._crop_buffer, self._config.preview.preview_dump_dir, f"preview_{task.timestamp}")

        return self._crop_buffer

    def _run_detection(self, crop: np.ndarray, task: "_FrameTask"):
        """Decode+track one frame; always releases the frame gate."""
        model_config = self._config.model
        current_timestamp = task.timestamp

        try:
            self._logger.debug(f"Running detection on image {current_timestamp}")

            with Timer(f"Inference on image {current_timestamp}", self._logger) as timer:
                raw = self._backend.infer(crop)

            detections = decode(
                raw,
                model_config.min_confidence,
                model_config.input_size,
                task.crop_to_frame,
                label_provider=self._label_provider,
                respect_count=self._config.respect_count,
                strict=self._config.strict_decode,
            )
            debug_crop = self._draw_debug_crop(crop, detections, task.frame_to_crop)

            with self._session_lock:
                if task.session != self._session:
                    self._logger.info(f"Discarding frame {current_timestamp} from a previous preview session")
                    with self._stats_lock:
                        self._stats["frames_discarded"] += 1
                    return

                self._tracker.track_results(detections, current_timestamp)
                self._detections = detections
                self._debug_crop = debug_crop
                self._last_processing_time_ms = timer.duration_ms
                status = self._build_status(task)
                self._status = status

            with self._stats_lock:
                self._stats["frames_processed"] += 1
                self._stats["total_processing_ms"] += timer.duration_ms

            if self._status_callback is not None:
                self._status_callback(status)

        except InterruptedWorkError as e:
            self._logger.warning(f"Abandoned frame {current_timestamp}: {e}")
        except VisionTrackError as e:
            self._record_failure(current_timestamp, e)
        except Exception as e:
            self._logger.exception(f"Unexpected failure on frame {current_timestamp}")
            self._record_failure(current_timestamp, e)
        finally:
            self._gate.end_frame()

    def _record_failure(self, current_timestamp: int, error: Exception):
        with self._stats_lock:
            self._stats["frames_failed"] += 1
        self._logger.error(f"Detection failed on frame {current_timestamp}: {error}")
        self._notify(str(error))

    @staticmethod
    def _draw_debug_crop(crop: np.ndarray, detections: List[Detection], frame_to_crop: AffineTransform) -> np.ndarray:
        """Copy of the model input with the kept detections outlined in red."""
        debug_crop = crop.copy()
        for detection in detections:
            x_min, y_min, x_max, y_max = frame_to_crop.map_rect(detection.bounding_box).to_xyxy()
            cv2.rectangle(
                debug_crop,
                (int(round(x_min)), int(round(y_min))),
                (int(round(x_max)), int(round(y_max))),
                DEBUG_BOX_COLOR,
                2,
            )
        return debug_crop

    def _build_status(self, task: "_FrameTask") -> StatusInfo:
        width, height = task.preview_size
        crop_size = self._config.model.input_size
        return StatusInfo(
            frame_info=f"{width}x{height}",
            crop_info=f"{crop_size}x{crop_size}",
            inference_time=f"{int(self._last_processing_time_ms)}ms",
        )

    def _notify(self, message: str):
        if self._error_callback is not None:
            self._error_callback(message)

    # ------------------------------------------------------------------
    # Runtime options
    # ------------------------------------------------------------------
    def set_use_hardware_acceleration(self, enabled: bool) -> Future:
        """Toggle hardware acceleration on the worker thread."""
        return self._executor.submit(self._apply_option, self._backend.set_use_hardware_acceleration, enabled)

    def set_num_threads(self, num_threads: int) -> Future:
        """Change the runtime thread count on the worker thread."""
        return self._executor.submit(self._apply_option, self._backend.set_num_threads, num_threads)

    def _apply_option(self, setter: Callable[[Any], None], value: Any) -> bool:
        try:
            setter(value)
            return True
        except UnsupportedOperationError as e:
            self._logger.error(f"Failed to apply runtime option: {e}")
            self._notify(str(e))
            return False

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------
    def get_tracks(self) -> Tuple[Track, ...]:
        return self._tracker.current_tracks()

    def get_detections(self) -> List[Detection]:
        return list(self._detections)

    def get_status(self) -> StatusInfo:
        return self._status

    def get_crop_image(self) -> Optional[np.ndarray]:
        return None if self._crop_buffer is None else self._crop_buffer.copy()

    def get_debug_crop(self) -> Optional[np.ndarray]:
        """Model input of the last processed frame with the kept detections drawn in crop space."""
        debug_crop = self._debug_crop
        return None if debug_crop is None else debug_crop.copy()

    def get_stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            stats = dict(self._stats)
        processed = stats["frames_processed"]
        stats["frames_received"] = self._timestamp
        stats["frames_accepted"] = self._gate.accepted_frames
        stats["frames_dropped"] = self._gate.dropped_frames
        stats["avg_processing_ms"] = stats["total_processing_ms"] / processed if processed else 0.0
        return stats

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until all work submitted so far has finished."""
        try:
            self._executor.submit(lambda: None).result(timeout=timeout)
            return True
        except FutureTimeoutError:
            return False

    def shutdown(self):
        """Stop the worker, close the backend and free the session transforms."""
        self._executor.shutdown(wait=True)
        self._backend.close()
        with self._session_lock:
            self._session += 1
            self._frame_to_crop = None
            self._crop_to_frame = None
            self._crop_buffer = None
            self._debug_crop = None
            self._tracker.reset()
        if self.verbose:
            self._logger.info("DetectionPipeline shut down")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
