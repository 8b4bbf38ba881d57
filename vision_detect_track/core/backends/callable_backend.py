import logging
from typing import Callable, Optional, Sequence, Union

import numpy as np

from .base import InferenceBackend
from ..interfaces import RawDetectionBatch
from ...utils.exceptions import InferenceUnavailableError

logger = logging.getLogger(__name__)

InferenceOutput = Union[RawDetectionBatch, Sequence]


class CallableBackend(InferenceBackend):
    """
    Adapter that turns any ``image -> outputs`` callable into a backend.

    The callable may return a ``RawDetectionBatch`` or the four standard SSD
    outputs ``(locations, classes, scores, count)``.
    """

    def __init__(self, func: Callable[[np.ndarray], InferenceOutput], name: str = "callable"):
        self._func = func
        self.name = name
        self.use_hardware_acceleration = False
        self.num_threads = 1
        self._loaded = False

    def load_model(self) -> None:
        if not callable(self._func):
            raise InferenceUnavailableError(self.name, "Inference function is not callable")
        self._loaded = True

    def infer(self, image: np.ndarray) -> RawDetectionBatch:
        if not self._loaded:
            self.load_model()
        return to_raw_batch(self._func(image))

    def set_use_hardware_acceleration(self, enabled: bool) -> None:
        self.use_hardware_acceleration = bool(enabled)
        logger.info(f"{self.name}: hardware acceleration {'on' if enabled else 'off'}")

    def set_num_threads(self, num_threads: int) -> None:
        self.num_threads = int(num_threads)
        logger.info(f"{self.name}: using {num_threads} threads")

    def close(self) -> None:
        self._loaded = False


def to_raw_batch(outputs: InferenceOutput, count: Optional[int] = None) -> RawDetectionBatch:
    """Normalize model outputs into a ``RawDetectionBatch``."""
    if isinstance(outputs, RawDetectionBatch):
        return outputs

    locations, classes, scores, *rest = outputs
    if rest and count is None:
        count = int(np.asarray(rest[0]).reshape(-1)[0])
    return RawDetectionBatch(
        locations=np.asarray(locations).reshape(-1),
        scores=np.asarray(scores).reshape(-1),
        class_ids=None if classes is None else np.asarray(classes).reshape(-1),
        count=count,
    )
