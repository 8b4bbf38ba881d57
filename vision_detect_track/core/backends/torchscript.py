import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np
import torch

from .base import InferenceBackend
from .callable_backend import to_raw_batch
from ..interfaces import RawDetectionBatch
from ...utils.config import ModelConfig
from ...utils.exceptions import (
    InferenceUnavailableError,
    UnsupportedOperationError,
    handle_model_loading_error,
)
from ...utils.utils import Timer, get_optimal_device

logger = logging.getLogger(__name__)

IMAGE_MEAN = 127.5
IMAGE_STD = 127.5


class TorchScriptBackend(InferenceBackend):
    """
    Runs an exported SSD-style detector with TorchScript.

    The model takes an NHWC batch of one image and returns the four standard
    post-processed outputs: locations ``[1, N, 4]``, classes ``[1, N]``,
    scores ``[1, N]`` and the number of detections ``[1]``.
    """

    name = "torchscript"

    def __init__(
        self,
        model_path: Union[str, Path],
        input_size: int = 320,
        is_quantized: bool = True,
        use_hardware_acceleration: bool = False,
        num_threads: int = 1,
        device: Optional[str] = None,
    ):
        self.model_path = Path(model_path)
        self.input_size = input_size
        self.is_quantized = is_quantized
        self.num_threads = num_threads
        self._device = device or get_optimal_device(prefer_gpu=use_hardware_acceleration)
        self._model: Optional[torch.jit.ScriptModule] = None

    @classmethod
    def from_config(cls, model_config: ModelConfig) -> "TorchScriptBackend":
        """
        Create a backend for a model configuration.

        Raises:
            InferenceUnavailableError: If the configuration names no model file
        """
        if not model_config.model_path:
            raise InferenceUnavailableError(model_config.name, "No model file configured")

        return cls(
            model_config.model_path,
            input_size=model_config.input_size,
            is_quantized=model_config.is_quantized,
            num_threads=model_config.num_threads,
            device=model_config.get_device(),
        )

    @property
    def device(self) -> str:
        return self._device

    def load_model(self) -> None:
        """
        Load the TorchScript module.

        Raises:
            InferenceUnavailableError: If the file is missing or cannot be loaded
        """
        if not self.model_path.exists():
            raise InferenceUnavailableError(str(self.model_path), "Model file not found")

        try:
            with Timer(f"Loading {self.model_path.name}", logger):
                torch.set_num_threads(self.num_threads)
                model = torch.jit.load(str(self.model_path), map_location=self._device)
                model.eval()
        except Exception as e:
            raise handle_model_loading_error(str(self.model_path), e) from e

        self._model = model
        logger.info(f"Loaded {self.model_path.name} on {self._device}")

    def _preprocess(self, image: np.ndarray) -> torch.Tensor:
        tensor = torch.from_numpy(np.ascontiguousarray(image)).unsqueeze(0)
        if self.is_quantized:
            tensor = tensor.to(torch.uint8)
        else:
            tensor = (tensor.to(torch.float32) - IMAGE_MEAN) / IMAGE_STD
        return tensor.to(self._device)

    def infer(self, image: np.ndarray) -> RawDetectionBatch:
        if self._model is None:
            self.load_model()

        try:
            with torch.inference_mode():
                outputs = self._model(self._preprocess(image))
        except Exception as e:
            raise InferenceUnavailableError(str(self.model_path), "Inference failed", str(e)) from e

        return to_raw_batch([o.detach().cpu().numpy() for o in outputs])

    def set_use_hardware_acceleration(self, enabled: bool) -> None:
        if enabled and not torch.cuda.is_available():
            raise UnsupportedOperationError("hardware acceleration (CUDA not available)", self.name)

        self._device = "cuda" if enabled else "cpu"
        if self._model is not None:
            self._model = self._model.to(self._device)
        logger.info(f"Inference device set to {self._device}")

    def set_num_threads(self, num_threads: int) -> None:
        self.num_threads = num_threads
        torch.set_num_threads(num_threads)

    def close(self) -> None:
        self._model = None
        if self._device == "cuda":
            torch.cuda.empty_cache()
