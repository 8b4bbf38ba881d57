import numpy as np
from abc import ABC, abstractmethod

from ..interfaces import RawDetectionBatch
from ...utils.exceptions import UnsupportedOperationError


class InferenceBackend(ABC):
    """Abstract base class for model runtimes that produce raw detector tensors."""

    name: str = "backend"

    @abstractmethod
    def load_model(self) -> None:
        """Load the model and allocate runtime resources."""
        pass

    @abstractmethod
    def infer(self, image: np.ndarray) -> RawDetectionBatch:
        """
        Run the model on a cropped input image.

        Args:
            image: Square model input (input_size x input_size x 3)

        Returns:
            Raw locations, classes, scores and count for the frame
        """
        pass

    def set_use_hardware_acceleration(self, enabled: bool) -> None:
        """Toggle hardware acceleration; backends without a toggle refuse."""
        raise UnsupportedOperationError("hardware acceleration", self.name)

    def set_num_threads(self, num_threads: int) -> None:
        """Set the number of runtime threads; backends without a toggle refuse."""
        raise UnsupportedOperationError("thread configuration", self.name)

    def close(self) -> None:
        """Release runtime resources."""
        pass
