"""
Configuration module for vision_detect_track package.
Contains all configurable parameters and default values.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
import torch

from .exceptions import ConfigurationError
from .utils import validate_confidence_threshold


@dataclass
class ModelConfig:
    """Configuration for the detection model and its runtime."""

    name: str
    model_path: Optional[str] = None
    labels_file: Optional[str] = None
    input_size: int = 320
    is_quantized: bool = True
    min_confidence: float = 0.5

    # Passed through to the inference backend
    use_hardware_acceleration: bool = False
    num_threads: int = 1
    device_preference: str = "auto"  # "auto", "cuda", "cpu"

    def get_device(self) -> str:
        """Get the actual device to use based on preference and availability."""
        if self.device_preference == "auto":
            if self.use_hardware_acceleration and torch.cuda.is_available():
                return "cuda"
            return "cpu"
        return self.device_preference


@dataclass
class PreviewConfig:
    """Configuration for the camera preview and the frame-to-crop mapping."""

    desired_preview_size: Tuple[int, int] = (640, 480)
    maintain_aspect: bool = False
    save_preview_frame: bool = False  # dump the model input for inspection
    preview_dump_dir: str = "log"


@dataclass
class TrackerConfig:
    """Configuration for the track manager."""

    min_box_size: float = 0.0
    iou_threshold: Optional[float] = None  # None replaces the track set every frame


@dataclass
class AnnotationConfig:
    """Configuration for overlay annotation."""

    text_scale: float = 0.5
    text_padding: int = 3
    box_thickness: int = 2
    show_confidence: bool = True
    show_labels: bool = True


@dataclass
class PipelineConfig:
    """Main configuration class for the detection and tracking pipeline."""

    # Sub-configurations
    model: ModelConfig = field(default_factory=lambda: ModelConfig("ssd_mobilenet"))
    preview: PreviewConfig = field(default_factory=PreviewConfig)
    tracker: TrackerConfig = field(default_factory=TrackerConfig)
    annotation: AnnotationConfig = field(default_factory=AnnotationConfig)

    # General settings
    verbose: bool = False
    respect_count: bool = False
    strict_decode: bool = False

    def validate(self) -> "PipelineConfig":
        """
        Check value ranges and return self.

        Raises:
            ConfigurationError: If any parameter is out of range
        """
        if self.model.input_size <= 0:
            raise ConfigurationError("model.input_size", self.model.input_size, "Must be positive")
        validate_confidence_threshold(self.model.min_confidence, "model.min_confidence")
        if self.model.num_threads < 1:
            raise ConfigurationError("model.num_threads", self.model.num_threads, "Must be at least 1")
        if self.model.device_preference not in ("auto", "cuda", "cpu"):
            raise ConfigurationError(
                "model.device_preference", self.model.device_preference, "Use 'auto', 'cuda' or 'cpu'"
            )

        width, height = self.preview.desired_preview_size
        if width <= 0 or height <= 0:
            raise ConfigurationError("preview.desired_preview_size", self.preview.desired_preview_size, "Must be positive")

        if self.tracker.min_box_size < 0:
            raise ConfigurationError("tracker.min_box_size", self.tracker.min_box_size, "Must not be negative")
        iou = self.tracker.iou_threshold
        if iou is not None and not 0.0 < iou <= 1.0:
            raise ConfigurationError("tracker.iou_threshold", iou, "Must be in (0.0, 1.0]")

        return self


# Predefined model configurations
MODEL_CONFIGS: Dict[str, ModelConfig] = {
    "ssd_mobilenet": ModelConfig(
        name="ssd_mobilenet",
        model_path="detect.pt",
        labels_file="labelmap.txt",
        input_size=320,
        is_quantized=True,
        min_confidence=0.5,
    ),
    "ssd_mobilenet_float": ModelConfig(
        name="ssd_mobilenet_float",
        model_path="detect_float.pt",
        labels_file="labelmap.txt",
        input_size=300,
        is_quantized=False,
        min_confidence=0.5,
    ),
    "efficientdet_lite0": ModelConfig(
        name="efficientdet_lite0",
        model_path="efficientdet_lite0.pt",
        labels_file="labelmap.txt",
        input_size=320,
        is_quantized=True,
        min_confidence=0.4,
    ),
}


def get_model_config(model_name: str) -> ModelConfig:
    """
    Get a copy of a predefined model configuration.

    Raises:
        ValueError: If model_name is not supported
    """
    if model_name not in MODEL_CONFIGS:
        raise ValueError(f"Unsupported model: {model_name}. " f"Available models: {list(MODEL_CONFIGS.keys())}")
    base = MODEL_CONFIGS[model_name]
    return ModelConfig(**base.__dict__)


def get_default_config(model_name: str = "ssd_mobilenet") -> PipelineConfig:
    """
    Get a default configuration for the specified model.

    Args:
        model_name: Name of the detection model to use

    Returns:
        PipelineConfig: Default configuration instance

    Raises:
        ValueError: If model_name is not supported
    """
    config = PipelineConfig()
    config.model = get_model_config(model_name)
    return config


def create_test_config() -> PipelineConfig:
    """
    Create a configuration optimized for testing.

    Returns:
        PipelineConfig: Test configuration without model files and with strict decoding
    """
    config = get_default_config("ssd_mobilenet")
    config.verbose = True
    config.model.model_path = None
    config.model.labels_file = None
    config.strict_decode = True
    return config
