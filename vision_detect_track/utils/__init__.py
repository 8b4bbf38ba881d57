from .config import (
    PipelineConfig, ModelConfig, PreviewConfig, TrackerConfig, AnnotationConfig,
    get_default_config, get_model_config, create_test_config
)
from .exceptions import (
    VisionTrackError, TransformError, SingularTransformError, InferenceUnavailableError,
    InterruptedWorkError, DecodeError, ImageProcessingError, ConfigurationError,
    UnsupportedOperationError
)
from .utils import (
    setup_logging, validate_frame, create_test_frame, save_frame, get_optimal_device,
    validate_confidence_threshold, Timer, format_detection_results
)

__all__ = [
    # Config
    "PipelineConfig", "ModelConfig", "PreviewConfig", "TrackerConfig", "AnnotationConfig",
    "get_default_config", "get_model_config", "create_test_config",
    # Exceptions
    "VisionTrackError", "TransformError", "SingularTransformError", "InferenceUnavailableError",
    "InterruptedWorkError", "DecodeError", "ImageProcessingError", "ConfigurationError",
    "UnsupportedOperationError",
    # Utils
    "setup_logging", "validate_frame", "create_test_frame", "save_frame", "get_optimal_device",
    "validate_confidence_threshold", "Timer", "format_detection_results"
]
