"""
Custom exceptions for the vision_detect_track package.
Provides specific error types for better error handling and debugging.
"""

from typing import Optional, Any


class VisionTrackError(Exception):
    """
    Base exception class for all detection and tracking errors.

    All other custom exceptions in this package should inherit from this class.
    """

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class TransformError(VisionTrackError):
    """
    Exception raised when the frame/crop affine transform cannot be built.

    Fatal to the current camera session: preview setup should be aborted.
    """

    def __init__(self, message: str, matrix: Optional[Any] = None):
        self.matrix = matrix
        super().__init__(message, {"matrix": matrix} if matrix is not None else None)


class SingularTransformError(TransformError):
    """Exception raised when an affine transform has no inverse."""

    def __init__(self, determinant: float, matrix: Optional[Any] = None):
        self.determinant = determinant
        super().__init__(f"Affine transform is not invertible (determinant={determinant:.3g})", matrix)


class InferenceUnavailableError(VisionTrackError):
    """
    Exception raised when the inference backend cannot be used.

    This can happen due to:
    - Missing model files
    - Model runtime failing to initialize
    - Missing dependencies
    """

    def __init__(self, model_name: str, reason: str, details: Optional[Any] = None):
        self.model_name = model_name
        self.reason = reason
        message = f"Inference unavailable for model '{model_name}': {reason}"
        super().__init__(message, details)


class InterruptedWorkError(VisionTrackError):
    """
    Exception raised when the background worker is interrupted mid-cycle.

    The in-flight frame is abandoned; the process keeps running.
    """

    def __init__(self, frame_timestamp: Optional[int] = None, reason: str = "interrupted"):
        self.frame_timestamp = frame_timestamp
        self.reason = reason
        message = f"Processing of frame {frame_timestamp} was {reason}"
        super().__init__(message)


class DecodeError(VisionTrackError):
    """
    Exception raised by strict decoding when the raw tensors are malformed.

    This can happen due to:
    - A locations tensor whose length is not 4 x capacity
    - A class id tensor of the wrong length
    - Scores outside [0, 1]
    """

    def __init__(self, message: str, anchor_index: Optional[int] = None, value: Optional[Any] = None):
        self.anchor_index = anchor_index
        self.value = value

        details = {}
        if anchor_index is not None:
            details["anchor_index"] = anchor_index
        if value is not None:
            details["value"] = value

        super().__init__(message, details if details else None)


class ImageProcessingError(VisionTrackError):
    """
    Exception raised when frame processing operations fail.

    This can happen due to:
    - Invalid frame format
    - Frame size not matching the negotiated preview size
    - Warp or copy failures
    """

    def __init__(self, operation: str, image_info: Optional[dict] = None, original_error: Optional[Exception] = None):
        self.operation = operation
        self.image_info = image_info
        self.original_error = original_error

        message = f"Image processing failed during {operation}"
        if original_error:
            message += f": {str(original_error)}"

        details = {
            "operation": operation,
            "image_info": image_info,
            "original_error": str(original_error) if original_error else None,
        }

        super().__init__(message, details)


class ConfigurationError(VisionTrackError):
    """
    Exception raised when there are configuration-related errors.

    This can happen due to:
    - Invalid configuration parameters
    - Missing required configuration values
    - Incompatible configuration combinations
    """

    def __init__(self, parameter: str, value: Any, reason: str):
        self.parameter = parameter
        self.value = value
        self.reason = reason

        message = f"Invalid configuration for '{parameter}': {reason}"
        details = {"parameter": parameter, "value": value, "reason": reason}

        super().__init__(message, details)


class UnsupportedOperationError(VisionTrackError):
    """Exception raised when a backend cannot apply a runtime setting."""

    def __init__(self, operation: str, backend: str):
        self.operation = operation
        self.backend = backend
        super().__init__(f"Backend '{backend}' does not support {operation}")


# Utility functions for exception handling
def handle_model_loading_error(model_name: str, error: Exception) -> InferenceUnavailableError:
    """
    Convert a generic exception to an InferenceUnavailableError with useful context.

    Args:
        model_name: Name of the model that failed to load
        error: The original exception

    Returns:
        InferenceUnavailableError: Wrapped exception with additional context
    """
    if isinstance(error, InferenceUnavailableError):
        return error

    if isinstance(error, FileNotFoundError):
        reason = "Model file not found"
    elif "CUDA" in str(error) or "GPU" in str(error):
        reason = "GPU/CUDA related error"
    elif "memory" in str(error).lower():
        reason = "Insufficient memory"
    elif "import" in str(error).lower() or "module" in str(error).lower():
        reason = "Missing dependencies"
    else:
        reason = "Unknown error"

    return InferenceUnavailableError(model_name, reason, str(error))
