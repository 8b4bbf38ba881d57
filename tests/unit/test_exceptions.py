"""
Unit tests for custom exceptions.
"""

import pytest

from vision_detect_track.utils.exceptions import (
    ConfigurationError,
    DecodeError,
    ImageProcessingError,
    InferenceUnavailableError,
    InterruptedWorkError,
    SingularTransformError,
    TransformError,
    UnsupportedOperationError,
    VisionTrackError,
    handle_model_loading_error,
)


class TestVisionTrackError:
    """Tests for base VisionTrackError class."""

    def test_basic_creation(self):
        """Test basic error creation."""
        error = VisionTrackError("Test error")
        assert str(error) == "Test error"
        assert error.message == "Test error"
        assert error.details is None

    def test_with_details(self):
        """Test error creation with details."""
        error = VisionTrackError("Test error", details={"key": "value"})
        assert error.details == {"key": "value"}
        assert "Details:" in str(error)


class TestTransformErrors:
    """Tests for transform errors."""

    def test_singular_is_transform_error(self):
        """SingularTransformError is a TransformError."""
        error = SingularTransformError(0.0, [[1, 2, 0], [2, 4, 0], [0, 0, 1]])
        assert isinstance(error, TransformError)
        assert isinstance(error, VisionTrackError)
        assert error.determinant == 0.0
        assert "not invertible" in str(error)

    def test_transform_error_without_matrix(self):
        """TransformError has no details without a matrix."""
        error = TransformError("bad transform")
        assert error.details is None


class TestInferenceUnavailableError:
    """Tests for InferenceUnavailableError."""

    def test_basic_creation(self):
        """Model name and reason end up in the message."""
        error = InferenceUnavailableError("detect.pt", "Model file not found")
        assert error.model_name == "detect.pt"
        assert error.reason == "Model file not found"
        assert "detect.pt" in str(error)


class TestOtherErrors:
    """Tests for the remaining error types."""

    def test_interrupted_work(self):
        """InterruptedWorkError records the frame timestamp."""
        error = InterruptedWorkError(12)
        assert error.frame_timestamp == 12
        assert "12" in str(error)

    def test_decode_error_details(self):
        """DecodeError carries the anchor index and value."""
        error = DecodeError("bad score", anchor_index=3, value=1.5)
        assert error.details == {"anchor_index": 3, "value": 1.5}

    def test_decode_error_without_details(self):
        """DecodeError without context has no details."""
        assert DecodeError("bad").details is None

    def test_image_processing_error(self):
        """ImageProcessingError wraps the original error."""
        error = ImageProcessingError("warp", {"shape": (1, 1)}, ValueError("boom"))
        assert error.operation == "warp"
        assert "boom" in str(error)

    def test_configuration_error(self):
        """ConfigurationError names the parameter."""
        error = ConfigurationError("input_size", 0, "Must be positive")
        assert error.parameter == "input_size"
        assert "input_size" in str(error)

    def test_unsupported_operation(self):
        """UnsupportedOperationError names the backend."""
        error = UnsupportedOperationError("thread configuration", "callable")
        assert error.backend == "callable"
        assert "thread configuration" in str(error)


class TestHandleModelLoadingError:
    """Tests for handle_model_loading_error."""

    @pytest.mark.parametrize(
        "error, reason",
        [
            (FileNotFoundError("detect.pt"), "Model file not found"),
            (RuntimeError("CUDA out of memory"), "GPU/CUDA related error"),
            (RuntimeError("not enough memory"), "Insufficient memory"),
            (ImportError("No module named torch"), "Missing dependencies"),
            (RuntimeError("weird"), "Unknown error"),
        ],
    )
    def test_reason_classification(self, error, reason):
        """Generic errors are classified by their message."""
        wrapped = handle_model_loading_error("ssd", error)
        assert isinstance(wrapped, InferenceUnavailableError)
        assert wrapped.reason == reason

    def test_passthrough(self):
        """An InferenceUnavailableError is returned unchanged."""
        error = InferenceUnavailableError("ssd", "gone")
        assert handle_model_loading_error("ssd", error) is error
