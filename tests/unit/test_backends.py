"""
Unit tests for inference backends.
"""

from typing import Tuple

import numpy as np
import pytest
import torch

from vision_detect_track.core.backends import CallableBackend, InferenceBackend, TorchScriptBackend, to_raw_batch
from vision_detect_track.core.interfaces import RawDetectionBatch
from vision_detect_track.utils.config import ModelConfig, get_model_config
from vision_detect_track.utils.exceptions import InferenceUnavailableError, UnsupportedOperationError


class TinySSD(torch.nn.Module):
    """Fixed-output detector with the standard four SSD outputs."""

    def __init__(self):
        super().__init__()
        self.register_buffer("locations", torch.tensor([[[0.1, 0.2, 0.8, 0.9], [0.0, 0.0, 0.5, 0.5]]]))
        self.register_buffer("scores", torch.tensor([[0.9, 0.3]]))

    def forward(self, x: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor, torch.Tensor, torch.Tensor]:
        batch = x.shape[0]
        classes = torch.zeros([batch, 2])
        count = torch.full([batch], 2.0)
        return self.locations, classes, self.scores, count


class TestToRawBatch:
    """Tests for to_raw_batch."""

    def test_passthrough(self, raw_batch):
        """A RawDetectionBatch is returned unchanged."""
        assert to_raw_batch(raw_batch) is raw_batch

    def test_from_ssd_outputs(self):
        """Batched SSD outputs are flattened and the count is read."""
        locations = np.zeros((1, 3, 4))
        classes = np.array([[1.0, 2.0, 3.0]])
        scores = np.array([[0.9, 0.3, 0.6]])
        count = np.array([2.0])

        raw = to_raw_batch((locations, classes, scores, count))

        assert raw.capacity == 3
        assert raw.locations.shape == (12,)
        assert raw.count == 2
        assert raw.class_id(2) == 3

    def test_without_count(self):
        """Three outputs are accepted when the count is missing."""
        raw = to_raw_batch((np.zeros(4), None, np.array([0.5])))
        assert raw.count is None
        assert raw.class_ids is None


class TestCallableBackend:
    """Tests for CallableBackend."""

    def test_infer(self, raw_batch):
        """The wrapped function is called with the image."""
        calls = []

        def func(image):
            calls.append(image.shape)
            return raw_batch

        backend = CallableBackend(func)
        result = backend.infer(np.zeros((320, 320, 3), dtype=np.uint8))

        assert result is raw_batch
        assert calls == [(320, 320, 3)]

    def test_not_callable(self):
        """A non-callable cannot be loaded."""
        with pytest.raises(InferenceUnavailableError):
            CallableBackend("not a function").load_model()

    def test_runtime_options(self):
        """Runtime toggles are recorded."""
        backend = CallableBackend(lambda image: None)
        backend.set_use_hardware_acceleration(True)
        backend.set_num_threads(4)
        assert backend.use_hardware_acceleration is True
        assert backend.num_threads == 4


class TestBaseBackend:
    """Tests for the InferenceBackend defaults."""

    def test_runtime_options_unsupported(self):
        """Backends without toggles refuse runtime options."""

        class FixedBackend(InferenceBackend):
            def load_model(self):
                pass

            def infer(self, image):
                return RawDetectionBatch([], [])

        backend = FixedBackend()
        with pytest.raises(UnsupportedOperationError):
            backend.set_use_hardware_acceleration(True)
        with pytest.raises(UnsupportedOperationError):
            backend.set_num_threads(2)


class TestTorchScriptBackend:
    """Tests for TorchScriptBackend."""

    def test_missing_model(self, tmp_path):
        """A missing model file makes inference unavailable."""
        backend = TorchScriptBackend(tmp_path / "missing.pt")
        with pytest.raises(InferenceUnavailableError) as exc_info:
            backend.load_model()
        assert exc_info.value.reason == "Model file not found"

    def test_corrupt_model(self, tmp_path):
        """A file that is not a TorchScript archive fails to load."""
        path = tmp_path / "broken.pt"
        path.write_bytes(b"not a model")
        with pytest.raises(InferenceUnavailableError):
            TorchScriptBackend(path).load_model()

    @pytest.fixture
    def scripted_model(self, tmp_path):
        path = tmp_path / "tiny_ssd.pt"
        torch.jit.script(TinySSD()).save(str(path))
        return path

    def test_infer_quantized(self, scripted_model):
        """A uint8 crop runs through the scripted model."""
        backend = TorchScriptBackend(scripted_model, input_size=320, is_quantized=True)
        backend.load_model()

        raw = backend.infer(np.zeros((320, 320, 3), dtype=np.uint8))

        assert raw.capacity == 2
        assert raw.count == 2
        assert raw.scores == pytest.approx([0.9, 0.3])
        assert raw.box(0) == pytest.approx([0.1, 0.2, 0.8, 0.9])

    def test_infer_float_loads_lazily(self, scripted_model):
        """Float models are fed normalized input and loaded on first use."""
        backend = TorchScriptBackend(scripted_model, is_quantized=False)
        raw = backend.infer(np.full((320, 320, 3), 255, dtype=np.uint8))
        assert raw.capacity == 2

    def test_preprocess_float_range(self, tmp_path):
        """Float preprocessing maps [0, 255] to [-1, 1]."""
        backend = TorchScriptBackend(tmp_path / "unused.pt", is_quantized=False)
        tensor = backend._preprocess(np.array([[[0, 255, 127.5]]], dtype=np.float32))
        assert tensor.shape == (1, 1, 1, 3)
        assert tensor.flatten().tolist() == pytest.approx([-1.0, 1.0, 0.0])

    def test_set_num_threads(self, tmp_path):
        """Thread count is forwarded to torch."""
        previous = torch.get_num_threads()
        backend = TorchScriptBackend(tmp_path / "unused.pt")
        try:
            backend.set_num_threads(2)
            assert torch.get_num_threads() == 2
        finally:
            torch.set_num_threads(previous)

    def test_acceleration_without_cuda(self, tmp_path):
        """Requesting acceleration on a CPU-only host is unsupported."""
        if torch.cuda.is_available():
            pytest.skip("CUDA available")
        backend = TorchScriptBackend(tmp_path / "unused.pt")
        with pytest.raises(UnsupportedOperationError):
            backend.set_use_hardware_acceleration(True)
        backend.set_use_hardware_acceleration(False)
        assert backend.device == "cpu"

    def test_from_config_uses_configured_device(self):
        """The model config's device choice and runtime settings are applied."""
        config = get_model_config("ssd_mobilenet_float")
        config.device_preference = "cpu"
        config.use_hardware_acceleration = True
        config.num_threads = 3

        backend = TorchScriptBackend.from_config(config)

        assert backend.device == "cpu"
        assert backend.num_threads == 3
        assert backend.input_size == 300
        assert backend.is_quantized is False
        assert backend.model_path.name == "detect_float.pt"

    def test_from_config_auto_device(self):
        """Auto selection stays on CPU without acceleration."""
        backend = TorchScriptBackend.from_config(ModelConfig(name="ssd", model_path="detect.pt"))
        assert backend.device == "cpu"

    def test_from_config_without_model_path(self):
        """A configuration without a model file cannot produce a backend."""
        with pytest.raises(InferenceUnavailableError) as exc_info:
            TorchScriptBackend.from_config(ModelConfig(name="ssd"))
        assert exc_info.value.reason == "No model file configured"
