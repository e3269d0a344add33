"""Tests for the local model predictor and trainer."""

import math

import numpy as np
import pytest

from forecast import local_model
from forecast.local_model import LocalModelPredictor, predict_local_model
from forecast.training import LocalModelTrainer
from shared import ForecasterConfig, InvalidArgumentError, Observation, PredictionSource
from shared.config import LocalModelConfig


def make_series(prices, start_ts: int = 1_700_000_000) -> list[Observation]:
    return [Observation(value=float(p), observed_at=start_ts + i * 90) for i, p in enumerate(prices)]


def wave(count: int) -> list[float]:
    """Synthetic FLR-like prices oscillating around 0.02."""
    return [0.02 + 0.001 * math.sin(i / 4) for i in range(count)]


class _StubSession:
    """Stands in for onnxruntime.InferenceSession."""

    instances: list["_StubSession"] = []

    def __init__(self, path, providers=None):
        self.path = path
        self.providers = providers
        self.calls = []
        _StubSession.instances.append(self)

    def run(self, output_names, feeds):
        self.calls.append((output_names, feeds))
        tensor = next(iter(feeds.values()))
        return [np.array([[tensor.mean()]], dtype=np.float32)]


class TestLocalModelPredictor:
    """Test suite for LocalModelPredictor."""

    @pytest.mark.asyncio
    async def test_missing_artifact(self, tmp_path):
        """Test the stage declines when no artifact exists."""
        predictor = LocalModelPredictor(tmp_path / "model.onnx")

        assert predictor.artifact_available() is False
        assert await predictor.predict(make_series([1.0, 2.0])) is None

    @pytest.mark.asyncio
    async def test_empty_series(self, tmp_path):
        """Test an empty series declines."""
        path = tmp_path / "model.onnx"
        path.write_bytes(b"onnx")
        assert await LocalModelPredictor(path).predict([]) is None

    @pytest.mark.asyncio
    async def test_onnx_session(self, tmp_path, monkeypatch):
        """Test the series is fed as a single float32 row."""
        path = tmp_path / "model.onnx"
        path.write_bytes(b"onnx")
        _StubSession.instances.clear()
        monkeypatch.setattr(local_model.ort, "InferenceSession", _StubSession)

        result = await LocalModelPredictor(path).predict(make_series([1.0, 2.0, 3.0]))

        assert result is not None
        assert result.source == PredictionSource.LOCAL_MODEL
        assert result.price == pytest.approx(2.0)
        assert "ONNX" in result.explanation

        session = _StubSession.instances[0]
        assert session.providers == ["CPUExecutionProvider"]
        output_names, feeds = session.calls[0]
        assert output_names == ["output"]
        assert feeds["input"].dtype == np.float32
        assert feeds["input"].shape == (1, 3)

    @pytest.mark.asyncio
    async def test_custom_tensor_names(self, tmp_path, monkeypatch):
        """Test tensor names come from configuration."""
        path = tmp_path / "model.onnx"
        path.write_bytes(b"onnx")
        _StubSession.instances.clear()
        monkeypatch.setattr(local_model.ort, "InferenceSession", _StubSession)

        config = LocalModelConfig(artifact_path=str(path), input_name="prices", output_name="next")
        await LocalModelPredictor.from_config(config).predict(make_series([1.0, 2.0]))

        output_names, feeds = _StubSession.instances[0].calls[0]
        assert output_names == ["next"]
        assert "prices" in feeds

    @pytest.mark.asyncio
    async def test_non_finite_output(self, tmp_path, monkeypatch):
        """Test a NaN model output declines."""

        class NanSession(_StubSession):
            def run(self, output_names, feeds):
                return [np.array([[np.nan]], dtype=np.float32)]

        path = tmp_path / "model.onnx"
        path.write_bytes(b"onnx")
        monkeypatch.setattr(local_model.ort, "InferenceSession", NanSession)

        assert await LocalModelPredictor(path).predict(make_series([1.0, 2.0])) is None

    @pytest.mark.asyncio
    async def test_broken_artifact(self, tmp_path):
        """Test an unloadable artifact declines instead of raising."""
        path = tmp_path / "model.onnx"
        path.write_bytes(b"definitely not a model")

        assert await predict_local_model(make_series([1.0, 2.0]), path) is None

    @pytest.mark.asyncio
    async def test_trained_estimator(self, tmp_path):
        """Test a trainer artifact is picked up by the predictor."""
        path = tmp_path / "models" / "model.joblib"
        LocalModelTrainer(path, window=5, min_samples=50).train(make_series(wave(120)))

        result = await LocalModelPredictor(path).predict(make_series(wave(10)))

        assert result is not None
        assert result.source == PredictionSource.LOCAL_MODEL
        assert 0.018 < result.price < 0.022
        assert "5 historical prices" in result.explanation

    @pytest.mark.asyncio
    async def test_estimator_needs_full_window(self, tmp_path):
        """Test a series shorter than the model window declines."""
        path = tmp_path / "model.joblib"
        LocalModelTrainer(path, window=5, min_samples=50).train(make_series(wave(120)))

        assert await LocalModelPredictor(path).predict(make_series(wave(3))) is None

    @pytest.mark.asyncio
    async def test_trained_model_beside_configured_artifact(self, tmp_path):
        """Test a model trained from config is used when the ONNX file is absent."""
        config = LocalModelConfig(artifact_path=str(tmp_path / "models" / "model.onnx"), min_samples=50)
        trainer = LocalModelTrainer.from_config(config)
        trainer.train(make_series(wave(120)))

        predictor = LocalModelPredictor.from_config(config)
        assert predictor.resolve_artifact() == tmp_path / "models" / "model.joblib"

        result = await predictor.predict(make_series(wave(10)))
        assert result is not None
        assert result.source == PredictionSource.LOCAL_MODEL

    def test_onnx_artifact_preferred(self, tmp_path):
        """Test the configured file wins over a trained sibling."""
        onnx = tmp_path / "model.onnx"
        onnx.write_bytes(b"onnx")
        (tmp_path / "model.joblib").write_bytes(b"joblib")

        assert LocalModelPredictor(onnx).resolve_artifact() == onnx


class TestLocalModelTrainer:
    """Test suite for LocalModelTrainer."""

    def test_build_dataset(self, tmp_path):
        """Test sliding windows and next-price targets."""
        trainer = LocalModelTrainer(tmp_path / "m.joblib", window=3)

        X, y = trainer.build_dataset([1.0, 2.0, 3.0, 4.0, 5.0])

        assert X.tolist() == [[1.0, 2.0, 3.0], [2.0, 3.0, 4.0]]
        assert y.tolist() == [4.0, 5.0]

    def test_build_dataset_too_short(self, tmp_path):
        """Test a series no longer than the window yields no samples."""
        X, y = LocalModelTrainer(tmp_path / "m.joblib", window=5).build_dataset([1.0, 2.0])
        assert X.shape == (0, 5)
        assert len(y) == 0

    def test_insufficient_data(self, tmp_path):
        """Test training refuses small histories."""
        path = tmp_path / "m.joblib"
        result = LocalModelTrainer(path).train(make_series(wave(50)))

        assert result == {"status": "insufficient_data", "count": 45}
        assert not path.exists()

    def test_train_writes_artifact(self, tmp_path):
        """Test a successful run persists the model."""
        path = tmp_path / "nested" / "m.joblib"
        result = LocalModelTrainer(path, window=4, min_samples=100).train(make_series(wave(150)))

        assert result["status"] == "success"
        assert result["samples"] == 146
        assert result["window"] == 4
        assert result["r2"] > 0.5
        assert path.is_file()

    def test_invalid_arguments(self, tmp_path):
        """Test bad artifact suffixes and windows are rejected."""
        with pytest.raises(InvalidArgumentError):
            LocalModelTrainer(tmp_path / "model.onnx")
        with pytest.raises(InvalidArgumentError):
            LocalModelTrainer(tmp_path / "m.joblib", window=0)

    def test_from_config(self, tmp_path):
        """Test window, minimum samples and artifact path come from config."""
        config = LocalModelConfig(
            artifact_path=str(tmp_path / "model.onnx"),
            heuristic_window=7,
            min_samples=20,
        )

        trainer = LocalModelTrainer.from_config(config)

        assert trainer.window == 7
        assert trainer.min_samples == 20
        assert trainer.artifact_path == tmp_path / "model.joblib"

        explicit = LocalModelTrainer.from_config(config, artifact_path=tmp_path / "other.joblib")
        assert explicit.artifact_path == tmp_path / "other.joblib"

    def test_min_samples_from_environment(self, tmp_path, monkeypatch):
        """Test the minimum sample count is read from the environment."""
        monkeypatch.setenv("FORECASTER_LOCAL_MODEL__MIN_SAMPLES", "10")
        monkeypatch.setenv("FORECASTER_LOCAL_MODEL__ARTIFACT_PATH", str(tmp_path / "m.onnx"))

        trainer = LocalModelTrainer.from_config(ForecasterConfig().local_model)
        result = trainer.train(make_series(wave(30)))

        assert trainer.min_samples == 10
        assert result["status"] == "success"
        assert (tmp_path / "m.joblib").is_file()
