"""
FORECAST - Local Model Predictor

Runs a pre-trained model artifact when one is present. The stage is
optional: a missing or broken artifact yields None, never an error.
"""

import asyncio
import math
from collections.abc import Sequence
from pathlib import Path

import joblib
import numpy as np
import onnxruntime as ort

from shared import ComponentLogger, Observation, PredictionResult, PredictionSource
from shared.config import LocalModelConfig

from .base import PredictionStrategy


class LocalModelPredictor(PredictionStrategy):
    """
    Inference over a local artifact.

    ``.onnx`` artifacts run in an onnxruntime session fed a single float32
    tensor shaped ``[1, len(series)]``. ``.joblib`` artifacts hold a
    scikit-learn regressor written by ``LocalModelTrainer`` and are fed the
    last ``n_features_in_`` prices.
    """

    name = "local_model"

    def __init__(
        self,
        artifact_path: str | Path,
        input_name: str = "input",
        output_name: str = "output",
    ):
        self.logger = ComponentLogger("FORECAST-LOCAL-MODEL")
        self.artifact_path = Path(artifact_path)
        self.input_name = input_name
        self.output_name = output_name

    @classmethod
    def from_config(cls, config: LocalModelConfig) -> "LocalModelPredictor":
        return cls(
            artifact_path=config.artifact_path,
            input_name=config.input_name,
            output_name=config.output_name,
        )

    def resolve_artifact(self) -> Path | None:
        """
        The artifact to load: the configured file, else a trained ``.joblib``
        model beside it. Does not load anything.
        """
        candidates = [self.artifact_path]
        if self.artifact_path.suffix != ".joblib":
            candidates.append(self.artifact_path.with_suffix(".joblib"))
        for path in candidates:
            if path.is_file():
                return path
        return None

    def artifact_available(self) -> bool:
        return self.resolve_artifact() is not None

    async def attempt(self, series: Sequence[Observation]) -> PredictionResult | None:
        return await self.predict(series)

    async def predict(self, series: Sequence[Observation]) -> PredictionResult | None:
        if not series:
            return None

        try:
            artifact = self.resolve_artifact()
        except OSError as e:
            self.logger.warning("Could not probe model artifact", error=str(e))
            return None
        if artifact is None:
            self.logger.debug("Model artifact not found", artifact=str(self.artifact_path))
            return None

        prices = [o.value for o in series]
        try:
            price, explanation = await asyncio.to_thread(self._run, artifact, prices)
        except Exception as e:
            self.logger.warning(
                "Error running local model",
                artifact=str(artifact),
                error=str(e),
            )
            return None

        if not math.isfinite(price):
            self.logger.warning("Local model returned a non-finite value", price=price)
            return None

        self.logger.info("Local model prediction", price=price)
        return PredictionResult(
            price=price,
            explanation=explanation,
            source=PredictionSource.LOCAL_MODEL,
        )

    def _run(self, artifact: Path, prices: list[float]) -> tuple[float, str]:
        if artifact.suffix == ".joblib":
            return self._run_estimator(artifact, prices)
        return self._run_onnx(artifact, prices)

    def _run_onnx(self, artifact: Path, prices: list[float]) -> tuple[float, str]:
        session = ort.InferenceSession(
            str(artifact), providers=["CPUExecutionProvider"]
        )
        tensor = np.asarray(prices, dtype=np.float32).reshape(1, len(prices))
        outputs = session.run([self.output_name], {self.input_name: tensor})
        price = float(np.asarray(outputs[0]).reshape(-1)[0])
        return price, "Prediction generated by the ONNX model trained on historical data."

    def _run_estimator(self, artifact: Path, prices: list[float]) -> tuple[float, str]:
        estimator = joblib.load(artifact)
        width = int(getattr(estimator, "n_features_in_", len(prices)))
        if len(prices) < width:
            raise ValueError(f"Model expects {width} prices, got {len(prices)}")

        row = np.asarray(prices[-width:], dtype=np.float64).reshape(1, width)
        price = float(np.asarray(estimator.predict(row)).reshape(-1)[0])
        return price, (
            f"Prediction generated by the gradient boosting model trained on "
            f"windows of {width} historical prices."
        )


async def predict_local_model(
    series: Sequence[Observation],
    artifact_path: str | Path,
) -> PredictionResult | None:
    """Run the artifact at ``artifact_path`` over ``series``, if present."""
    return await LocalModelPredictor(artifact_path).predict(series)
