"""
FORECAST - Local Model Trainer

Fits the regressor that the local model stage loads.
"""

from collections.abc import Sequence
from pathlib import Path

import joblib
import numpy as np
from sklearn.ensemble import GradientBoostingRegressor

from shared import ComponentLogger, InvalidArgumentError, Observation
from shared.config import LocalModelConfig


class LocalModelTrainer:
    """
    Trains a next-price regressor on sliding windows of recorded prices.

    Each sample is ``window`` consecutive prices and its target is the
    price that follows. The fitted model is written with joblib so that
    ``LocalModelPredictor`` can pick it up.
    """

    def __init__(
        self,
        artifact_path: str | Path,
        window: int = 5,
        min_samples: int = 100,
    ):
        self.logger = ComponentLogger("FORECAST-TRAINER")
        self.artifact_path = Path(artifact_path)
        if self.artifact_path.suffix != ".joblib":
            raise InvalidArgumentError(
                "Trainer artifacts must use the .joblib suffix",
                {"artifact_path": str(self.artifact_path)},
            )
        if window < 1:
            raise InvalidArgumentError("window must be positive", {"window": window})
        self.window = window
        self.min_samples = min_samples

    @classmethod
    def from_config(
        cls,
        config: LocalModelConfig,
        artifact_path: str | Path | None = None,
    ) -> "LocalModelTrainer":
        """
        Trainer writing next to the configured artifact.

        Without an explicit ``artifact_path`` the model is saved beside
        ``config.artifact_path`` with a ``.joblib`` suffix, where
        ``LocalModelPredictor`` looks for it when the ONNX file is absent.
        """
        path = Path(artifact_path) if artifact_path is not None else (
            Path(config.artifact_path).with_suffix(".joblib")
        )
        return cls(
            artifact_path=path,
            window=config.heuristic_window,
            min_samples=config.min_samples,
        )

    def build_dataset(self, prices: Sequence[float]) -> tuple[np.ndarray, np.ndarray]:
        """Split prices into (windows, next price) pairs."""
        values = np.asarray(prices, dtype=np.float64)
        count = len(values) - self.window
        if count <= 0:
            return np.empty((0, self.window)), np.empty(0)

        X = np.stack([values[i:i + self.window] for i in range(count)])
        y = values[self.window:]
        return X, y

    def train(self, series: Sequence[Observation]) -> dict:
        """Train on ``series`` (oldest first) and persist the model."""
        X, y = self.build_dataset([o.value for o in series])

        if len(X) < self.min_samples:
            self.logger.warning("Insufficient training data", count=len(X))
            return {"status": "insufficient_data", "count": len(X)}

        self.logger.info("Training local model", samples=len(X), window=self.window)

        model = GradientBoostingRegressor(
            n_estimators=100,
            max_depth=3,
            learning_rate=0.1,
            random_state=42,
        )
        model.fit(X, y)
        train_score = model.score(X, y)

        self.artifact_path.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(model, self.artifact_path)

        self.logger.info(
            "Training completed",
            r2=round(train_score, 4),
            artifact=str(self.artifact_path),
        )

        return {
            "status": "success",
            "r2": train_score,
            "samples": len(X),
            "window": self.window,
            "artifact": str(self.artifact_path),
        }
