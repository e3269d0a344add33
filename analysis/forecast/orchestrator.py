"""
FORECAST - Prediction Cascade

Tries each registered strategy in order and returns the first usable
prediction. The default order is remote inference, local model, then the
weighted trend heuristic.
"""

import math
from collections.abc import Sequence

from shared import (
    ComponentLogger,
    EmptySeriesError,
    ForecasterConfig,
    Observation,
    PredictionResult,
    PredictionSource,
    get_config,
)

from .base import PredictionStrategy
from .heuristic import HeuristicPredictor
from .local_model import LocalModelPredictor
from .remote import RemoteInferencePredictor


def _usable(result: PredictionResult | None) -> bool:
    return (
        result is not None
        and result.price is not None
        and math.isfinite(result.price)
    )


class PredictionCascade:
    """Ordered registry of prediction strategies."""

    def __init__(self, strategies: Sequence[PredictionStrategy] | None = None):
        self.logger = ComponentLogger("FORECAST-CASCADE")
        self.strategies: list[PredictionStrategy] = list(strategies or [])

        # Statistics
        self.predictions_served = 0
        self.fallbacks = 0

    def register(
        self,
        strategy: PredictionStrategy,
        position: int | None = None,
    ) -> "PredictionCascade":
        """Add a strategy at ``position`` (appended by default)."""
        if position is None:
            self.strategies.append(strategy)
        else:
            self.strategies.insert(position, strategy)
        return self

    @property
    def order(self) -> list[str]:
        return [s.name for s in self.strategies]

    async def predict(self, series: Sequence[Observation]) -> PredictionResult:
        """Return the first usable prediction for ``series`` (oldest first)."""
        if not series:
            raise EmptySeriesError("Cannot predict without historical data")

        self.logger.info(
            "Starting prediction",
            observations=len(series),
            order=self.order,
        )

        for strategy in self.strategies:
            try:
                result = await strategy.attempt(series)
            except EmptySeriesError:
                raise
            except Exception as e:
                self.logger.exception(
                    "Prediction strategy failed",
                    strategy=strategy.name,
                    error=str(e),
                )
                result = None

            if _usable(result):
                self.predictions_served += 1
                self.logger.info(
                    "Prediction obtained",
                    strategy=strategy.name,
                    source=result.source.value,
                    price=result.price,
                )
                return result

            self.fallbacks += 1
            self.logger.info("Strategy declined, falling back", strategy=strategy.name)

        self.logger.error("Every prediction strategy failed", order=self.order)
        return PredictionResult(
            price=None,
            explanation="Prediction failed: no strategy produced a price.",
            source=PredictionSource.TRIVIAL_FALLBACK,
        )

    def get_stats(self) -> dict:
        """Get cascade statistics."""
        return {
            "order": self.order,
            "predictions_served": self.predictions_served,
            "fallbacks": self.fallbacks,
        }


def build_default_cascade(config: ForecasterConfig | None = None) -> PredictionCascade:
    """Remote inference, then local model, then the heuristic."""
    config = config or get_config()
    return (
        PredictionCascade()
        .register(RemoteInferencePredictor.from_config(config))
        .register(LocalModelPredictor.from_config(config.local_model))
        .register(HeuristicPredictor(window=config.local_model.heuristic_window))
    )


async def predict(
    series: Sequence[Observation],
    cascade: PredictionCascade | None = None,
) -> PredictionResult:
    """Predict the next price with ``cascade`` or the default one."""
    if not series:
        raise EmptySeriesError("Cannot predict without historical data")
    cascade = cascade or build_default_cascade()
    return await cascade.predict(series)
