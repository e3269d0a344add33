"""
FORECAST - Weighted Trend Heuristic

Terminal stage of the cascade. Always produces a price for a non-empty
series.
"""

import math
from collections.abc import Sequence

from shared import (
    ComponentLogger,
    EmptySeriesError,
    Observation,
    PredictionResult,
    PredictionSource,
)

from .base import PredictionStrategy


class HeuristicPredictor(PredictionStrategy):
    """
    Linearly weighted average of the most recent prices plus half of the
    latest move.

    With a window of five prices the oldest gets weight 1 and the newest
    weight 5. The series must be ordered oldest to newest.
    """

    name = "local_heuristic"

    def __init__(self, window: int = 5):
        self.logger = ComponentLogger("FORECAST-HEURISTIC")
        self.window = max(1, window)

    async def attempt(self, series: Sequence[Observation]) -> PredictionResult:
        return self.predict(series)

    def predict(self, series: Sequence[Observation]) -> PredictionResult:
        """Predict the next price from the tail of ``series``."""
        if not series:
            raise EmptySeriesError("No prices available for prediction")

        prices = [o.value for o in series[-self.window:]]

        if len(prices) == 1:
            return PredictionResult(
                price=prices[0],
                explanation=(
                    "Only one recorded price is available, so the prediction "
                    "repeats it."
                ),
                source=PredictionSource.LOCAL_HEURISTIC,
            )

        try:
            weights = range(1, len(prices) + 1)
            weighted_avg = sum(p * w for p, w in zip(prices, weights)) / sum(weights)
            trend = prices[-1] - prices[-2]
            prediction = weighted_avg + trend * 0.5
        except ArithmeticError as e:
            self.logger.error("Error during local prediction", error=str(e))
            return self._last_known(prices)

        if not math.isfinite(prediction):
            self.logger.error("Local prediction is not finite", prices=prices)
            return self._last_known(prices)

        return PredictionResult(
            price=round(prediction, 4),
            explanation=self._explain(prices, weighted_avg, trend),
            source=PredictionSource.LOCAL_HEURISTIC,
        )

    def _explain(self, prices: list[float], weighted_avg: float, trend: float) -> str:
        count = len(prices)
        second_last = prices[-2]

        if trend == 0 or second_last == 0:
            return (
                f"Based on the analysis of the {count} most recent prices, the market "
                f"is stable (no change). The prediction is based solely on the "
                f"weighted average of recent prices ({weighted_avg:.4f})."
            )

        trend_pct = abs(trend) / abs(second_last) * 100
        if trend > 0:
            direction, sign = "an upward", "positive"
        else:
            direction, sign = "a downward", "negative"
        return (
            f"Based on the analysis of the {count} most recent prices, {direction} "
            f"trend of {trend_pct:.2f}% is observed. The prediction is based on a "
            f"weighted average of {weighted_avg:.4f} adjusted for this {sign} trend."
        )

    def _last_known(self, prices: list[float]) -> PredictionResult:
        return PredictionResult(
            price=prices[-1],
            explanation=(
                "Prediction could not be computed. Using the last known price "
                "as a substitute."
            ),
            source=PredictionSource.TRIVIAL_FALLBACK,
        )


def predict_heuristic(series: Sequence[Observation], window: int = 5) -> PredictionResult:
    """Run the weighted trend heuristic over ``series`` (oldest first)."""
    return HeuristicPredictor(window=window).predict(series)
