"""
Common interface of the prediction strategies.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from shared import Observation, PredictionResult


class PredictionStrategy(ABC):
    """One stage of the prediction cascade."""

    name: str = "strategy"

    @abstractmethod
    async def attempt(self, series: Sequence[Observation]) -> PredictionResult | None:
        """Predict the next price, or return None to let the next stage try."""
