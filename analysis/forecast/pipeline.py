"""
FORECAST - Pipeline

Fetch the recent price history, then predict the next price.
"""

from dataclasses import dataclass

from oracle import PriceHistoryRetriever, PriceSource
from shared import (
    ComponentLogger,
    ForecasterConfig,
    InvalidArgumentError,
    Observation,
    PredictionResult,
    get_config,
    newest_first,
    oldest_first,
)

from .orchestrator import PredictionCascade, build_default_cascade


@dataclass
class Forecast:
    """History used for a prediction and the prediction itself."""
    series: list[Observation]  # Oldest first
    prediction: PredictionResult

    @property
    def current_price(self) -> float | None:
        return self.series[-1].value if self.series else None

    @property
    def display_series(self) -> list[Observation]:
        """Newest first, the way price tables show it."""
        return newest_first(self.series)


class ForecastPipeline:
    """Retrieval followed by the prediction cascade."""

    def __init__(
        self,
        retriever: PriceHistoryRetriever,
        cascade: PredictionCascade,
        default_count: int = 10,
        min_series_length: int = 2,
    ):
        self.logger = ComponentLogger("FORECAST-PIPELINE")
        self.retriever = retriever
        self.cascade = cascade
        self.default_count = default_count
        self.min_series_length = min_series_length

    @classmethod
    def from_config(cls, config: ForecasterConfig | None = None) -> "ForecastPipeline":
        config = config or get_config()
        return cls(
            retriever=PriceHistoryRetriever.from_config(config.retrieval),
            cascade=build_default_cascade(config),
            default_count=config.retrieval.default_count,
        )

    async def run(self, source: PriceSource, n: int | None = None) -> Forecast:
        """Fetch up to ``n`` prices and predict the next one."""
        count = n if n is not None else self.default_count
        series = oldest_first(await self.retriever.fetch_recent(source, count))

        if len(series) < self.min_series_length:
            raise InvalidArgumentError(
                f"At least {self.min_series_length} recorded prices are needed "
                f"for a prediction, found {len(series)}",
                {"found": len(series), "required": self.min_series_length},
            )

        prediction = await self.cascade.predict(series)
        self.logger.info(
            "Forecast completed",
            observations=len(series),
            source=prediction.source.value,
            price=prediction.price,
        )
        return Forecast(series=series, prediction=prediction)
