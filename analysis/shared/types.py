"""
Shared types for the forecaster.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Sequence


def now_ms() -> int:
    """Current wall clock in milliseconds."""
    return int(time.time() * 1000)


class PredictionSource(str, Enum):
    """Which cascade stage produced a prediction."""
    REMOTE_INFERENCE = "remote_inference"
    LOCAL_MODEL = "local_model"
    LOCAL_HEURISTIC = "local_heuristic"
    TRIVIAL_FALLBACK = "trivial_fallback"

    @property
    def label(self) -> str:
        """Human readable name shown next to a prediction."""
        labels = {
            PredictionSource.REMOTE_INFERENCE: "Mistral AI",
            PredictionSource.LOCAL_MODEL: "ONNX Model",
            PredictionSource.LOCAL_HEURISTIC: "Local Algorithm",
            PredictionSource.TRIVIAL_FALLBACK: "Simple Fallback",
        }
        return labels[self]


@dataclass(frozen=True)
class RawRecord:
    """Price record as stored by the recorder contract."""
    magnitude: int  # Fixed-point price
    scale: int  # Decimals, may be negative
    timestamp: int  # Unix seconds

    @classmethod
    def from_tuple(cls, values: Sequence[int]) -> "RawRecord":
        """Build from a ``(price, decimals, timestamp)`` struct tuple."""
        magnitude, scale, timestamp = values
        return cls(magnitude=int(magnitude), scale=int(scale), timestamp=int(timestamp))


@dataclass(frozen=True)
class Observation:
    """One normalized price sample."""
    value: float
    observed_at: int  # Unix seconds

    @property
    def observed_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.observed_at, tz=timezone.utc)


@dataclass(frozen=True)
class SeriesStats:
    """Summary statistics used to enrich the remote prompt."""
    min: float
    max: float
    avg: float
    count: int
    period_start: int | None  # Unix seconds
    period_end: int | None

    @classmethod
    def from_series(cls, series: Sequence[Observation]) -> "SeriesStats":
        """Compute statistics over a series (first/last define the period)."""
        if not series:
            return cls(min=0.0, max=0.0, avg=0.0, count=0, period_start=None, period_end=None)

        values = [o.value for o in series]
        return cls(
            min=min(values),
            max=max(values),
            avg=sum(values) / len(values),
            count=len(values),
            period_start=series[0].observed_at,
            period_end=series[-1].observed_at,
        )


@dataclass
class PredictionResult:
    """Outcome of one prediction request."""
    price: float | None
    explanation: str
    source: PredictionSource
    generated_at_ms: int = field(default_factory=now_ms)

    @property
    def ok(self) -> bool:
        """False when every stage failed and no price is available."""
        return self.price is not None


def oldest_first(series: Sequence[Observation]) -> list[Observation]:
    """Sort by observation time, oldest first (prediction order)."""
    return sorted(series, key=lambda o: o.observed_at)


def newest_first(series: Sequence[Observation]) -> list[Observation]:
    """Sort by observation time, newest first (display order)."""
    return sorted(series, key=lambda o: o.observed_at, reverse=True)
