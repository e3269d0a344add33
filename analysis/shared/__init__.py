"""
Shared types, errors, configuration and logging for the FTSO price forecaster.
"""

from .config import ForecasterConfig, get_config
from .errors import (
    EmptySeriesError,
    ForecasterError,
    IndexOutOfRangeError,
    InsufficientDataError,
    InvalidArgumentError,
    NoDataAvailableError,
    NormalizationError,
    RetrievalExhaustedError,
    SourceCallError,
    SourceConfigError,
    SourceError,
)
from .logger import ComponentLogger, configure_from_config
from .types import (
    Observation,
    PredictionResult,
    PredictionSource,
    RawRecord,
    SeriesStats,
    newest_first,
    now_ms,
    oldest_first,
)

__all__ = [
    # Types
    "Observation",
    "RawRecord",
    "SeriesStats",
    "PredictionResult",
    "PredictionSource",
    "oldest_first",
    "newest_first",
    "now_ms",
    # Errors
    "ForecasterError",
    "InvalidArgumentError",
    "NoDataAvailableError",
    "RetrievalExhaustedError",
    "EmptySeriesError",
    "NormalizationError",
    "SourceError",
    "InsufficientDataError",
    "IndexOutOfRangeError",
    "SourceCallError",
    "SourceConfigError",
    # Config
    "get_config",
    "ForecasterConfig",
    # Logger
    "ComponentLogger",
    "configure_from_config",
]
