"""
Error taxonomy for the forecaster.

Caller-facing errors carry a ``user_message`` suitable for display.
Source errors carry a ``transient`` flag the retrieval engine uses to
decide whether a retry can help.
"""

from typing import Any


class ForecasterError(Exception):
    """Base class for forecaster errors."""

    user_message = "Unexpected error while processing price data."

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InvalidArgumentError(ForecasterError, ValueError):
    """Raised on caller misuse, e.g. requesting fewer than one observation."""

    user_message = "Invalid request."


class NoDataAvailableError(ForecasterError):
    """The source holds no observations, even after retrying."""

    user_message = "No prices have been recorded yet. Please record prices first."


class RetrievalExhaustedError(ForecasterError):
    """Transient failures persisted across every retry attempt."""

    user_message = (
        "Temporary network trouble while reading price history. Please try again."
    )

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.cause = cause


class EmptySeriesError(ForecasterError, ValueError):
    """Prediction requested on an empty series."""

    user_message = "Cannot predict without historical data."


class NormalizationError(ForecasterError, ArithmeticError):
    """A raw fixed-point value cannot be represented as a finite float."""


# Source-side errors


class SourceError(ForecasterError):
    """Failure reported by a price source."""

    transient = False


class InsufficientDataError(SourceError):
    """Batch read asked for more records than the source holds."""

    transient = True

    def __init__(self, requested: int, available: int | None = None):
        message = f"Not enough data: requested {requested}"
        if available is not None:
            message += f", available {available}"
        super().__init__(
            message,
            {"requested": requested, "available": available},
        )
        self.requested = requested
        self.available = available


class IndexOutOfRangeError(SourceError):
    """Indexed read past the end of the recorded history."""

    transient = True

    def __init__(self, index: int):
        super().__init__(f"Index {index} is out of range", {"index": index})
        self.index = index


class SourceCallError(SourceError):
    """The call did not complete (network trouble, node unavailable)."""

    transient = True


class SourceConfigError(SourceError):
    """The source is misconfigured and retrying cannot help."""

    transient = False
