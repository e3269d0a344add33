"""
ORACLE - Numeric Normalizer

Converts fixed-point oracle values into floats.
"""

import math

from shared import NormalizationError, Observation, RawRecord


def normalize(magnitude: int, scale: int) -> float:
    """
    Convert ``magnitude * 10**-scale`` to a float.

    The division happens on exact integers so the result is rounded only
    once, which keeps full float precision for magnitudes up to 2**96.
    """
    if isinstance(magnitude, bool) or not isinstance(magnitude, int):
        raise NormalizationError(
            f"Magnitude must be an integer, got {type(magnitude).__name__}",
            {"magnitude": magnitude},
        )
    if isinstance(scale, bool) or not isinstance(scale, int):
        raise NormalizationError(
            f"Scale must be an integer, got {type(scale).__name__}",
            {"scale": scale},
        )
    if magnitude < 0:
        raise NormalizationError("Magnitude must be non-negative", {"magnitude": magnitude})

    try:
        if scale >= 0:
            value = magnitude / (10 ** scale)
        else:
            value = float(magnitude * 10 ** (-scale))
    except OverflowError as e:
        raise NormalizationError(
            "Value is too large to represent",
            {"magnitude": magnitude, "scale": scale},
        ) from e

    if not math.isfinite(value):
        raise NormalizationError(
            "Normalized value is not finite",
            {"magnitude": magnitude, "scale": scale},
        )
    return value


def normalize_record(record: RawRecord) -> Observation:
    """Normalize one raw record into an observation."""
    return Observation(
        value=normalize(record.magnitude, record.scale),
        observed_at=int(record.timestamp),
    )


def normalize_records(records: list[RawRecord]) -> list[Observation]:
    return [normalize_record(r) for r in records]
