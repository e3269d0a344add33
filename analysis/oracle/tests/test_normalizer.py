"""Tests for the Oracle numeric normalizer."""

import math

import pytest

from oracle.normalizer import normalize, normalize_record
from shared import NormalizationError, Observation, RawRecord


class TestNormalize:
    """Test suite for normalize."""

    def test_positive_scale(self):
        """Test fixed-point values with decimals."""
        assert normalize(123456, 3) == pytest.approx(123.456)
        assert normalize(1_820_000, 7) == pytest.approx(0.182)

    def test_zero_scale(self):
        """Test integers pass through."""
        assert normalize(42, 0) == 42.0

    def test_negative_scale(self):
        """Test negative decimals shift the other way."""
        assert normalize(5, -3) == 5000.0

    def test_zero_magnitude(self):
        """Test zero stays zero whatever the scale."""
        assert normalize(0, 18) == 0.0
        assert normalize(0, -18) == 0.0

    def test_large_magnitudes_are_finite(self):
        """Test magnitudes up to 2**96 across the scale range."""
        magnitude = 2**96
        for scale in range(-20, 21):
            value = normalize(magnitude, scale)
            assert math.isfinite(value)
            assert value == pytest.approx(magnitude * 10.0 ** -scale, rel=1e-12)

    def test_wide_integer_precision(self):
        """Test the result is rounded only once."""
        magnitude = 2**96 - 1
        assert normalize(magnitude, 18) == magnitude / 10**18

    def test_negative_magnitude_rejected(self):
        """Test negative magnitudes are refused."""
        with pytest.raises(NormalizationError):
            normalize(-1, 2)

    def test_non_integer_inputs_rejected(self):
        """Test floats and bools are not accepted as fixed-point input."""
        with pytest.raises(NormalizationError):
            normalize(1.5, 2)
        with pytest.raises(NormalizationError):
            normalize(100, 2.0)
        with pytest.raises(NormalizationError):
            normalize(True, 0)

    def test_overflow_raises(self):
        """Test overflow is surfaced as a normalization error."""
        with pytest.raises(NormalizationError):
            normalize(10**400, 0)
        with pytest.raises(NormalizationError):
            normalize(1, -400)


class TestNormalizeRecord:
    """Test suite for normalize_record."""

    def test_record_to_observation(self):
        """Test a raw record becomes an observation."""
        record = RawRecord(magnitude=123456, scale=3, timestamp=1_700_000_000)

        observation = normalize_record(record)

        assert isinstance(observation, Observation)
        assert observation.value == pytest.approx(123.456)
        assert observation.observed_at == 1_700_000_000

    def test_observation_is_immutable(self):
        """Test observations cannot be modified."""
        observation = normalize_record(RawRecord(1, 0, 1))
        with pytest.raises(AttributeError):
            observation.value = 2.0

    def test_from_contract_tuple(self):
        """Test building a record from a contract struct tuple."""
        record = RawRecord.from_tuple((1_820_000, 7, 1_700_000_000))
        assert record == RawRecord(magnitude=1_820_000, scale=7, timestamp=1_700_000_000)
