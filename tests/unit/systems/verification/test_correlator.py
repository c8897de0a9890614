"""
Tests for the five-dimension correlator.

Covers:
  - Average, drift and verdict over synthetic score vectors
  - Cap enforcement on every dimension and on the final score
  - Contract violations raise CorrelationError
"""

from __future__ import annotations

import itertools

import pytest

from arbiter.primitives.common import EPISTEMIC_BUFFER, EPISTEMIC_CAP
from arbiter.systems.verification.correlator import correlate
from arbiter.systems.verification.types import (
    CorrelationError,
    CorrelationStatus,
    DimensionResult,
    DimensionStatus,
)


def _dims(*scores: float) -> list[DimensionResult]:
    return [
        DimensionResult(dimension=i, name=f"D{i}", score=s, status=DimensionStatus.PASSED)
        for i, s in enumerate(scores, start=1)
    ]


class TestCorrelate:
    def test_reference_vector(self):
        result = correlate(_dims(95, 89, 90, 95, 95))
        assert result.max_drift == 6
        assert result.average_score == pytest.approx(92.8)
        assert not result.has_drift
        assert result.status == CorrelationStatus.GODEL_COMPLIANT
        assert result.godel_compliant
        assert result.final_score == 93

    def test_drift_detected(self):
        result = correlate(_dims(95, 95, 95, 95, 50))
        assert result.max_drift == 45
        assert result.has_drift
        assert result.status == CorrelationStatus.DRIFT_DETECTED

    def test_drift_boundary_is_inclusive(self):
        result = correlate(_dims(95, 85, 95, 95, 95))
        assert result.max_drift == 10
        assert not result.has_drift
        assert result.status == CorrelationStatus.GODEL_COMPLIANT

    def test_inconsistent_when_low_but_agreeing(self):
        result = correlate(_dims(80, 80, 82, 84, 84))
        assert not result.has_drift
        assert result.status == CorrelationStatus.INCONSISTENT
        assert result.final_score == 82

    def test_drift_takes_precedence_over_low_average(self):
        result = correlate(_dims(0, 50, 50, 50, 50))
        assert result.status == CorrelationStatus.DRIFT_DETECTED

    def test_average_boundary(self):
        assert correlate(_dims(85, 85, 85, 85, 85)).status == CorrelationStatus.GODEL_COMPLIANT
        assert correlate(_dims(84, 85, 85, 85, 85)).status == CorrelationStatus.INCONSISTENT

    def test_order_independent(self):
        dims = _dims(95, 89, 90, 95, 70)
        result = correlate(list(reversed(dims)))
        assert [d.dimension for d in result.dimensions] == [1, 2, 3, 4, 5]
        assert result.max_drift == 25

    def test_cap_pair(self):
        result = correlate(_dims(95, 95, 95, 95, 95))
        assert result.epistemic_cap == EPISTEMIC_CAP == 95
        assert result.epistemic_buffer == EPISTEMIC_BUFFER == 5
        assert result.final_score == 95

    def test_scores_grid(self):
        for scores in itertools.product((0, 50, 85, 95), repeat=5):
            result = correlate(_dims(*scores))
            assert result.max_drift == max(scores) - min(scores) >= 0
            assert 0 <= result.final_score <= EPISTEMIC_CAP
            compliant = result.max_drift <= 10 and sum(scores) / 5 >= 85
            assert result.godel_compliant == compliant


class TestContract:
    def test_fewer_than_five(self):
        with pytest.raises(CorrelationError):
            correlate(_dims(95, 95, 95, 95))

    def test_duplicate_dimension(self):
        dims = _dims(95, 95, 95, 95, 95)
        dims[4] = DimensionResult(dimension=1, name="D1", score=95, status=DimensionStatus.PASSED)
        with pytest.raises(CorrelationError):
            correlate(dims)

    def test_correlation_error_is_value_error(self):
        with pytest.raises(ValueError):
            correlate([])


class TestDimensionResultBounds:
    def test_scores_above_cap_are_clamped(self):
        result = DimensionResult(dimension=1, name="D1", score=120, status=DimensionStatus.ESTIMATED)
        assert result.score == EPISTEMIC_CAP

    def test_negative_scores_floor_at_zero(self):
        result = DimensionResult(dimension=1, name="D1", score=-15, status=DimensionStatus.FAILED)
        assert result.score == 0

    def test_fractional_scores_round(self):
        result = DimensionResult(dimension=4, name="D4", score=92.5, status=DimensionStatus.DECAYED)
        assert result.score == 93

    def test_dimension_number_is_bounded(self):
        with pytest.raises(ValueError):
            DimensionResult(dimension=6, name="D6", score=95, status=DimensionStatus.PASSED)

    def test_health_payload(self):
        payload = correlate(_dims(95, 89, 90, 95, 95)).to_health_payload(
            {"enabled": True, "endpoint": "https://registry.test"}
        )
        assert payload["epistemicCap"] == {"cap": 95, "buffer": 5}
        assert payload["verification"]["finalScore"] == 93
        assert payload["verification"]["status"] == "GODEL_COMPLIANT"
        assert len(payload["verification"]["dimensions"]) == 5
        assert payload["remoteSync"]["enabled"]
        assert payload["status"] == "healthy"
