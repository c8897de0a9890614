"""
Arbiter - Five-Dimension Correlator

Pure function over exactly five DimensionResults. Scores arrive already
bounded to [0, cap]; the average, drift and verdict are computed from them.
"""

from __future__ import annotations

from collections.abc import Sequence

from arbiter.primitives.common import EPISTEMIC_CAP, round_half_up
from arbiter.systems.verification.types import (
    CorrelationError,
    CorrelationResult,
    CorrelationStatus,
    DimensionResult,
)

DIMENSIONS = (1, 2, 3, 4, 5)
DRIFT_THRESHOLD = 10
COMPLIANT_AVERAGE = 85


def correlate(
    results: Sequence[DimensionResult],
    drift_threshold: int = DRIFT_THRESHOLD,
    compliant_average: int = COMPLIANT_AVERAGE,
) -> CorrelationResult:
    """
    Combine the five dimensions into one verdict.

    DRIFT_DETECTED when max - min exceeds the drift threshold, else
    INCONSISTENT when the average is below the compliant average, else
    GODEL_COMPLIANT. Raises CorrelationError unless given dimensions 1-5
    exactly once each.
    """
    ordered = sorted(results, key=lambda r: r.dimension)
    if tuple(r.dimension for r in ordered) != DIMENSIONS:
        raise CorrelationError(
            f"expected dimensions {list(DIMENSIONS)}, got {[r.dimension for r in results]}"
        )

    scores = [r.score for r in ordered]
    average = sum(scores) / len(scores)
    max_drift = max(scores) - min(scores)
    has_drift = max_drift > drift_threshold

    if has_drift:
        status = CorrelationStatus.DRIFT_DETECTED
    elif average < compliant_average:
        status = CorrelationStatus.INCONSISTENT
    else:
        status = CorrelationStatus.GODEL_COMPLIANT

    return CorrelationResult(
        final_score=round_half_up(min(average, EPISTEMIC_CAP)),
        status=status,
        dimensions=tuple(ordered),
        average_score=average,
        max_drift=max_drift,
        has_drift=has_drift,
    )
