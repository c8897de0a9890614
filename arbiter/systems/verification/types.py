"""
Arbiter - Verification Type Definitions

Dimension results and the correlated verdict. Scores are bounded to
[0, EPISTEMIC_CAP] at construction, so no analyzer can emit an out-of-band
value, estimated or otherwise.
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import Field, field_validator

from arbiter.primitives.common import (
    EPISTEMIC_BUFFER,
    EPISTEMIC_CAP,
    FrozenModel,
    clamp_score,
    utc_now,
)


class CorrelationError(ValueError):
    """The correlator was called with a result set that is not exactly dimensions 1-5."""


class DimensionStatus(str, enum.Enum):
    PASSED = "PASSED"
    DRIFT_DETECTED = "DRIFT_DETECTED"
    DEGRADED = "DEGRADED"
    FAILED = "FAILED"
    ERROR = "ERROR"
    ESTIMATED = "ESTIMATED"
    DECAYED = "DECAYED"
    MALICIOUS_DETECTED = "MALICIOUS_DETECTED"


class CorrelationStatus(str, enum.Enum):
    GODEL_COMPLIANT = "GODEL_COMPLIANT"
    DRIFT_DETECTED = "DRIFT_DETECTED"
    INCONSISTENT = "INCONSISTENT"


class DimensionResult(FrozenModel):
    dimension: int = Field(ge=1, le=5)
    name: str
    score: int
    confidence: int = 95
    status: DimensionStatus
    evidence: dict[str, Any] = Field(default_factory=dict)
    details: str = ""

    @field_validator("score", "confidence", mode="before")
    @classmethod
    def _bound(cls, v: Any) -> int:
        return clamp_score(float(v))


class CorrelationResult(FrozenModel):
    final_score: int
    status: CorrelationStatus
    dimensions: tuple[DimensionResult, ...]
    average_score: float
    max_drift: int
    has_drift: bool
    epistemic_cap: int = EPISTEMIC_CAP
    epistemic_buffer: int = EPISTEMIC_BUFFER

    @property
    def godel_compliant(self) -> bool:
        return self.status == CorrelationStatus.GODEL_COMPLIANT

    def dimension(self, number: int) -> DimensionResult:
        for result in self.dimensions:
            if result.dimension == number:
                return result
        raise KeyError(number)

    def to_health_payload(self, remote_status: dict[str, Any] | None = None) -> dict[str, Any]:
        """The outward health document, annotated with the fixed cap/buffer pair."""
        return {
            "status": "healthy" if self.godel_compliant else "degraded",
            "timestamp": utc_now().isoformat(),
            "verification": {
                "finalScore": self.final_score,
                "status": self.status.value,
                "averageScore": self.average_score,
                "maxDrift": self.max_drift,
                "hasDrift": self.has_drift,
                "dimensions": [
                    {
                        "dimension": d.dimension,
                        "name": d.name,
                        "score": d.score,
                        "status": d.status.value,
                        "details": d.details,
                    }
                    for d in self.dimensions
                ],
            },
            "epistemicCap": {"cap": self.epistemic_cap, "buffer": self.epistemic_buffer},
            "remoteSync": remote_status or {"enabled": False, "endpoint": None},
        }
