"""
Arbiter - Telemetry Primitives

Outbound event records pushed to the remote registry's ingestion endpoint.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field

from arbiter.primitives.common import ArbiterBaseModel, new_id, utc_now


def _iso_now() -> str:
    return utc_now().isoformat()


class TelemetryEvent(ArbiterBaseModel):
    """One ingestion record. Serialised with camelCase wire names."""

    event_id: str = Field(default_factory=new_id, alias="eventId")
    event_type: str = Field(alias="eventType")
    pattern_id: str = Field(default="unknown", alias="patternId")
    pattern_name: str = Field(default="", alias="patternName")
    severity: str = "MEDIUM"
    law_violated: str = Field(default="NONE", alias="lawViolated")
    cost_of_violation: int = Field(default=0, alias="costOfViolation")
    scenario: str = ""
    outcome: str = ""
    roi_measured: int = Field(default=0, alias="roiMeasured")
    validation_source: str = Field(default="pattern-detection", alias="validationSource")
    suggested_fix: str = Field(default="", alias="suggestedFix")
    files: list[str] = Field(default_factory=list)
    timestamp: str = Field(default_factory=_iso_now)
    extra: dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        payload = self.model_dump(by_alias=True, mode="json", exclude={"extra"})
        payload.update(self.extra)
        return payload
