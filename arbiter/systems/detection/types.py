"""
Arbiter - Detection Type Definitions

Findings are the output of one analysis pass: Violations, Warnings and
Commendations. They are immutable value records owned by the caller once
``analyze`` returns.
"""

from __future__ import annotations

import enum
from datetime import datetime

from pydantic import Field, computed_field, field_validator

from arbiter.primitives.common import FrozenModel, Severity, as_utc, utc_now
from arbiter.systems.rules.types import FinancialImpact


class FindingKind(str, enum.Enum):
    VIOLATION = "VIOLATION"
    WARNING = "WARNING"
    COMMENDATION = "COMMENDATION"


class AnalysisContext(FrozenModel):
    """Where the analysed text came from. Read-only to the detector."""

    source: str = ""
    timestamp: datetime = Field(default_factory=utc_now)
    files: tuple[str, ...] = ()
    file: str | None = None
    commit: str | None = None
    subject: str | None = None

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class Finding(FrozenModel):
    kind: FindingKind
    type: str
    severity: Severity | None = None
    rule_id: str | None = None  # None for heuristic, non-rule-table findings
    incident: str = ""
    message: str
    details: str = ""
    law: str = ""
    financial_risk: FinancialImpact | None = None
    suggested_fix: str = ""
    context: AnalysisContext | None = None


class AnalysisResult(FrozenModel):
    violations: tuple[Finding, ...] = ()
    warnings: tuple[Finding, ...] = ()
    commendations: tuple[Finding, ...] = ()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_violations(self) -> bool:
        return len(self.violations) > 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_critical(self) -> bool:
        return any(v.severity == Severity.CRITICAL for v in self.violations)
