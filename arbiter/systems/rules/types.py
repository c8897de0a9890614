"""
Arbiter - Rule Type Definitions

A Rule is a named detection policy: ordered patterns, severity, law text and
remediation guidance. Raw JSON records (remote or local) are validated into
Rules at the registry boundary; downstream code never sees an untyped record.
"""

from __future__ import annotations

import enum
import fnmatch
import re
from collections.abc import Iterator, Mapping
from datetime import datetime
from types import MappingProxyType
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from arbiter.primitives.common import FrozenModel, Severity, round_half_up, utc_now

logger = structlog.get_logger().bind(system="rules")


class RuleParseError(ValueError):
    """A rule record could not be turned into a Rule."""


class RuleSource(str, enum.Enum):
    LIVE = "LIVE"      # Fetched from the remote registry
    LOCAL = "LOCAL"    # Read from the local fallback cache
    EMPTY = "EMPTY"    # Neither source produced anything


# ─── Rule ────────────────────────────────────────────────────────


class FinancialImpact(FrozenModel):
    """Cost range attached to a rule, in whole currency units."""

    min: float = 0
    max: float = 0
    proven: bool = False

    @property
    def midpoint(self) -> int:
        return round_half_up((self.min + self.max) / 2)


class Rule(FrozenModel):
    id: str
    severity: Severity = Severity.MEDIUM
    patterns: tuple[re.Pattern[str], ...] = ()
    law: str = ""
    suggested_fix: str = ""
    title: str = ""
    financial_impact: FinancialImpact | None = None
    applies_to: tuple[str, ...] = ()

    def first_match(self, text: str) -> re.Match[str] | None:
        """Test patterns in order; the first hit wins."""
        for pattern in self.patterns:
            match = pattern.search(text)
            if match is not None:
                return match
        return None

    def applies(self, file_path: str | None) -> bool:
        """Applicability predicate over the context file. No globs = applies everywhere."""
        if not self.applies_to:
            return True
        if not file_path:
            return False
        return any(fnmatch.fnmatch(file_path, glob) for glob in self.applies_to)


# ─── Raw Record Schema ───────────────────────────────────────────


class _DetectionBlock(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    text_patterns: list[str] = Field(alias="textPatterns")


class _PatternBlock(BaseModel):
    model_config = ConfigDict(extra="ignore")

    detection: _DetectionBlock
    severity: Severity | None = None

    @field_validator("severity", mode="before")
    @classmethod
    def _upper(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class RuleRecord(BaseModel):
    """Wire shape shared by remote and local rule records."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    severity: Severity | None = None
    pattern: _PatternBlock
    financial_impact: FinancialImpact | None = Field(default=None, alias="financialImpact")
    law: str = ""
    suggested_fix: str = Field(default="", alias="suggestedFix")
    title: str = ""
    applies_to: list[str] = Field(default_factory=list, alias="appliesTo")

    @field_validator("severity", mode="before")
    @classmethod
    def _upper(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    def to_rule(self) -> Rule:
        compiled: list[re.Pattern[str]] = []
        for source in self.pattern.detection.text_patterns:
            try:
                compiled.append(re.compile(source, re.IGNORECASE))
            except re.error as exc:
                raise RuleParseError(f"rule {self.id}: bad pattern {source!r}: {exc}") from exc

        return Rule(
            id=self.id,
            severity=self.severity or self.pattern.severity or Severity.MEDIUM,
            patterns=tuple(compiled),
            law=self.law,
            suggested_fix=self.suggested_fix,
            title=self.title,
            financial_impact=self.financial_impact,
            applies_to=tuple(self.applies_to),
        )


def parse_rule(raw: Any) -> Rule:
    """Validate one raw record. Raises RuleParseError on any shape problem."""
    try:
        record = RuleRecord.model_validate(raw)
    except ValidationError as exc:
        rule_id = raw.get("id", "?") if isinstance(raw, dict) else "?"
        raise RuleParseError(f"rule {rule_id}: {exc.error_count()} validation error(s)") from exc
    return record.to_rule()


def parse_rule_records(records: Mapping[str, Any]) -> dict[str, Rule]:
    """
    Parse-or-skip a mapping of raw records. Malformed records are logged and
    dropped; the rest are keyed by their own ``id``.
    """
    rules: dict[str, Rule] = {}
    for key, raw in records.items():
        try:
            rule = parse_rule(raw)
        except RuleParseError as exc:
            logger.warning("rule_record_skipped", key=key, reason=str(exc))
            continue
        rules[rule.id] = rule
    return rules


# ─── Rule Set ────────────────────────────────────────────────────


class RuleSet(Mapping[str, Rule]):
    """
    Immutable, source-tagged set of rules for one load.

    Replaced wholesale on reload; never patched in place.
    """

    def __init__(
        self,
        rules: Mapping[str, Rule] | None = None,
        source: RuleSource = RuleSource.EMPTY,
        loaded_at: datetime | None = None,
    ) -> None:
        self._rules: Mapping[str, Rule] = MappingProxyType(dict(rules or {}))
        self.source = source
        self.loaded_at = loaded_at or utc_now()

    @classmethod
    def empty(cls) -> RuleSet:
        return cls({}, RuleSource.EMPTY)

    def __getitem__(self, rule_id: str) -> Rule:
        return self._rules[rule_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"RuleSet(source={self.source.value}, rules={len(self)})"
