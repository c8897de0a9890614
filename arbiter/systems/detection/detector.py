"""
Arbiter - Violation & Commendation Detector

Turns a text blob (diff or document) plus its context into classified
findings. Evaluation order:

  1. Lazy one-time registry load.
  2. Documentation exemption: one DOCUMENTATION commendation, nothing else.
  3. Business narrative: one INVESTOR_MATERIALS commendation, rules still run.
  4. The rule-backed check table, in order, first match per rule.
  5. Heuristics, then the unconditional commendation scan.

The detector never mutates the rule set and never raises for bad data.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from arbiter.systems.detection.checks import BaseRuleCheck, default_checks
from arbiter.systems.detection.classifiers import is_business_narrative, is_documentation
from arbiter.systems.detection.heuristics import (
    check_commendations,
    check_cost_efficiency,
    check_enterprise_sprawl,
    check_untested_deploy,
    commendation,
)
from arbiter.systems.detection.types import (
    AnalysisContext,
    AnalysisResult,
    Finding,
    FindingKind,
)

if TYPE_CHECKING:
    from arbiter.systems.rules.registry import RuleRegistry

logger = structlog.get_logger().bind(system="detection")


class ViolationDetector:
    """
    Applies the check table and heuristics to one text at a time.

    Each ``analyze`` call builds its own finding lists, so concurrent calls on
    the same detector do not share state. The only instance state is whether
    the registry has been loaded.
    """

    def __init__(
        self,
        registry: RuleRegistry,
        checks: list[BaseRuleCheck] | None = None,
    ) -> None:
        self._registry = registry
        self._checks = checks if checks is not None else default_checks()
        self._loaded = False
        self._stale = False

    @property
    def checks(self) -> list[BaseRuleCheck]:
        return list(self._checks)

    def reset(self) -> None:
        """Force the next ``analyze`` to reload the registry."""
        self._loaded = False
        self._stale = True

    def mark_loaded(self) -> None:
        """Adopt a registry the caller has just loaded; no reload on the next ``analyze``."""
        self._loaded = True
        self._stale = False

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        if self._stale or not self._registry.loaded:
            await self._registry.load()
        self._loaded = True
        self._stale = False

    async def analyze(
        self,
        text: str,
        context: AnalysisContext | None = None,
    ) -> AnalysisResult:
        context = context or AnalysisContext()
        await self._ensure_loaded()

        if is_documentation(text):
            return AnalysisResult(
                commendations=(
                    commendation(
                        "DOCUMENTATION",
                        "Documenting THE LAW - teaching what to avoid",
                        context,
                    ),
                ),
            )

        violations: list[Finding] = []
        warnings: list[Finding] = []
        commendations: list[Finding] = []

        investor = is_business_narrative(text)
        if investor:
            commendations.append(
                commendation(
                    "INVESTOR_MATERIALS",
                    "Investor materials - describing market opportunity",
                    context,
                )
            )

        rules = self._registry.active
        for check in self._checks:
            rule = rules.get(check.rule_id)
            if rule is None:
                continue
            finding = check.evaluate(rule, text, context)
            if finding is not None:
                _bucket(finding, violations, warnings, commendations)

        deploy = check_untested_deploy(text, context)
        if deploy is not None:
            warnings.append(deploy)

        if not investor:
            violations.extend(check_enterprise_sprawl(text, context))
            cost = check_cost_efficiency(text, context)
            if cost is not None:
                warnings.append(cost)

        commendations.extend(check_commendations(text, context))

        result = AnalysisResult(
            violations=tuple(violations),
            warnings=tuple(warnings),
            commendations=tuple(commendations),
        )
        logger.debug(
            "analysis_complete",
            source=context.source,
            file=context.file,
            rule_source=rules.source.value,
            violations=len(result.violations),
            warnings=len(result.warnings),
            commendations=len(result.commendations),
            critical=result.has_critical,
        )
        return result


def _bucket(
    finding: Finding,
    violations: list[Finding],
    warnings: list[Finding],
    commendations: list[Finding],
) -> None:
    if finding.kind == FindingKind.VIOLATION:
        violations.append(finding)
    elif finding.kind == FindingKind.WARNING:
        warnings.append(finding)
    else:
        commendations.append(finding)
