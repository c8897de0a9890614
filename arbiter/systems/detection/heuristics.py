"""
Arbiter - Heuristic Checks

Findings that do not depend on the rule table. They run even when the
registry is empty; the infrastructure and cost scans are skipped for
business-narrative text.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from arbiter.primitives.common import Severity
from arbiter.systems.detection.types import AnalysisContext, Finding, FindingKind

# Disallowed infrastructure components. Every hit is reported, not just the first.
SPRAWL_PATTERNS: dict[str, re.Pattern[str]] = {
    "DDoS Protection": re.compile(r"ddos.*protection.*standard", re.IGNORECASE),
    "Private Link": re.compile(r"private.*link", re.IGNORECASE),
    "Enterprise Key Management": re.compile(r"enterprise.*key.*management", re.IGNORECASE),
    "Application Gateway": re.compile(r"application.*gateway", re.IGNORECASE),
    "Azure Firewall": re.compile(r"azure.*firewall", re.IGNORECASE),
}

# $500+/month, $1000+/month
COST_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\$[5-9]\d{2,}.*month", re.IGNORECASE),
    re.compile(r"\$\d{4,}.*month", re.IGNORECASE),
)

LOCAL_TEST_EVIDENCE: tuple[re.Pattern[str], ...] = (
    re.compile(r"test.*local", re.IGNORECASE),
    re.compile(r"local.*test", re.IGNORECASE),
    re.compile(r"verified.*local", re.IGNORECASE),
    re.compile(r"curl.*localhost", re.IGNORECASE),
)


def check_enterprise_sprawl(text: str, context: AnalysisContext) -> list[Finding]:
    findings: list[Finding] = []
    for name, pattern in SPRAWL_PATTERNS.items():
        if pattern.search(text):
            findings.append(
                Finding(
                    kind=FindingKind.VIOLATION,
                    type="ENTERPRISE_SPRAWL",
                    severity=Severity.CRITICAL,
                    message=f"ENTERPRISE SPRAWL: {name} detected",
                    details="There is no legacy infrastructure to protect.",
                    law="Born Without Sin - do not preemptively acquire enterprise debt",
                    suggested_fix="Remove this. Enterprise infrastructure is not needed pre-revenue.",
                    context=context,
                )
            )
    return findings


def check_cost_efficiency(text: str, context: AnalysisContext) -> Finding | None:
    if not any(p.search(text) for p in COST_PATTERNS):
        return None
    return Finding(
        kind=FindingKind.WARNING,
        type="COST_INEFFICIENCY",
        severity=Severity.HIGH,
        message="HIGH COST DETECTED",
        details="Infrastructure costs are kept lean by business model.",
        law="Maintain extreme cost efficiency - it is the competitive moat",
        suggested_fix="Is there a cheaper alternative?",
        context=context,
    )


def is_deploy_path(path: str | None) -> bool:
    if not path:
        return False
    return ".github/workflows" in path or "deploy" in path


def check_untested_deploy(text: str, context: AnalysisContext) -> Finding | None:
    """Workflow or deploy changes must carry evidence of a local test run."""
    if not is_deploy_path(context.file):
        return None
    if any(p.search(text) for p in LOCAL_TEST_EVIDENCE):
        return None
    return Finding(
        kind=FindingKind.WARNING,
        type="UNTESTED_DEPLOY",
        severity=Severity.HIGH,
        incident="Issue #41",
        message="UNTESTED DEPLOYMENT PATTERN DETECTED",
        details="You modified CI/CD workflows without evidence of local testing.",
        law="ALWAYS test locally before production (no exceptions)",
        suggested_fix=(
            "1. Test changes locally first\n"
            "2. Document test results in the commit message\n"
            "3. Include curl output against localhost and production /health"
        ),
        context=context,
    )


def _any_of(*keywords: str) -> Callable[[str], bool]:
    return lambda lower: any(k in lower for k in keywords)


def _cost_efficiency(lower: str) -> bool:
    return "cost" in lower and ("reduction" in lower or "efficiency" in lower)


COMMENDATIONS: tuple[tuple[str, str, Callable[[str], bool]], ...] = (
    (
        "COST_EFFICIENCY",
        "Maintaining extreme cost efficiency - The Law is upheld",
        _cost_efficiency,
    ),
    (
        "SOC1_FOCUS",
        "Focusing on application compliance - The Law is upheld",
        _any_of("soc1", "compliance"),
    ),
    (
        "ZERO_DAY_PROTECTION",
        "Free, effective threat protection - The Law is upheld",
        _any_of("cisa", "zero-day", "kev"),
    ),
    (
        "PHILOSOPHICAL_ALIGNMENT",
        "Understanding the competitive advantage - The Law is upheld",
        _any_of("born without sin", "no legacy"),
    ),
)


def check_commendations(text: str, context: AnalysisContext) -> list[Finding]:
    lower = text.lower()
    return [
        commendation(kind, message, context)
        for kind, message, matches in COMMENDATIONS
        if matches(lower)
    ]


def commendation(kind: str, message: str, context: AnalysisContext) -> Finding:
    return Finding(
        kind=FindingKind.COMMENDATION,
        type=kind,
        message=message,
        context=context,
    )
