"""
Arbiter - Text Classifiers

Two exception classes decided before any rule runs:
  - documentation: text that discusses the policies themselves. Exempt from
    all checks (hard exception).
  - business narrative: investor / market material. Rules still run, but the
    cost-magnitude and infrastructure-keyword heuristics are suppressed.

Markers are case-sensitive literal substrings.
"""

from __future__ import annotations

DOCUMENTATION_MARKERS: tuple[str, ...] = (
    "SECURITY-PHILOSOPHY",
    "THE LAW",
    "Born Without Sin",
    "what NOT to do",
    "What Legacy Enterprises",
    "Why They Need It | Why You Don't",
    "IMPLEMENTATION-PLAN",
    "JUDGE-DREDD-AGENT-GUIDE",
)

BUSINESS_NARRATIVE_MARKERS: tuple[str, ...] = (
    "ARR",
    "portfolio value",
    "Patent #",
    "**Problem:**",
    "competitors",
    "TAM:",
)


def is_documentation(text: str) -> bool:
    return any(marker in text for marker in DOCUMENTATION_MARKERS)


def is_business_narrative(text: str) -> bool:
    return any(marker in text for marker in BUSINESS_NARRATIVE_MARKERS)
