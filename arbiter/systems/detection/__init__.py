"""Arbiter - Detection: classifiers, the rule-check table, heuristics and the detector."""

from arbiter.systems.detection.checks import (
    BaseRuleCheck,
    ContractRuleCheck,
    PatternRuleCheck,
    ShapeRuleCheck,
    default_checks,
)
from arbiter.systems.detection.detector import ViolationDetector
from arbiter.systems.detection.types import (
    AnalysisContext,
    AnalysisResult,
    Finding,
    FindingKind,
)

__all__ = [
    "AnalysisContext",
    "AnalysisResult",
    "BaseRuleCheck",
    "ContractRuleCheck",
    "Finding",
    "FindingKind",
    "PatternRuleCheck",
    "ShapeRuleCheck",
    "ViolationDetector",
    "default_checks",
]
