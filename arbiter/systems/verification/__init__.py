"""Arbiter - Verification: five dimension analyzers and their correlation."""

from arbiter.systems.verification.analyzers import (
    BaseDimensionAnalyzer,
    CommitComplianceAnalyzer,
    CorpusAlignmentAnalyzer,
    FinancialEfficiencyAnalyzer,
    TemporalDecayAnalyzer,
)
from arbiter.systems.verification.correlator import correlate
from arbiter.systems.verification.evidence import ProductionEvidenceAnalyzer
from arbiter.systems.verification.history import CommitDiff, CommitHistory, StaticCommitHistory
from arbiter.systems.verification.service import VerificationService, default_analyzers
from arbiter.systems.verification.types import (
    CorrelationError,
    CorrelationResult,
    CorrelationStatus,
    DimensionResult,
    DimensionStatus,
)

__all__ = [
    "BaseDimensionAnalyzer",
    "CommitComplianceAnalyzer",
    "CommitDiff",
    "CommitHistory",
    "CorpusAlignmentAnalyzer",
    "CorrelationError",
    "CorrelationResult",
    "CorrelationStatus",
    "DimensionResult",
    "DimensionStatus",
    "FinancialEfficiencyAnalyzer",
    "ProductionEvidenceAnalyzer",
    "StaticCommitHistory",
    "TemporalDecayAnalyzer",
    "VerificationService",
    "correlate",
    "default_analyzers",
]
