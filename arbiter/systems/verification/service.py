"""
Arbiter - Verification Service

Runs the five dimension analyzers concurrently, waits for all of them, then
correlates. Analyzers never raise; an exception reaching this layer is an
orchestration fault and is logged and re-raised.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING

import structlog

from arbiter.systems.verification.analyzers import (
    BaseDimensionAnalyzer,
    CommitComplianceAnalyzer,
    CorpusAlignmentAnalyzer,
    FinancialEfficiencyAnalyzer,
    TemporalDecayAnalyzer,
)
from arbiter.systems.verification.correlator import correlate
from arbiter.systems.verification.evidence import ProductionEvidenceAnalyzer

if TYPE_CHECKING:
    import httpx

    from arbiter.config import ArbiterConfig
    from arbiter.systems.detection.detector import ViolationDetector
    from arbiter.systems.rules.registry import RuleRegistry
    from arbiter.systems.verification.history import CommitHistory
    from arbiter.systems.verification.types import CorrelationResult

logger = structlog.get_logger().bind(system="verification")


def default_analyzers(
    config: ArbiterConfig,
    detector: ViolationDetector,
    registry: RuleRegistry,
    http: httpx.AsyncClient,
    history: CommitHistory | None = None,
) -> list[BaseDimensionAnalyzer]:
    verification = config.verification
    return [
        CommitComplianceAnalyzer(
            detector,
            registry,
            history,
            verification,
            commit_count=config.detection.commit_count,
        ),
        CorpusAlignmentAnalyzer(config.paths, verification),
        ProductionEvidenceAnalyzer(config.paths, verification, http),
        TemporalDecayAnalyzer(history, verification),
        FinancialEfficiencyAnalyzer(config.paths, verification),
    ]


class VerificationService:
    def __init__(
        self,
        analyzers: Sequence[BaseDimensionAnalyzer],
        drift_threshold: int = 10,
        compliant_average: int = 85,
    ) -> None:
        self._analyzers = list(analyzers)
        self._drift_threshold = drift_threshold
        self._compliant_average = compliant_average

    async def verify(self) -> CorrelationResult:
        start = time.monotonic()
        try:
            results = await asyncio.gather(*(a.analyze() for a in self._analyzers))
            correlation = correlate(
                results,
                drift_threshold=self._drift_threshold,
                compliant_average=self._compliant_average,
            )
        except Exception:
            logger.exception("verification_failed")
            raise

        logger.info(
            "verification_complete",
            final_score=correlation.final_score,
            status=correlation.status.value,
            average=round(correlation.average_score, 1),
            max_drift=correlation.max_drift,
            latency_ms=int((time.monotonic() - start) * 1000),
        )
        return correlation
