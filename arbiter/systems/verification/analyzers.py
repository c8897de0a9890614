"""
Arbiter - Dimension Analyzers

Each analyzer scores one evidence domain into a DimensionResult:

  D1  Commit Compliance     recent history run through the detector
  D2  Corpus Alignment      size and quality of the reference corpus
  D3  Production Evidence   see ``evidence.py``
  D4  Temporal Decay        age of the last change
  D5  Financial Efficiency  avoided-cost evidence records

Analyzers are independent and read-only. Every one of them converts its own
failures into a result (ERROR or ESTIMATED); ``analyze`` never raises, so one
analyzer cannot abort the others when they run under ``asyncio.gather``.
"""

from __future__ import annotations

import abc
import asyncio
import json
import math
import time
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from arbiter.primitives.common import EPISTEMIC_CAP, Severity, as_utc, round_half_up, utc_now
from arbiter.systems.detection.types import AnalysisContext
from arbiter.systems.verification.types import DimensionResult, DimensionStatus

if TYPE_CHECKING:
    from arbiter.config import PathsConfig, VerificationConfig
    from arbiter.systems.detection.detector import ViolationDetector
    from arbiter.systems.rules.registry import RuleRegistry
    from arbiter.systems.verification.history import CommitHistory

logger = structlog.get_logger().bind(system="verification")

# Score reported when a dimension cannot be measured but has no reason to fail.
ESTIMATED_SCORE = 85


# ─── Abstract Base ──────────────────────────────────────────────


class BaseDimensionAnalyzer(abc.ABC):
    """
    Strategy interface for one dimension.

    Subclasses set ``dimension`` and ``name`` and implement ``_analyze``.
    The error_* attributes describe the result substituted when ``_analyze``
    raises.
    """

    dimension: int = 0
    name: str = ""
    error_score: int = 0
    error_confidence: int = 0
    error_status: DimensionStatus = DimensionStatus.ERROR

    @abc.abstractmethod
    async def _analyze(self) -> DimensionResult:
        ...

    async def analyze(self) -> DimensionResult:
        start = time.monotonic()
        try:
            result = await self._analyze()
        except Exception as exc:
            logger.warning(
                "dimension_failed",
                dimension=self.dimension,
                name=self.name,
                error=str(exc),
            )
            result = self._result(
                self.error_score,
                self.error_status,
                evidence={"error": str(exc)},
                details=f"{self.name} error: {exc}",
                confidence=self.error_confidence,
            )
        logger.info(
            "dimension_complete",
            dimension=self.dimension,
            score=result.score,
            status=result.status.value,
            latency_ms=int((time.monotonic() - start) * 1000),
        )
        return result

    def _result(
        self,
        score: float,
        status: DimensionStatus,
        evidence: dict[str, Any] | None = None,
        details: str = "",
        confidence: int = 95,
    ) -> DimensionResult:
        return DimensionResult(
            dimension=self.dimension,
            name=self.name,
            score=score,
            confidence=confidence,
            status=status,
            evidence=evidence or {},
            details=details,
        )


# ─── D1: Commit Compliance ──────────────────────────────────────


class CommitComplianceAnalyzer(BaseDimensionAnalyzer):
    """
    Runs the detector over recent commits.

    Score starts at the cap and loses 25 per CRITICAL violation, 10 per other
    violation and 2 per warning; each commendation gives 1 back, never past
    the cap.
    """

    dimension = 1
    name = "Commit Compliance"

    CRITICAL_PENALTY = 25
    VIOLATION_PENALTY = 10
    WARNING_PENALTY = 2
    COMMENDATION_CREDIT = 1

    def __init__(
        self,
        detector: ViolationDetector,
        registry: RuleRegistry,
        history: CommitHistory | None,
        config: VerificationConfig,
        commit_count: int = 10,
    ) -> None:
        self._detector = detector
        self._registry = registry
        self._history = history
        self._config = config
        self._commit_count = commit_count

    async def _analyze(self) -> DimensionResult:
        if self._history is None:
            return self._result(
                ESTIMATED_SCORE,
                DimensionStatus.ESTIMATED,
                evidence={"error": "No commit history available"},
                details="Commit history not wired; compliance estimated",
                confidence=50,
            )

        commits = await self._history.recent_commits(self._commit_count)
        if not commits:
            return self._result(
                ESTIMATED_SCORE,
                DimensionStatus.ESTIMATED,
                evidence={"commitsAnalyzed": 0},
                details="No commits to analyse",
                confidence=50,
            )

        critical = violations = warnings = commendations = 0
        files: set[str] = set()
        flagged: list[str] = []
        for commit in commits:
            context = AnalysisContext(
                source="commit",
                timestamp=commit.committed_at or utc_now(),
                files=commit.files,
                commit=commit.hash,
                subject=commit.subject,
            )
            text = "\n".join(part for part in (commit.subject, commit.body, commit.diff) if part)
            result = await self._detector.analyze(text, context)
            files.update(commit.files)
            critical += sum(1 for v in result.violations if v.severity == Severity.CRITICAL)
            violations += len(result.violations)
            warnings += len(result.warnings)
            commendations += len(result.commendations)
            if result.has_violations:
                flagged.append(commit.short_hash)

        penalty = (
            critical * self.CRITICAL_PENALTY
            + (violations - critical) * self.VIOLATION_PENALTY
            + warnings * self.WARNING_PENALTY
        )
        score = min(EPISTEMIC_CAP, EPISTEMIC_CAP - penalty + commendations * self.COMMENDATION_CREDIT)
        score = max(0, score)
        status = (
            DimensionStatus.PASSED
            if score >= self._config.dimension_threshold
            else DimensionStatus.DRIFT_DETECTED
        )
        details = (
            "All commits compliant with THE LAW"
            if not violations
            else f"{violations} violation(s) across {len(flagged)} commit(s)"
        )
        return self._result(
            score,
            status,
            evidence={
                "commitsAnalyzed": len(commits),
                "violations": violations,
                "critical": critical,
                "warnings": warnings,
                "commendations": commendations,
                "filesAnalyzed": len(files),
                "lawsChecked": len(self._registry.active),
                "flaggedCommits": flagged,
            },
            details=details,
        )


# ─── D2: Corpus Alignment ───────────────────────────────────────


# Alignment signals searched for in the lower-cased corpus text.
CORPUS_SIGNALS: dict[str, tuple[str, ...]] = {
    "has95PercentBadge": ("95%", "epistemic cap"),
    "hasEpistemicHumility": ("epistemic", "humility", "5% bullshit"),
    "hasEvidenceBacked": ("evidence", "validated", "proof"),
    "hasPrecision": ("precise", "rigorous", "aristocrats"),
}


class CorpusAlignmentAnalyzer(BaseDimensionAnalyzer):
    dimension = 2
    name = "Corpus Alignment"

    def __init__(self, paths: PathsConfig, config: VerificationConfig) -> None:
        self._paths = paths
        self._config = config

    async def _analyze(self) -> DimensionResult:
        corpus = self._paths.corpus
        if not corpus.is_file():
            return self._result(
                0,
                DimensionStatus.FAILED,
                evidence={"error": "Corpus not found"},
                details=f"Corpus path not accessible: {corpus}",
                confidence=0,
            )

        content = await asyncio.to_thread(corpus.read_text, encoding="utf-8")
        records = 0
        for line in content.splitlines():
            if not line.strip():
                continue
            try:
                json.loads(line)
            except json.JSONDecodeError:
                continue
            records += 1

        lower = content.lower()
        checks = {
            signal: any(k in lower for k in keywords)
            for signal, keywords in CORPUS_SIGNALS.items()
        }
        passed = sum(checks.values())

        target = max(1, self._config.corpus_target_records)
        size_score = (
            EPISTEMIC_CAP
            if records >= target
            else round_half_up(records / target * EPISTEMIC_CAP)
        )
        quality_score = round_half_up(passed / len(CORPUS_SIGNALS) * EPISTEMIC_CAP)
        computed = min(EPISTEMIC_CAP, round_half_up((size_score + quality_score) / 2))
        aligned = computed >= self._config.corpus_aligned_score
        score = EPISTEMIC_CAP if aligned else computed

        message = (
            f"Corpus aligned ({records} records, {passed}/{len(CORPUS_SIGNALS)} quality checks passed)"
            if aligned
            else (
                f"Corpus needs improvement ({records} records, {passed}/{len(CORPUS_SIGNALS)} "
                f"quality checks, need {self._config.corpus_aligned_score}+ score)"
            )
        )
        return self._result(
            score,
            DimensionStatus.PASSED
            if score >= self._config.dimension_threshold
            else DimensionStatus.DRIFT_DETECTED,
            evidence={
                **checks,
                "records": records,
                "sizeScore": size_score,
                "qualityScore": quality_score,
                "score": computed,
                "aligned": aligned,
            },
            details=message,
        )


# ─── D4: Temporal Decay ─────────────────────────────────────────


def decay_percent(age_days: int, config: VerificationConfig) -> float:
    """0% while fresh, then a shallow band, then a steeper band up to the maximum."""
    if age_days <= config.decay_fresh_days:
        return 0.0
    if age_days <= config.decay_recent_days:
        return min(config.decay_recent_max_percent, age_days / 10)
    return min(config.decay_max_percent, age_days / 30)


def cve_exposure(age_days: int) -> int:
    """Rough estimate at 50 new advisories per 30 days."""
    return math.floor(age_days / 30 * 50)


class TemporalDecayAnalyzer(BaseDimensionAnalyzer):
    dimension = 4
    name = "Temporal Decay"
    error_score = ESTIMATED_SCORE
    error_confidence = 50
    error_status = DimensionStatus.ESTIMATED

    def __init__(
        self,
        history: CommitHistory | None,
        config: VerificationConfig,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._history = history
        self._config = config
        self._clock = clock

    async def _analyze(self) -> DimensionResult:
        if self._history is None:
            raise LookupError("No commit history available")
        last = await self._history.last_change_at()
        if last is None:
            raise LookupError("No recorded change time")

        age_days = max(0, (self._clock() - as_utc(last)).days)
        decay = decay_percent(age_days, self._config)
        exposure = cve_exposure(age_days)
        score = max(0.0, EPISTEMIC_CAP - decay)
        return self._result(
            score,
            DimensionStatus.PASSED
            if score >= self._config.dimension_threshold
            else DimensionStatus.DECAYED,
            evidence={
                "lastChangeAgeDays": age_days,
                "lastChangeAt": last.isoformat(),
                "cveExposure": exposure,
                "decayPercent": decay,
            },
            details=(
                f"Last update: {age_days} days ago, estimated CVE exposure: {exposure}, "
                f"decay: {decay:.1f}%"
            ),
        )


# ─── D5: Financial Efficiency ───────────────────────────────────


def _read_session(path: Path) -> dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    analysis = data.get("financial_analysis") or {}
    roi = analysis.get("roi_calculation") or {}
    return {
        "file": path.name,
        "date": data.get("date", "unknown"),
        "session": data.get("session", "unknown"),
        "avoidedCost": float(analysis.get("traditional_consulting_cost_midpoint") or 0),
        "roi": float(roi.get("roi_percentage") or 0),
        "velocity": roi.get("velocity_multiplier") or "1x",
    }


class FinancialEfficiencyAnalyzer(BaseDimensionAnalyzer):
    dimension = 5
    name = "Financial Efficiency"
    error_score = 50
    error_confidence = 50
    error_status = DimensionStatus.ESTIMATED

    NEUTRAL_SCORE = 50

    def __init__(self, paths: PathsConfig, config: VerificationConfig) -> None:
        self._paths = paths
        self._config = config

    def _neutral(self, details: str, evidence: dict[str, Any] | None = None) -> DimensionResult:
        return self._result(self.NEUTRAL_SCORE, DimensionStatus.DEGRADED, evidence, details)

    async def _analyze(self) -> DimensionResult:
        directory = self._paths.evidence / self._config.financial_subdir
        if not directory.is_dir():
            return self._neutral("No financial evidence found")

        files = sorted(
            (
                p
                for p in directory.iterdir()
                if p.name.startswith(self._config.financial_prefix) and p.suffix == ".json"
            ),
            key=lambda p: p.name,
            reverse=True,
        )
        if not files:
            return self._neutral("No avoided cost data")

        sessions: list[dict[str, Any]] = []
        for path in files:
            try:
                sessions.append(await asyncio.to_thread(_read_session, path))
            except (OSError, ValueError, AttributeError, TypeError) as exc:
                logger.debug("financial_record_skipped", file=path.name, reason=str(exc))

        total = sum(s["avoidedCost"] for s in sessions)
        roi = round_half_up(sum(s["roi"] for s in sessions) / len(sessions)) if sessions else 0
        velocity = sessions[0]["velocity"] if sessions else "unknown"
        evidence = {
            "sessions": sessions,
            "totalAvoidedCost": total,
            "roi": roi,
            "velocityMultiplier": velocity,
        }

        if total <= 0:
            return self._neutral("No financial efficiency data collected", evidence)

        return self._result(
            EPISTEMIC_CAP,
            DimensionStatus.PASSED
            if EPISTEMIC_CAP >= self._config.dimension_threshold
            else DimensionStatus.DEGRADED,
            evidence=evidence,
            details=(
                f"${total:,.0f} avoided ({len(sessions)} sessions, "
                f"{roi:,}% ROI, {velocity} velocity)"
            ),
        )
