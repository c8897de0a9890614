"""
Tests for the dimension analyzers (D1, D2, D4, D5).

Each analyzer works against tmp_path evidence trees or an in-memory commit
history; none of them may raise.
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from arbiter.config import PathsConfig, VerificationConfig
from arbiter.systems.detection.detector import ViolationDetector
from arbiter.systems.rules.registry import RuleRegistry
from arbiter.systems.rules.types import RuleSet, RuleSource, parse_rule
from arbiter.systems.verification.analyzers import (
    BaseDimensionAnalyzer,
    CommitComplianceAnalyzer,
    CorpusAlignmentAnalyzer,
    FinancialEfficiencyAnalyzer,
    TemporalDecayAnalyzer,
    cve_exposure,
    decay_percent,
)
from arbiter.systems.verification.history import CommitDiff, StaticCommitHistory
from arbiter.systems.verification.types import DimensionResult, DimensionStatus

NOW = datetime(2025, 10, 15, 12, 0, tzinfo=timezone.utc)


def _paths(tmp_path: Path) -> PathsConfig:
    return PathsConfig(base_dir=tmp_path)


def _registry() -> RuleRegistry:
    rule = parse_rule(
        {
            "id": "issue-43",
            "severity": "CRITICAL",
            "pattern": {"detection": {"textPatterns": [r"remov\w*.*security\s+group"]}},
        }
    )
    client = MagicMock()
    client.enabled = True
    client.fetch_rules = AsyncMock(return_value=RuleSet({rule.id: rule}, RuleSource.LIVE))
    return RuleRegistry(Path("/nonexistent"), client=client)


def _commit(hash_: str, subject: str, diff: str = "", days_ago: int = 1) -> CommitDiff:
    return CommitDiff(
        hash=hash_,
        subject=subject,
        diff=diff,
        files=("src/app.js",),
        committed_at=NOW - timedelta(days=days_ago),
    )


# ─── Base ────────────────────────────────────────────────────────


class _Exploding(BaseDimensionAnalyzer):
    dimension = 2
    name = "Exploding"

    async def _analyze(self) -> DimensionResult:
        raise RuntimeError("disk on fire")


class TestBase:
    @pytest.mark.asyncio
    async def test_failures_become_error_results(self):
        result = await _Exploding().analyze()
        assert result.status == DimensionStatus.ERROR
        assert result.score == 0
        assert result.confidence == 0
        assert result.evidence == {"error": "disk on fire"}


# ─── D1 ──────────────────────────────────────────────────────────


class TestCommitCompliance:
    def _analyzer(self, history) -> CommitComplianceAnalyzer:
        registry = _registry()
        return CommitComplianceAnalyzer(
            ViolationDetector(registry), registry, history, VerificationConfig()
        )

    @pytest.mark.asyncio
    async def test_without_history_is_estimated(self):
        result = await self._analyzer(None).analyze()
        assert result.dimension == 1
        assert result.status == DimensionStatus.ESTIMATED
        assert result.score == 85
        assert result.confidence == 50

    @pytest.mark.asyncio
    async def test_clean_history_passes(self):
        history = StaticCommitHistory(
            [_commit("a" * 40, "Add README"), _commit("b" * 40, "Improve soc1 compliance docs")]
        )
        result = await self._analyzer(history).analyze()
        assert result.score == 95
        assert result.status == DimensionStatus.PASSED
        assert result.evidence["commitsAnalyzed"] == 2
        assert result.evidence["commendations"] == 1
        assert result.evidence["lawsChecked"] == 1

    @pytest.mark.asyncio
    async def test_critical_violation_penalised(self):
        history = StaticCommitHistory(
            [
                _commit("c" * 40, "Simplify networking", "- removing the security group"),
                _commit("d" * 40, "Fix typo"),
            ]
        )
        result = await self._analyzer(history).analyze()
        assert result.score == 70
        assert result.status == DimensionStatus.DRIFT_DETECTED
        assert result.evidence["critical"] == 1
        assert result.evidence["flaggedCommits"] == ["ccccccc"]

    @pytest.mark.asyncio
    async def test_score_floors_at_zero(self):
        history = StaticCommitHistory(
            [_commit(str(i) * 40, "x", "removing the security group") for i in range(5)]
        )
        result = await self._analyzer(history).analyze()
        assert result.score == 0


# ─── D2 ──────────────────────────────────────────────────────────


def _write_corpus(tmp_path: Path, count: int, completion: str, junk_lines: int = 0) -> None:
    path = tmp_path / "crown-jewels" / "training-dataset-v1.jsonl"
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [json.dumps({"q": f"question {i}", "a": completion}) for i in range(count)]
    lines += ["{ not json"] * junk_lines
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


class TestCorpusAlignment:
    @pytest.mark.asyncio
    async def test_missing_corpus_fails(self, tmp_path: Path):
        result = await CorpusAlignmentAnalyzer(_paths(tmp_path), VerificationConfig()).analyze()
        assert result.status == DimensionStatus.FAILED
        assert result.score == 0

    @pytest.mark.asyncio
    async def test_aligned_corpus_reports_cap(self, tmp_path: Path):
        _write_corpus(tmp_path, 45, "95% epistemic cap, evidence first, precise")
        result = await CorpusAlignmentAnalyzer(_paths(tmp_path), VerificationConfig()).analyze()
        assert result.evidence["sizeScore"] == 86
        assert result.evidence["qualityScore"] == 95
        assert result.evidence["score"] == 91
        assert result.evidence["aligned"] is True
        assert result.score == 95
        assert result.status == DimensionStatus.PASSED

    @pytest.mark.asyncio
    async def test_partial_corpus(self, tmp_path: Path):
        _write_corpus(tmp_path, 10, "precise evidence", junk_lines=3)
        result = await CorpusAlignmentAnalyzer(_paths(tmp_path), VerificationConfig()).analyze()
        assert result.evidence["records"] == 10
        assert result.evidence["sizeScore"] == 19
        assert result.evidence["qualityScore"] == 48
        assert result.score == 34
        assert result.status == DimensionStatus.DRIFT_DETECTED
        assert result.evidence["hasPrecision"] is True
        assert result.evidence["hasEpistemicHumility"] is False

    @pytest.mark.asyncio
    async def test_corpus_read_off_the_event_loop(self, tmp_path: Path):
        _write_corpus(tmp_path, 5, "precise")

        with patch(
            "arbiter.systems.verification.analyzers.asyncio.to_thread",
            wraps=asyncio.to_thread,
        ) as to_thread:
            result = await CorpusAlignmentAnalyzer(_paths(tmp_path), VerificationConfig()).analyze()

        assert result.evidence["records"] == 5
        assert to_thread.await_count == 1


# ─── D4 ──────────────────────────────────────────────────────────


class TestDecayBands:
    @pytest.mark.parametrize(
        ("days", "expected"),
        [(0, 0.0), (7, 0.0), (8, 0.8), (20, 2.0), (30, 3.0), (60, 2.0), (300, 10.0), (900, 10.0)],
    )
    def test_decay_percent(self, days: int, expected: float):
        assert decay_percent(days, VerificationConfig()) == pytest.approx(expected)

    def test_cve_exposure(self):
        assert cve_exposure(0) == 0
        assert cve_exposure(45) == 75
        assert cve_exposure(60) == 100


class TestTemporalDecay:
    def _analyzer(self, history) -> TemporalDecayAnalyzer:
        return TemporalDecayAnalyzer(history, VerificationConfig(), clock=lambda: NOW)

    @pytest.mark.asyncio
    async def test_without_history_is_estimated(self):
        result = await self._analyzer(None).analyze()
        assert result.status == DimensionStatus.ESTIMATED
        assert result.score == 85
        assert result.confidence == 50

    @pytest.mark.asyncio
    async def test_fresh_change_passes(self):
        result = await self._analyzer(StaticCommitHistory([_commit("a" * 40, "x", days_ago=3)])).analyze()
        assert result.score == 95
        assert result.status == DimensionStatus.PASSED
        assert result.evidence["lastChangeAgeDays"] == 3

    @pytest.mark.asyncio
    async def test_stale_change_decays(self):
        result = await self._analyzer(StaticCommitHistory([_commit("a" * 40, "x", days_ago=25)])).analyze()
        assert result.score == 93
        assert result.status == DimensionStatus.DECAYED
        assert result.evidence["decayPercent"] == pytest.approx(2.5)

    @pytest.mark.asyncio
    async def test_uses_most_recent_change(self):
        history = StaticCommitHistory(
            [_commit("a" * 40, "x", days_ago=400), _commit("b" * 40, "y", days_ago=2)]
        )
        result = await self._analyzer(history).analyze()
        assert result.score == 95

    @pytest.mark.asyncio
    async def test_naive_commit_time_read_as_utc(self):
        commit = CommitDiff(hash="abc", committed_at=NOW.replace(tzinfo=None) - timedelta(days=2))
        assert commit.committed_at.tzinfo is timezone.utc

        result = await self._analyzer(StaticCommitHistory([commit])).analyze()

        assert result.status == DimensionStatus.PASSED
        assert result.score == 95
        assert result.evidence["lastChangeAgeDays"] == 2

    @pytest.mark.asyncio
    async def test_naive_change_time_from_custom_history(self):
        history = MagicMock()
        history.last_change_at = AsyncMock(return_value=NOW.replace(tzinfo=None) - timedelta(days=20))

        result = await self._analyzer(history).analyze()

        assert result.status == DimensionStatus.DECAYED
        assert result.score == 93

    @pytest.mark.asyncio
    async def test_very_old_change_hits_max_decay(self):
        result = await self._analyzer(StaticCommitHistory([_commit("a" * 40, "x", days_ago=400)])).analyze()
        assert result.score == 85
        assert result.evidence["cveExposure"] == 666


# ─── D5 ──────────────────────────────────────────────────────────


def _write_financial(tmp_path: Path, name: str, payload: object) -> None:
    directory = tmp_path / "compliance" / "evidence" / "financial"
    directory.mkdir(parents=True, exist_ok=True)
    text = payload if isinstance(payload, str) else json.dumps(payload)
    (directory / name).write_text(text, encoding="utf-8")


def _session(cost: float, roi: float, velocity: str) -> dict:
    return {
        "date": "2025-10-14",
        "session": "sprint",
        "financial_analysis": {
            "traditional_consulting_cost_midpoint": cost,
            "roi_calculation": {"roi_percentage": roi, "velocity_multiplier": velocity},
        },
    }


class TestFinancialEfficiency:
    @pytest.mark.asyncio
    async def test_missing_directory_is_neutral(self, tmp_path: Path):
        result = await FinancialEfficiencyAnalyzer(_paths(tmp_path), VerificationConfig()).analyze()
        assert result.score == 50
        assert result.status == DimensionStatus.DEGRADED

    @pytest.mark.asyncio
    async def test_avoided_cost_scores_cap(self, tmp_path: Path):
        _write_financial(tmp_path, "avoided-cost-2025-10-01.json", _session(40_000, 1000, "10x"))
        _write_financial(tmp_path, "avoided-cost-2025-10-14.json", _session(60_000, 3000, "42x"))
        _write_financial(tmp_path, "avoided-cost-2025-10-09.json", "{ broken")
        _write_financial(tmp_path, "unrelated.json", _session(1_000_000, 0, "1x"))

        result = await FinancialEfficiencyAnalyzer(_paths(tmp_path), VerificationConfig()).analyze()

        assert result.score == 95
        assert result.status == DimensionStatus.PASSED
        assert result.evidence["totalAvoidedCost"] == 100_000
        assert result.evidence["roi"] == 2000
        assert result.evidence["velocityMultiplier"] == "42x"
        assert len(result.evidence["sessions"]) == 2

    @pytest.mark.asyncio
    async def test_zero_cost_is_neutral(self, tmp_path: Path):
        _write_financial(tmp_path, "avoided-cost-2025-10-14.json", _session(0, 0, "1x"))
        result = await FinancialEfficiencyAnalyzer(_paths(tmp_path), VerificationConfig()).analyze()
        assert result.score == 50
        assert result.status == DimensionStatus.DEGRADED
