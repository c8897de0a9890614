"""
Tests for the production evidence analyzer (D3).

Endpoints are served by httpx.MockTransport; scan and analytics evidence is
written under tmp_path.
"""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from arbiter.config import PathsConfig, VerificationConfig
from arbiter.systems.verification.evidence import ProductionEvidenceAnalyzer
from arbiter.systems.verification.types import DimensionStatus


def _http(status_for: dict[str, int] | None = None, fail: set[str] | None = None) -> httpx.AsyncClient:
    status_for = status_for or {}
    fail = fail or set()

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path in fail:
            raise httpx.ConnectTimeout("timed out", request=request)
        return httpx.Response(status_for.get(request.url.path, 200), json={"ok": True})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _write(tmp_path: Path, subdir: str, name: str, payload: object) -> None:
    directory = tmp_path / "compliance" / "evidence" / subdir
    directory.mkdir(parents=True, exist_ok=True)
    text = payload if isinstance(payload, str) else json.dumps(payload)
    (directory / name).write_text(text, encoding="utf-8")


def _scan(service: str, malicious: int = 0, suspicious: int = 0, status: str = "CLEAN") -> dict:
    return {
        "service": service,
        "virustotal_scan": {
            "status": status,
            "stats": {"malicious": malicious, "suspicious": suspicious},
        },
    }


def _analytics(tmp_path: Path, pageviews: int = 1200) -> None:
    _write(
        tmp_path,
        "marketing",
        "cloudflare-analytics-2025-10-14.json",
        {"summary": {"total_pageviews": pageviews, "total_uniques": 300, "date_range": "7d"}},
    )


def _analyzer(tmp_path: Path, http: httpx.AsyncClient) -> ProductionEvidenceAnalyzer:
    return ProductionEvidenceAnalyzer(PathsConfig(base_dir=tmp_path), VerificationConfig(), http)


class TestProductionEvidence:
    @pytest.mark.asyncio
    async def test_everything_healthy_short_circuits_to_cap(self, tmp_path: Path):
        _write(tmp_path, "virustotal", "api-virustotal-evidence.json", _scan("api"))
        _analytics(tmp_path)

        result = await _analyzer(tmp_path, _http()).analyze()

        assert result.dimension == 3
        assert result.score == 95
        assert result.status == DimensionStatus.PASSED
        assert result.evidence["apis"]["allHealthy"] is True
        assert result.evidence["scans"]["allClean"] is True
        assert result.evidence["analytics"]["hasData"] is True

    @pytest.mark.asyncio
    async def test_nothing_available(self, tmp_path: Path):
        http = _http(status_for={p: 500 for p in VerificationConfig().endpoints})

        result = await _analyzer(tmp_path, http).analyze()

        # 0 * 0.4 + 50 * 0.3 + 50 * 0.3
        assert result.score == 30
        assert result.status == DimensionStatus.DEGRADED

    @pytest.mark.asyncio
    async def test_partial_endpoint_failure_is_tolerated(self, tmp_path: Path):
        _write(tmp_path, "virustotal", "api-virustotal-evidence.json", _scan("api"))
        _analytics(tmp_path)

        result = await _analyzer(tmp_path, _http(fail={"/api/patents"})).analyze()

        # 75 * 0.4 + 95 * 0.3 + 95 * 0.3
        assert result.score == 87
        assert result.status == DimensionStatus.DEGRADED
        degraded = [a for a in result.evidence["apis"]["endpoints"] if a["status"] == "DEGRADED"]
        assert [a["endpoint"] for a in degraded] == ["/api/patents"]
        assert degraded[0]["statusCode"] == 0

    @pytest.mark.asyncio
    async def test_malicious_scan_overrides_status(self, tmp_path: Path):
        _write(tmp_path, "virustotal", "api-virustotal-evidence.json", _scan("api", malicious=1, status="FLAGGED"))
        _analytics(tmp_path)

        result = await _analyzer(tmp_path, _http()).analyze()

        # 100 * 0.4 + 85 * 0.3 + 95 * 0.3
        assert result.score == 94
        assert result.status == DimensionStatus.MALICIOUS_DETECTED
        assert result.evidence["scans"]["securityScore"] == 85


class TestScanScoring:
    def test_no_directory_is_neutral(self, tmp_path: Path):
        scans = _analyzer(tmp_path, _http()).check_scans()
        assert scans.security_score == 50
        assert not scans.all_clean

    def test_skipped_only(self, tmp_path: Path):
        _write(tmp_path, "virustotal", "a.json", {"virustotal_scan": {"scan_skipped": True}})
        _write(tmp_path, "virustotal", "b.json", "{ broken")
        scans = _analyzer(tmp_path, _http()).check_scans()
        assert scans.skipped == 1
        assert scans.security_score == 75

    def test_suspicious_penalty(self, tmp_path: Path):
        _write(tmp_path, "virustotal", "a.json", _scan("a", suspicious=3, status="SUSPICIOUS"))
        scans = _analyzer(tmp_path, _http()).check_scans()
        # suspicious alone still counts as clean of malicious detections
        assert scans.all_clean
        assert scans.security_score == 95

    def test_penalty_floors_at_zero(self, tmp_path: Path):
        _write(tmp_path, "virustotal", "a.json", _scan("a", malicious=12))
        scans = _analyzer(tmp_path, _http()).check_scans()
        assert scans.has_malicious
        assert scans.security_score == 0


class TestAnalytics:
    def test_most_recent_file_wins(self, tmp_path: Path):
        _write(tmp_path, "marketing", "cloudflare-analytics-2025-09-01.json", {"summary": {"total_pageviews": 5}})
        _write(tmp_path, "marketing", "cloudflare-analytics-2025-10-01.json", {"summary": {"pageViews": 0}})
        analytics = _analyzer(tmp_path, _http()).check_analytics()
        assert analytics.analytics is not None
        assert analytics.analytics["file"] == "cloudflare-analytics-2025-10-01.json"
        assert not analytics.has_data
        assert analytics.analytics_score == 50

    def test_camel_case_summary(self, tmp_path: Path):
        _write(
            tmp_path,
            "marketing",
            "cloudflare-analytics-2025-10-14.json",
            {"summary": {"pageViews": 40, "uniques": 12, "dateRange": "24h"}},
        )
        analytics = _analyzer(tmp_path, _http()).check_analytics()
        assert analytics.has_data
        assert analytics.analytics_score == 95
        assert analytics.analytics == {
            "pageviews": 40,
            "uniques": 12,
            "dateRange": "24h",
            "file": "cloudflare-analytics-2025-10-14.json",
        }

    def test_unreadable_file_is_neutral(self, tmp_path: Path):
        _write(tmp_path, "marketing", "cloudflare-analytics-2025-10-14.json", "{ broken")
        analytics = _analyzer(tmp_path, _http()).check_analytics()
        assert analytics.analytics_score == 50
        assert not analytics.has_data
