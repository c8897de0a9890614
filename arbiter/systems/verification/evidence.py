"""
Arbiter - Production Evidence (D3)

Three weighted sub-scores:
  - endpoint health   0.4  fraction of the endpoint list answering 200, out of 100
  - security scans    0.3  scan evidence files; no data is a neutral 50
  - analytics         0.3  most recent analytics file; data present is the cap

All healthy, all clean and analytics present short-circuits to the cap. Any
malicious scan result sets MALICIOUS_DETECTED whatever the score.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from arbiter.primitives.common import EPISTEMIC_CAP, round_half_up
from arbiter.systems.verification.analyzers import BaseDimensionAnalyzer
from arbiter.systems.verification.types import DimensionResult, DimensionStatus

if TYPE_CHECKING:
    from arbiter.config import PathsConfig, VerificationConfig

logger = structlog.get_logger().bind(system="verification")

ENDPOINT_WEIGHT = 0.4
SCAN_WEIGHT = 0.3
ANALYTICS_WEIGHT = 0.3

NEUTRAL_SCORE = 50
SKIPPED_SCAN_SCORE = 75


@dataclass
class EndpointEvidence:
    apis: list[dict[str, Any]] = field(default_factory=list)
    all_healthy: bool = False
    health_score: int = 0
    message: str = ""


@dataclass
class ScanEvidence:
    scans: list[dict[str, Any]] = field(default_factory=list)
    skipped: int = 0
    all_clean: bool = False
    has_malicious: bool = False
    security_score: int = NEUTRAL_SCORE
    message: str = ""


@dataclass
class AnalyticsEvidence:
    analytics: dict[str, Any] | None = None
    has_data: bool = False
    analytics_score: int = NEUTRAL_SCORE
    message: str = ""


def score_scans(evidence: ScanEvidence) -> ScanEvidence:
    malicious = sum(s["malicious"] for s in evidence.scans)
    suspicious = sum(s["suspicious"] for s in evidence.scans)
    scanned = len(evidence.scans)
    evidence.has_malicious = malicious > 0
    evidence.all_clean = malicious == 0 and scanned > 0

    if scanned == 0:
        if evidence.skipped:
            evidence.security_score = SKIPPED_SCAN_SCORE
            evidence.message = f"All scans skipped ({evidence.skipped}), awaiting completion"
        else:
            evidence.security_score = NEUTRAL_SCORE
            evidence.message = "No scans found"
    elif evidence.all_clean:
        clean = sum(1 for s in evidence.scans if s["status"] == "CLEAN")
        evidence.security_score = EPISTEMIC_CAP
        evidence.message = f"All clean ({clean}/{scanned})"
    else:
        penalty = min(100, malicious * 10 + suspicious * 5)
        evidence.security_score = max(0, EPISTEMIC_CAP - penalty)
        evidence.message = f"{malicious} malicious, {suspicious} suspicious detected"
    return evidence


class ProductionEvidenceAnalyzer(BaseDimensionAnalyzer):
    dimension = 3
    name = "Production Evidence"

    def __init__(
        self,
        paths: PathsConfig,
        config: VerificationConfig,
        http: httpx.AsyncClient,
    ) -> None:
        self._paths = paths
        self._config = config
        self._http = http

    async def _analyze(self) -> DimensionResult:
        endpoints = await self.check_endpoints()
        scans = await asyncio.to_thread(self.check_scans)
        analytics = await asyncio.to_thread(self.check_analytics)

        if endpoints.all_healthy and scans.all_clean and analytics.has_data:
            score = EPISTEMIC_CAP
        else:
            score = round_half_up(
                endpoints.health_score * ENDPOINT_WEIGHT
                + scans.security_score * SCAN_WEIGHT
                + analytics.analytics_score * ANALYTICS_WEIGHT
            )

        if scans.has_malicious:
            status = DimensionStatus.MALICIOUS_DETECTED
        elif score < self._config.dimension_threshold:
            status = DimensionStatus.DEGRADED
        else:
            status = DimensionStatus.PASSED

        return self._result(
            score,
            status,
            evidence={
                "apis": {
                    "endpoints": endpoints.apis,
                    "allHealthy": endpoints.all_healthy,
                    "healthScore": endpoints.health_score,
                },
                "scans": {
                    "scans": scans.scans,
                    "skipped": scans.skipped,
                    "allClean": scans.all_clean,
                    "hasMalicious": scans.has_malicious,
                    "securityScore": scans.security_score,
                },
                "analytics": {
                    "analytics": analytics.analytics,
                    "hasData": analytics.has_data,
                    "analyticsScore": analytics.analytics_score,
                },
            },
            details=f"APIs: {endpoints.message}, Scans: {scans.message}, Analytics: {analytics.message}",
        )

    # ─── Endpoints ──────────────────────────────────────────────────

    async def _probe(self, endpoint: str) -> httpx.Response:
        return await self._http.get(
            f"{self._config.production_base_url.rstrip('/')}{endpoint}",
            timeout=self._config.endpoint_timeout_s,
        )

    async def check_endpoints(self) -> EndpointEvidence:
        evidence = EndpointEvidence()
        endpoints = list(self._config.endpoints)
        if not endpoints:
            evidence.message = "No endpoints configured"
            return evidence

        results = await asyncio.gather(
            *(self._probe(e) for e in endpoints),
            return_exceptions=True,
        )
        for endpoint, result in zip(endpoints, results):
            if isinstance(result, BaseException):
                evidence.apis.append(
                    {"endpoint": endpoint, "status": "DEGRADED", "statusCode": 0, "error": str(result)}
                )
                continue
            evidence.apis.append(
                {
                    "endpoint": endpoint,
                    "status": "HEALTHY" if result.status_code == 200 else "DEGRADED",
                    "statusCode": result.status_code,
                    "responseTime": result.headers.get("x-response-time", "N/A"),
                }
            )

        healthy = sum(1 for a in evidence.apis if a["status"] == "HEALTHY")
        evidence.health_score = round_half_up(healthy / len(endpoints) * 100)
        evidence.all_healthy = healthy == len(endpoints)
        evidence.message = (
            f"All production APIs healthy ({healthy}/{len(endpoints)})"
            if evidence.all_healthy
            else f"Production degraded ({healthy}/{len(endpoints)} healthy)"
        )
        return evidence

    # ─── Security Scans ─────────────────────────────────────────────

    def check_scans(self) -> ScanEvidence:
        evidence = ScanEvidence()
        directory = self._paths.evidence / self._config.scan_subdir
        if not directory.is_dir():
            evidence.message = "No security scans found"
            return evidence

        files = sorted(p for p in directory.iterdir() if p.suffix == ".json")
        if not files:
            evidence.message = "No security scan evidence files"
            return evidence

        for path in files:
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                scan = data.get("virustotal_scan") or {}
                if scan.get("scan_skipped"):
                    evidence.skipped += 1
                    continue
                stats = scan.get("stats") or {}
                evidence.scans.append(
                    {
                        "service": data.get("service")
                        or path.name.replace("-virustotal-evidence.json", ""),
                        "malicious": int(stats.get("malicious") or 0),
                        "suspicious": int(stats.get("suspicious") or 0),
                        "status": scan.get("status", "UNKNOWN"),
                    }
                )
            except (OSError, ValueError, AttributeError, TypeError) as exc:
                logger.debug("scan_record_skipped", file=path.name, reason=str(exc))

        return score_scans(evidence)

    # ─── Analytics ──────────────────────────────────────────────────

    def check_analytics(self) -> AnalyticsEvidence:
        evidence = AnalyticsEvidence()
        directory = self._paths.evidence / self._config.analytics_subdir
        if not directory.is_dir():
            evidence.message = "No analytics found"
            return evidence

        files = sorted(
            (
                p
                for p in directory.iterdir()
                if p.name.startswith(self._config.analytics_prefix) and p.suffix == ".json"
            ),
            key=lambda p: p.name,
            reverse=True,
        )
        if not files:
            evidence.message = "No analytics evidence"
            return evidence

        latest: Path = files[0]
        try:
            data = json.loads(latest.read_text(encoding="utf-8"))
            summary = data.get("summary") or {}
            pageviews = int(summary.get("total_pageviews") or summary.get("pageViews") or 0)
            uniques = int(summary.get("total_uniques") or summary.get("uniques") or 0)
            date_range = summary.get("date_range") or summary.get("dateRange") or "unknown"
        except (OSError, ValueError, AttributeError, TypeError) as exc:
            evidence.message = f"Analytics error: {exc}"
            return evidence

        evidence.analytics = {
            "pageviews": pageviews,
            "uniques": uniques,
            "dateRange": date_range,
            "file": latest.name,
        }
        evidence.has_data = pageviews > 0
        if evidence.has_data:
            evidence.analytics_score = EPISTEMIC_CAP
            evidence.message = f"{pageviews} pageviews, {uniques} uniques ({date_range})"
        else:
            evidence.message = "No pageview data collected yet"
        return evidence
