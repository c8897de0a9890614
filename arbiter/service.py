"""
Arbiter - Service Facade

The single object the excluded front-ends (CLI, webhook server, hooks) talk
to. It owns nothing itself; every collaborator is injected by
``arbiter.bootstrap.build_service``.

  review(text, context)  detect, then report findings as detached telemetry
  verify()               five-dimension verification
  health()               verification folded into the outward health document
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from arbiter.systems.detection.types import AnalysisContext, AnalysisResult

if TYPE_CHECKING:
    import httpx

    from arbiter.clients.remote_sync import RemoteSyncClient
    from arbiter.systems.detection.detector import ViolationDetector
    from arbiter.systems.rules.registry import RuleRegistry
    from arbiter.systems.rules.types import RuleSet
    from arbiter.systems.verification.service import VerificationService
    from arbiter.systems.verification.types import CorrelationResult

logger = structlog.get_logger()


class ArbiterService:
    def __init__(
        self,
        registry: RuleRegistry,
        detector: ViolationDetector,
        verification: VerificationService,
        remote: RemoteSyncClient,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._registry = registry
        self._detector = detector
        self._verification = verification
        self._remote = remote
        self._http = http
        self._total_reviews = 0

    @property
    def registry(self) -> RuleRegistry:
        return self._registry

    @property
    def remote(self) -> RemoteSyncClient:
        return self._remote

    async def review(
        self,
        text: str,
        context: AnalysisContext | None = None,
    ) -> AnalysisResult:
        """
        Analyze one text and report its findings.

        Telemetry is scheduled in the background; the result is returned
        without waiting for delivery, and a failed delivery never changes it.
        """
        context = context or AnalysisContext(source="review")
        result = await self._detector.analyze(text, context)
        self._total_reviews += 1

        if result.violations:
            self._remote.send_violations(result.violations, context)
        if result.commendations:
            self._remote.send_commendations(result.commendations, context)

        logger.info(
            "review_complete",
            source=context.source,
            violations=len(result.violations),
            warnings=len(result.warnings),
            commendations=len(result.commendations),
            critical=result.has_critical,
        )
        return result

    async def verify(self) -> CorrelationResult:
        return await self._verification.verify()

    async def reload_rules(self) -> RuleSet:
        rules = await self._registry.load()
        self._detector.mark_loaded()
        return rules

    async def health(self) -> dict[str, Any]:
        correlation = await self.verify()
        payload = correlation.to_health_payload(self._remote.get_status())
        rules = self._registry.active
        payload["rules"] = {
            "source": rules.source.value,
            "count": len(rules),
            "loadedAt": rules.loaded_at.isoformat(),
        }
        payload["totalReviews"] = self._total_reviews
        return payload

    async def shutdown(self) -> None:
        """Wait for outstanding telemetry, then release HTTP connections."""
        await self._remote.aclose()
        if self._http is not None:
            await self._http.aclose()
        logger.info("arbiter_shutdown")
