"""
Arbiter - Remote Sync Client

Client-side contract for the remote rule registry:
  - GET  {endpoint}/api/patterns/incidents   rule definitions (single attempt)
  - POST {endpoint}/api/ingest/{agent}       telemetry events (bounded retries)

Both calls use bearer authentication and carry explicit timeouts. Failures
degrade: fetches return an empty set, sends are dropped after the last retry
and logged. Nothing here raises to the caller.

Constructed once per process and injected; there is no module-level instance.
"""

from __future__ import annotations

import asyncio
import re
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from arbiter.primitives.common import Severity
from arbiter.primitives.telemetry import TelemetryEvent
from arbiter.systems.rules.types import RuleSet, RuleSource, parse_rule_records

if TYPE_CHECKING:
    from arbiter.config import RemoteSyncConfig
    from arbiter.systems.detection.types import AnalysisContext, Finding

logger = structlog.get_logger("arbiter.clients.remote_sync")

_SEVERITY_OUTCOME = {
    Severity.CRITICAL: "SEV1 incident",
    Severity.HIGH: "SEV2 incident",
}


class RemoteSyncClient:
    """
    Wraps an httpx.AsyncClient for rule fetch and telemetry push.

    Telemetry sends can run detached: ``send_detached`` schedules the send as
    a background task the caller never awaits. Outstanding tasks are held
    here until they finish and can be awaited with ``drain``.
    """

    def __init__(
        self,
        config: RemoteSyncConfig,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient()
        self._pending: set[asyncio.Task[bool]] = set()

        if self.enabled:
            logger.info("remote_sync_enabled", endpoint=self._config.endpoint)
        elif not self._config.endpoint:
            logger.info("remote_sync_disabled", reason="no endpoint configured")
        else:
            logger.info("remote_sync_disabled", reason="no credentials provided")

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    @property
    def pending_sends(self) -> int:
        return len(self._pending)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._config.token}",
            "Content-Type": "application/json",
        }

    # ─── Rule Fetch ─────────────────────────────────────────────────

    async def fetch_rules(self) -> RuleSet:
        """One authenticated GET. Any failure yields an empty set."""
        if not self.enabled:
            logger.warning("remote_fetch_skipped", reason="remote sync not configured")
            return RuleSet.empty()

        url = f"{self._config.endpoint}/api/patterns/incidents"
        start = time.monotonic()
        try:
            response = await self._http.get(
                url,
                headers=self._headers(),
                timeout=self._config.fetch_timeout_s,
            )
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            logger.error("remote_fetch_failed", error=str(exc) or type(exc).__name__)
            return RuleSet.empty()

        if not response.is_success:
            logger.error("remote_fetch_failed", status=response.status_code)
            return RuleSet.empty()

        try:
            data = response.json()
        except ValueError as exc:
            logger.error("remote_fetch_bad_body", error=str(exc))
            return RuleSet.empty()

        patterns = data.get("patterns") if isinstance(data, dict) else None
        if not isinstance(patterns, dict):
            logger.warning("remote_fetch_no_patterns")
            return RuleSet.empty()

        rules = parse_rule_records(patterns)
        latency_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "remote_rules_fetched",
            count=len(rules),
            skipped=len(patterns) - len(rules),
            latency_ms=latency_ms,
        )
        return RuleSet(rules, RuleSource.LIVE) if rules else RuleSet.empty()

    # ─── Telemetry Send ─────────────────────────────────────────────

    async def send_events(self, events: Sequence[TelemetryEvent]) -> bool:
        """
        POST events with exponential backoff between attempts.

        Returns True on delivery. After the final failed attempt the events
        are dropped and the failure is logged; no exception escapes.
        """
        if not self.enabled or not events:
            return False

        url = f"{self._config.endpoint}/api/ingest/{self._config.agent_name}"
        payload = {"events": [event.to_wire() for event in events]}
        attempts = max(1, self._config.retry_attempts)
        error = ""

        for attempt in range(1, attempts + 1):
            start = time.monotonic()
            try:
                response = await self._http.post(
                    url,
                    json=payload,
                    headers=self._headers(),
                    timeout=self._config.send_timeout_s,
                )
                if response.is_success:
                    logger.info(
                        "telemetry_events_sent",
                        count=len(events),
                        attempt=attempt,
                        latency_ms=int((time.monotonic() - start) * 1000),
                    )
                    return True
                error = f"HTTP {response.status_code}"
            except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
                error = str(exc) or type(exc).__name__

            if attempt < attempts:
                delay = self._config.retry_base_delay_s * (2 ** (attempt - 1))
                logger.warning(
                    "telemetry_send_retrying",
                    attempt=attempt,
                    attempts=attempts,
                    delay_s=delay,
                    error=error,
                )
                await asyncio.sleep(delay)

        logger.error(
            "telemetry_events_dropped",
            attempts=attempts,
            count=len(events),
            error=error,
        )
        return False

    def send_detached(self, events: Sequence[TelemetryEvent]) -> asyncio.Task[bool] | None:
        """Schedule ``send_events`` in the background. Must be called inside a running loop."""
        if not self.enabled or not events:
            return None
        task = asyncio.create_task(
            self.send_events(list(events)),
            name=f"arbiter_telemetry_{len(events)}",
        )
        self._pending.add(task)
        task.add_done_callback(self._on_send_done)
        return task

    def _on_send_done(self, task: asyncio.Task[bool]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.debug("telemetry_task_cancelled", task=task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "telemetry_task_failed",
                task=task.get_name(),
                error=str(exc),
                exc_info=exc,
            )

    def send_violations(
        self,
        violations: Sequence[Finding],
        context: AnalysisContext | None = None,
    ) -> asyncio.Task[bool] | None:
        events = [map_violation_to_event(v, context) for v in violations]
        return self.send_detached(events)

    def send_commendations(
        self,
        commendations: Sequence[Finding],
        context: AnalysisContext | None = None,
    ) -> asyncio.Task[bool] | None:
        events = [map_commendation_to_event(c, context) for c in commendations]
        return self.send_detached(events)

    async def drain(self) -> None:
        """Wait for every outstanding detached send to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        if self._owns_http:
            await self._http.aclose()

    def get_status(self) -> dict[str, Any]:
        endpoint = self._config.endpoint
        return {
            "enabled": self.enabled,
            "endpoint": re.sub(r"/api.*$", "", endpoint) if endpoint else None,
        }


# ─── Event Mapping ──────────────────────────────────────────────


def _context_fields(context: AnalysisContext | None) -> dict[str, Any]:
    if context is None:
        return {}
    return {"files": list(context.files), "timestamp": context.timestamp.isoformat()}


def map_violation_to_event(
    violation: Finding,
    context: AnalysisContext | None = None,
) -> TelemetryEvent:
    cost = violation.financial_risk.midpoint if violation.financial_risk else 0
    severity = violation.severity or Severity.MEDIUM
    return TelemetryEvent(
        event_type="arbiter_violation",
        pattern_id=violation.rule_id or violation.type,
        pattern_name=violation.message,
        severity=severity.value,
        law_violated=violation.law or "Unknown Law",
        cost_of_violation=cost,
        scenario=violation.details,
        outcome=_SEVERITY_OUTCOME.get(severity, "SEV3 incident"),
        roi_measured=-cost,
        validation_source=f"rule:{violation.rule_id}" if violation.rule_id else "pattern-detection",
        suggested_fix=violation.suggested_fix,
        **_context_fields(context or violation.context),
    )


def map_commendation_to_event(
    commendation: Finding,
    context: AnalysisContext | None = None,
) -> TelemetryEvent:
    return TelemetryEvent(
        event_type="arbiter_commendation",
        pattern_id=commendation.type,
        pattern_name=commendation.message,
        severity="NONE",
        law_violated="NONE",
        scenario=commendation.message,
        outcome="Positive behavior - encouraged",
        **_context_fields(context or commendation.context),
    )
