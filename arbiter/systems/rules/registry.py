"""
Arbiter - Rule Registry

Resolves the active rule set. The remote registry is preferred; the local
cache directory is the fallback. A load is either LIVE or LOCAL, never a merge.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from arbiter.systems.rules.types import (
    RuleParseError,
    RuleSet,
    RuleSource,
    parse_rule,
)

if TYPE_CHECKING:
    from arbiter.clients.remote_sync import RemoteSyncClient
    from arbiter.systems.rules.types import Rule

logger = structlog.get_logger().bind(system="rules")


class RuleRegistry:
    """
    Holds the active RuleSet and replaces it by reference on each load.

    Reload is explicit and idempotent. On total failure (both sources empty)
    the previous set is retained.
    """

    def __init__(
        self,
        local_dir: Path,
        client: RemoteSyncClient | None = None,
    ) -> None:
        self._local_dir = local_dir
        self._client = client
        self._active: RuleSet | None = None

    @property
    def loaded(self) -> bool:
        return self._active is not None

    @property
    def active(self) -> RuleSet:
        return self._active if self._active is not None else RuleSet.empty()

    async def load(self) -> RuleSet:
        """Resolve the current rule set: remote first, then local fallback."""
        candidate = await self._load_remote()
        if not candidate:
            candidate = await asyncio.to_thread(self._load_local)

        if candidate:
            self._active = candidate
            logger.info(
                "rules_loaded",
                source=candidate.source.value,
                count=len(candidate),
            )
            return candidate

        if self._active:
            logger.warning(
                "rules_reload_empty_keeping_previous",
                previous_source=self._active.source.value,
                count=len(self._active),
            )
            return self._active

        self._active = RuleSet.empty()
        logger.warning("rules_unavailable", local_dir=str(self._local_dir))
        return self._active

    async def _load_remote(self) -> RuleSet | None:
        if self._client is None or not self._client.enabled:
            return None
        rules = await self._client.fetch_rules()
        if not rules:
            logger.info("remote_rules_empty_falling_back")
            return None
        return rules

    def _load_local(self) -> RuleSet | None:
        if not self._local_dir.is_dir():
            logger.debug("local_rules_dir_missing", path=str(self._local_dir))
            return None

        rules: dict[str, Rule] = {}
        for path in sorted(self._local_dir.glob("*.json")):
            try:
                raw = json.loads(path.read_text(encoding="utf-8"))
                rule = parse_rule(raw)
            except (OSError, json.JSONDecodeError, RuleParseError) as exc:
                logger.warning("local_rule_skipped", file=path.name, reason=str(exc))
                continue
            rules[rule.id] = rule

        if not rules:
            return None
        return RuleSet(rules, RuleSource.LOCAL)
