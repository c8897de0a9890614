"""
Arbiter - Bootstrap

Startup sequence for any front-end:
  1. Load configuration (YAML + environment)
  2. Configure logging
  3. Build the shared HTTP client and the remote sync client
  4. Wire registry, detector and the five analyzers into ArbiterService
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

import httpx
import structlog

from arbiter.clients.remote_sync import RemoteSyncClient
from arbiter.config import ArbiterConfig, load_config
from arbiter.service import ArbiterService
from arbiter.systems.detection.detector import ViolationDetector
from arbiter.systems.rules.registry import RuleRegistry
from arbiter.systems.verification.service import VerificationService, default_analyzers
from arbiter.telemetry.logging import setup_logging

if TYPE_CHECKING:
    from arbiter.systems.verification.history import CommitHistory

logger = structlog.get_logger()


def build_service(
    config_path: str | Path | None = None,
    history: CommitHistory | None = None,
    http: httpx.AsyncClient | None = None,
    config: ArbiterConfig | None = None,
) -> ArbiterService:
    """
    Build a fully wired ArbiterService.

    Pass ``config`` to skip file and environment loading (tests). When
    ``http`` is given the caller keeps ownership of it; otherwise the service
    creates one and closes it on shutdown.
    """
    if config is None:
        config_path = config_path or os.environ.get("ARBITER_CONFIG_PATH")
        config = load_config(config_path)
        setup_logging(config.logging, agent_name=config.remote.agent_name)

    owned_http = None
    if http is None:
        owned_http = http = httpx.AsyncClient()

    remote = RemoteSyncClient(config.remote, http=http)
    registry = RuleRegistry(config.paths.incidents, client=remote)
    detector = ViolationDetector(registry)
    verification = VerificationService(
        default_analyzers(config, detector, registry, http, history=history),
        drift_threshold=config.verification.drift_threshold,
        compliant_average=config.verification.compliant_average,
    )

    logger.info(
        "arbiter_built",
        base_dir=str(config.paths.base_dir),
        remote_enabled=remote.enabled,
        history=history is not None,
    )
    return ArbiterService(registry, detector, verification, remote, http=owned_http)
