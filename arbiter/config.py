"""
Arbiter - Configuration System

All configuration is Pydantic-validated and loaded from:
1. an optional YAML file (defaults)
2. Environment variables (overrides)

Every tunable threshold of the detection and verification engines lives here.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def find_repo_root(start: Path | None = None) -> Path:
    """Nearest ancestor holding a ``.git`` entry, else the starting directory."""
    current = (start or Path.cwd()).resolve()
    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return candidate
    return current


# ─── Sub-configs ──────────────────────────────────────────────────


class RemoteSyncConfig(BaseModel):
    endpoint: str = ""
    api_key: str = ""
    oauth_token: str = ""  # Alternative to api_key
    agent_name: str = "arbiter"
    fetch_timeout_s: float = 10.0
    send_timeout_s: float = 5.0
    retry_attempts: int = 3
    retry_base_delay_s: float = 1.0

    @model_validator(mode="after")
    def _strip_credentials(self) -> RemoteSyncConfig:
        # Secret managers can inject trailing \r\n into env vars
        object.__setattr__(self, "endpoint", self.endpoint.strip().rstrip("/"))
        object.__setattr__(self, "api_key", self.api_key.strip())
        object.__setattr__(self, "oauth_token", self.oauth_token.strip())
        return self

    @property
    def token(self) -> str:
        return self.api_key or self.oauth_token

    @property
    def enabled(self) -> bool:
        return bool(self.endpoint and self.token)


class PathsConfig(BaseModel):
    base_dir: Path = Field(default_factory=find_repo_root)
    incidents_dir: Path = Path("compliance/learning/incidents")
    evidence_dir: Path = Path("compliance/evidence")
    corpus_path: Path = Path("crown-jewels/training-dataset-v1.jsonl")

    def resolve(self, path: Path) -> Path:
        return path if path.is_absolute() else self.base_dir / path

    @property
    def incidents(self) -> Path:
        return self.resolve(self.incidents_dir)

    @property
    def evidence(self) -> Path:
        return self.resolve(self.evidence_dir)

    @property
    def corpus(self) -> Path:
        return self.resolve(self.corpus_path)


class DetectionConfig(BaseModel):
    commit_count: int = 10  # Recent commits inspected by commit compliance


class VerificationConfig(BaseModel):
    production_base_url: str = "https://2x4.dugganusa.com"
    endpoints: list[str] = Field(
        default_factory=lambda: [
            "/api/incidents",
            "/api/patents",
            "/api/cloudflare-bypass-evidence",
            "/health",
        ]
    )
    endpoint_timeout_s: float = 5.0

    # Tuning constants. Product-specific; kept overridable.
    dimension_threshold: int = 95
    corpus_target_records: int = 50
    corpus_aligned_score: int = 90
    drift_threshold: int = 10
    compliant_average: int = 85
    decay_fresh_days: int = 7
    decay_recent_days: int = 30
    decay_recent_max_percent: float = 3.0
    decay_max_percent: float = 10.0

    scan_subdir: str = "virustotal"
    analytics_subdir: str = "marketing"
    analytics_prefix: str = "cloudflare-analytics-"
    financial_subdir: str = "financial"
    financial_prefix: str = "avoided-cost-"


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "console"  # "console" | "json"


class ArbiterConfig(BaseSettings):
    """
    Root configuration. Loads from YAML, overridable by env vars.
    """

    model_config = SettingsConfigDict(
        env_prefix="ARBITER_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    remote: RemoteSyncConfig = Field(default_factory=RemoteSyncConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    verification: VerificationConfig = Field(default_factory=VerificationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(config_path: str | Path | None = None) -> ArbiterConfig:
    """
    Load configuration from YAML file, then apply environment variable overrides.
    """
    raw: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                raw = yaml.safe_load(f) or {}

    # Inject secrets from environment
    if endpoint := os.environ.get("ARBITER_REMOTE_ENDPOINT"):
        raw.setdefault("remote", {})["endpoint"] = endpoint
    if api_key := os.environ.get("ARBITER_REMOTE_API_KEY"):
        raw.setdefault("remote", {})["api_key"] = api_key
    if oauth_token := os.environ.get("ARBITER_REMOTE_OAUTH_TOKEN"):
        raw.setdefault("remote", {})["oauth_token"] = oauth_token
    if base_dir := os.environ.get("ARBITER_BASE_DIR"):
        raw.setdefault("paths", {})["base_dir"] = base_dir

    return ArbiterConfig(**raw)
