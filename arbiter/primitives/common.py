"""
Arbiter - Common Primitives

Shared enums, base classes, and score arithmetic used across all systems.
"""

from __future__ import annotations

import enum
import math
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict
from ulid import ULID

# No score, individual or aggregate, may exceed the cap.
EPISTEMIC_CAP = 95
EPISTEMIC_BUFFER = 100 - EPISTEMIC_CAP


def new_id() -> str:
    """Generate a new ULID string. Time-sortable, globally unique."""
    return str(ULID())


def utc_now() -> datetime:
    """Current UTC time, timezone-aware."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a naive datetime; aware values pass through unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives (92.5 -> 93)."""
    return int(math.floor(value + 0.5))


def clamp_score(value: float, cap: int = EPISTEMIC_CAP) -> int:
    """Round and bound a score to [0, cap]."""
    return max(0, min(cap, round_half_up(value)))


# ─── Enums ────────────────────────────────────────────────────────


class Severity(str, enum.Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    INFO = "INFO"


# ─── Base Models ──────────────────────────────────────────────────


class ArbiterBaseModel(BaseModel):
    """Base model for all Arbiter primitives."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class FrozenModel(ArbiterBaseModel):
    """Immutable value record. Created once per analysis pass, never patched."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True, frozen=True)
