"""Arbiter - shared primitives."""

from arbiter.primitives.common import (
    EPISTEMIC_BUFFER,
    EPISTEMIC_CAP,
    ArbiterBaseModel,
    FrozenModel,
    Severity,
    as_utc,
    clamp_score,
    new_id,
    round_half_up,
    utc_now,
)
from arbiter.primitives.telemetry import TelemetryEvent

__all__ = [
    "EPISTEMIC_BUFFER",
    "EPISTEMIC_CAP",
    "ArbiterBaseModel",
    "FrozenModel",
    "Severity",
    "TelemetryEvent",
    "as_utc",
    "clamp_score",
    "new_id",
    "round_half_up",
    "utc_now",
]
