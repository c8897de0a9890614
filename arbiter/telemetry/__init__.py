"""Arbiter - observability setup."""

from arbiter.telemetry.logging import setup_logging

__all__ = ["setup_logging"]
