"""
Arbiter - External Service Clients

HTTP access to the remote rule registry and telemetry ingestion.
"""

from arbiter.clients.remote_sync import (
    RemoteSyncClient,
    map_commendation_to_event,
    map_violation_to_event,
)

__all__ = [
    "RemoteSyncClient",
    "map_commendation_to_event",
    "map_violation_to_event",
]
