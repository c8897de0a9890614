"""
Arbiter - Commit History Collaborator

Version-control access is supplied by the caller. Commit compliance and
temporal decay read through this protocol only; neither shells out.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from pydantic import field_validator

from arbiter.primitives.common import FrozenModel, as_utc


class CommitDiff(FrozenModel):
    hash: str
    subject: str = ""
    body: str = ""
    diff: str = ""
    files: tuple[str, ...] = ()
    committed_at: datetime | None = None

    @field_validator("committed_at")
    @classmethod
    def _committed_at_utc(cls, v: datetime | None) -> datetime | None:
        """Naive timestamps are read as UTC."""
        return as_utc(v) if v is not None else None

    @property
    def short_hash(self) -> str:
        return self.hash[:7]


@runtime_checkable
class CommitHistory(Protocol):
    async def recent_commits(self, count: int) -> list[CommitDiff]:
        """Most recent first, at most ``count`` entries."""
        ...

    async def last_change_at(self) -> datetime | None:
        ...


class StaticCommitHistory:
    """In-memory history. Used where commits are already known (webhooks, tests)."""

    def __init__(self, commits: list[CommitDiff] | None = None) -> None:
        self._commits = list(commits or [])

    async def recent_commits(self, count: int) -> list[CommitDiff]:
        return self._commits[:count]

    async def last_change_at(self) -> datetime | None:
        stamps = [c.committed_at for c in self._commits if c.committed_at is not None]
        return max(stamps) if stamps else None
