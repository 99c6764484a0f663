from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class SyncSummary:
    """Machine-readable outcome of one successful reconciliation run."""

    source: str
    fetched_count: int
    upserted_shows: int
    upserted_episodes: int
    skipped_items: int
    conflicts: int
    completed_at: datetime

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["completed_at"] = self.completed_at.isoformat()
        return payload


@dataclass(frozen=True)
class SyncStatus:
    source: str
    last_run_at: str | None = None
    last_summary: dict[str, Any] | None = None
    last_error: str | None = None
    last_attempt_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
