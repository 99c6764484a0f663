from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from anitrack_backend.db.dialect import upsert_insert
from anitrack_backend.db.schema import sync_state
from anitrack_backend.db.types import utc_now
from anitrack_backend.models.sync import SyncStatus, SyncSummary

LAST_RUN_AT = "last_run_at"
LAST_RESULT = "last_result"
LAST_ERROR = "last_error"
LAST_ATTEMPT_AT = "last_attempt_at"

_STATUS_KEYS = (LAST_RUN_AT, LAST_RESULT, LAST_ERROR, LAST_ATTEMPT_AT)


class SyncStateRepositoryError(RuntimeError):
    pass


def _normalize_source(value: str) -> str:
    source = str(value or "").strip()
    if not source:
        raise SyncStateRepositoryError("sync_state update requires a source.")
    return source


def _truncate_error(value: object, *, max_length: int = 1000) -> str | None:
    if value is None:
        return None
    text = str(value)
    if not text:
        return None
    return text[: max(1, int(max_length))]


def _set_state(conn: Connection, *, source: str, key: str, value: str | None, now: datetime) -> None:
    stmt = upsert_insert(conn, sync_state).values(source=source, state_key=key, state_value=value, updated_at=now)
    excluded = stmt.excluded
    stmt = stmt.on_conflict_do_update(
        index_elements=[sync_state.c.source, sync_state.c.state_key],
        set_={"state_value": excluded.state_value, "updated_at": excluded.updated_at},
    )
    try:
        conn.execute(stmt)
    except SQLAlchemyError as exc:
        raise SyncStateRepositoryError(f"Database error upserting sync_state {source}/{key}: {exc}") from exc


def mark_sync_attempt(conn: Connection, *, source: str, now: datetime | None = None) -> None:
    now = now or utc_now()
    _set_state(conn, source=_normalize_source(source), key=LAST_ATTEMPT_AT, value=now.isoformat(), now=now)


def write_sync_success(conn: Connection, summary: SyncSummary) -> None:
    source = _normalize_source(summary.source)
    now = summary.completed_at
    _set_state(conn, source=source, key=LAST_RUN_AT, value=now.isoformat(), now=now)
    _set_state(conn, source=source, key=LAST_RESULT, value=json.dumps(summary.to_dict(), sort_keys=True), now=now)
    _set_state(conn, source=source, key=LAST_ERROR, value="", now=now)


def write_sync_failure(conn: Connection, *, source: str, error: object, now: datetime | None = None) -> None:
    """
    Record a failed run.

    Only the error is written; the last successful run time and summary are left
    untouched so status consumers keep the last-known-good values.
    """

    now = now or utc_now()
    _set_state(
        conn,
        source=_normalize_source(source),
        key=LAST_ERROR,
        value=_truncate_error(error) or "Unknown sync error",
        now=now,
    )


def _parse_summary(value: str | None) -> dict[str, Any] | None:
    if not value:
        return None
    try:
        parsed = json.loads(value)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def fetch_sync_status(conn: Connection, *, sources: list[str] | None = None) -> dict[str, SyncStatus]:
    stmt = select(sync_state.c.source, sync_state.c.state_key, sync_state.c.state_value).where(
        sync_state.c.state_key.in_(_STATUS_KEYS)
    )
    if sources:
        stmt = stmt.where(sync_state.c.source.in_(list(sources)))

    by_source: dict[str, dict[str, str | None]] = {source: {} for source in sources or []}
    for row in conn.execute(stmt):
        by_source.setdefault(row.source, {})[row.state_key] = row.state_value

    results: dict[str, SyncStatus] = {}
    for source, values in by_source.items():
        results[source] = SyncStatus(
            source=source,
            last_run_at=values.get(LAST_RUN_AT) or None,
            last_summary=_parse_summary(values.get(LAST_RESULT)),
            last_error=values.get(LAST_ERROR) or None,
            last_attempt_at=values.get(LAST_ATTEMPT_AT) or None,
        )
    return results
