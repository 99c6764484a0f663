from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import insert, select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from anitrack_backend.db.dialect import any_column_changed, upsert_insert
from anitrack_backend.db.schema import LOCAL_SOURCE, episodes, shows
from anitrack_backend.db.types import utc_now
from anitrack_backend.models.catalog import EpisodeRecord, UpcomingEpisode

# On conflict the row is re-pointed at the resolved show (upstream re-keying) and its
# schedule refreshed; (source, external_id) identity never changes.
_MUTABLE_FIELDS = ("show_id", "episode_number", "title", "release_at")


class EpisodeRepositoryError(RuntimeError):
    pass


def _require_aware(value: datetime, *, context: str) -> datetime:
    if not isinstance(value, datetime) or value.tzinfo is None:
        raise EpisodeRepositoryError(f"{context} requires a timezone-aware release time, got {value!r}.")
    return value


def upsert_synced_episode(
    conn: Connection,
    *,
    source: str,
    external_id: str,
    show_id: int,
    episode_number: int,
    title: str | None,
    release_at: datetime,
) -> bool:
    """
    Insert or refresh a synced episode keyed on (source, external_id).

    Returns True when a row was inserted or any schedule field actually changed.
    """

    source = str(source or "").strip()
    external_id = str(external_id or "").strip()
    if not source or source == LOCAL_SOURCE or not external_id:
        raise EpisodeRepositoryError(f"Synced episodes need a non-local source and external_id ({source!r}, {external_id!r}).")
    _require_aware(release_at, context="upsert_synced_episode")

    stmt = upsert_insert(conn, episodes).values(
        show_id=int(show_id),
        episode_number=int(episode_number),
        title=title,
        release_at=release_at,
        source=source,
        external_id=external_id,
    )
    excluded = stmt.excluded
    stmt = stmt.on_conflict_do_update(
        index_elements=[episodes.c.source, episodes.c.external_id],
        set_={name: excluded[name] for name in _MUTABLE_FIELDS},
        where=any_column_changed(episodes, excluded, _MUTABLE_FIELDS),
    )
    try:
        result = conn.execute(stmt)
    except SQLAlchemyError as exc:
        raise EpisodeRepositoryError(f"Database error upserting episode {source}:{external_id}: {exc}") from exc
    return (result.rowcount or 0) > 0


def find_episode_by_slot(conn: Connection, *, show_id: int, episode_number: int) -> EpisodeRecord | None:
    stmt = select(episodes).where(
        episodes.c.show_id == int(show_id),
        episodes.c.episode_number == int(episode_number),
    )
    row = conn.execute(stmt).first()
    return EpisodeRecord.from_row(row._mapping) if row is not None else None


def find_episode_by_external_id(conn: Connection, *, source: str, external_id: str) -> EpisodeRecord | None:
    stmt = select(episodes).where(episodes.c.source == source, episodes.c.external_id == str(external_id))
    row = conn.execute(stmt).first()
    return EpisodeRecord.from_row(row._mapping) if row is not None else None


def insert_local_episode(
    conn: Connection,
    *,
    show_id: int,
    episode_number: int,
    title: str | None,
    release_at: datetime,
) -> int:
    _require_aware(release_at, context="insert_local_episode")
    stmt = insert(episodes).values(
        show_id=int(show_id),
        episode_number=int(episode_number),
        title=title,
        release_at=release_at,
        source=LOCAL_SOURCE,
        external_id=None,
    )
    try:
        result = conn.execute(stmt)
    except SQLAlchemyError as exc:
        raise EpisodeRepositoryError(
            f"Database error inserting local episode show_id={show_id} episode={episode_number}: {exc}"
        ) from exc
    return int(result.inserted_primary_key[0])


def _upcoming_select():  # noqa: ANN202
    return (
        select(
            episodes.c.id,
            episodes.c.show_id,
            shows.c.title.label("show_title"),
            episodes.c.episode_number,
            episodes.c.title,
            episodes.c.release_at,
        )
        .select_from(episodes.join(shows, shows.c.id == episodes.c.show_id))
        .order_by(episodes.c.release_at.asc(), episodes.c.id.asc())
    )


def list_episodes_releasing_between(conn: Connection, start: datetime, end: datetime) -> list[UpcomingEpisode]:
    """Episodes whose release time falls in the half-open range [start, end)."""

    _require_aware(start, context="list_episodes_releasing_between")
    _require_aware(end, context="list_episodes_releasing_between")
    stmt = _upcoming_select().where(episodes.c.release_at >= start, episodes.c.release_at < end)
    return [UpcomingEpisode(**dict(row._mapping)) for row in conn.execute(stmt)]


def list_upcoming_episodes(
    conn: Connection,
    *,
    days: int = 14,
    show_id: int | None = None,
    now: datetime | None = None,
) -> list[UpcomingEpisode]:
    days = max(1, min(60, int(days or 14)))
    start = now or utc_now()
    end = start + timedelta(days=days)
    stmt = _upcoming_select().where(episodes.c.release_at >= start, episodes.c.release_at < end)
    if show_id is not None:
        stmt = stmt.where(episodes.c.show_id == int(show_id))
    return [UpcomingEpisode(**dict(row._mapping)) for row in conn.execute(stmt)]
