from __future__ import annotations

from sqlalchemy import insert, select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from anitrack_backend.db.dialect import any_column_changed, upsert_insert
from anitrack_backend.db.schema import LOCAL_SOURCE, shows
from anitrack_backend.models.catalog import ShowRecord, ShowUpsert

# Display fields refreshed by reconciliation; identity columns are never touched.
_MUTABLE_FIELDS = ("title", "cover_image_url", "synopsis", "total_episodes")


class ShowRepositoryError(RuntimeError):
    pass


def _require_external_identity(source: str, external_id: str) -> tuple[str, str]:
    source = str(source or "").strip()
    external_id = str(external_id or "").strip()
    if not source or source == LOCAL_SOURCE:
        raise ShowRepositoryError(f"Synced shows need a non-local source (got {source!r}).")
    if not external_id:
        raise ShowRepositoryError("Synced shows need an external_id.")
    return source, external_id


def upsert_synced_show(conn: Connection, *, source: str, external_id: str, show: ShowUpsert) -> bool:
    """
    Insert or refresh a synced show keyed on (source, external_id).

    Returns True when a row was inserted or a display field actually changed.
    """

    source, external_id = _require_external_identity(source, external_id)
    values = {
        "title": show.title,
        "cover_image_url": show.cover_image_url,
        "synopsis": show.synopsis,
        "total_episodes": show.total_episodes,
        "source": source,
        "external_id": external_id,
    }
    stmt = upsert_insert(conn, shows).values(**values)
    excluded = stmt.excluded
    stmt = stmt.on_conflict_do_update(
        index_elements=[shows.c.source, shows.c.external_id],
        set_={name: excluded[name] for name in _MUTABLE_FIELDS},
        where=any_column_changed(shows, excluded, _MUTABLE_FIELDS),
    )
    try:
        result = conn.execute(stmt)
    except SQLAlchemyError as exc:
        raise ShowRepositoryError(f"Database error upserting show {source}:{external_id}: {exc}") from exc
    return (result.rowcount or 0) > 0


def find_show_id_by_external_id(conn: Connection, *, source: str, external_id: str) -> int | None:
    stmt = select(shows.c.id).where(shows.c.source == source, shows.c.external_id == str(external_id))
    value = conn.execute(stmt).scalar_one_or_none()
    return int(value) if value is not None else None


def insert_local_show(conn: Connection, show: ShowUpsert) -> int:
    title = str(show.title or "").strip()
    if not title:
        raise ShowRepositoryError("Local shows need a title.")
    stmt = insert(shows).values(
        title=title,
        cover_image_url=show.cover_image_url,
        synopsis=show.synopsis,
        total_episodes=show.total_episodes,
        source=LOCAL_SOURCE,
        external_id=None,
    )
    try:
        result = conn.execute(stmt)
    except SQLAlchemyError as exc:
        raise ShowRepositoryError(f"Database error inserting local show {title!r}: {exc}") from exc
    return int(result.inserted_primary_key[0])


def get_show(conn: Connection, show_id: int) -> ShowRecord | None:
    row = conn.execute(select(shows).where(shows.c.id == int(show_id))).first()
    return ShowRecord.from_row(row._mapping) if row is not None else None


def list_shows(conn: Connection, *, source: str | None = None) -> list[ShowRecord]:
    stmt = select(shows).order_by(shows.c.title.asc(), shows.c.id.asc())
    if source:
        stmt = stmt.where(shows.c.source == source)
    return [ShowRecord.from_row(row._mapping) for row in conn.execute(stmt)]
