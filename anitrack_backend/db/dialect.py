from __future__ import annotations

from sqlalchemy import Table, or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection


def upsert_insert(conn: Connection, table: Table):  # noqa: ANN201
    """
    Return a dialect-native INSERT that supports `on_conflict_do_update`.

    Only PostgreSQL and SQLite are supported stores.
    """

    name = conn.dialect.name
    if name == "postgresql":
        return postgresql.insert(table)
    if name == "sqlite":
        return sqlite.insert(table)
    raise RuntimeError(f"Unsupported database dialect for upserts: {name}")


def any_column_changed(table: Table, excluded, fields: tuple[str, ...]):  # noqa: ANN001, ANN201
    """WHERE clause for `on_conflict_do_update` that skips rows whose fields already match."""

    return or_(*[table.c[name].is_distinct_from(excluded[name]) for name in fields])
