"""
Engine creation for the tracker store.

SQLite is used for local development and tests; any other SQLAlchemy URL (normally
`postgresql://...` through psycopg2) is passed through unchanged.
"""
from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError


class DatabaseConnectionError(RuntimeError):
    """Raised when a database engine cannot be built from the configured URL."""

    pass


def _enable_sqlite_pragmas(dbapi_connection, _connection_record) -> None:  # noqa: ANN001
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA busy_timeout=5000")
    finally:
        cursor.close()


def is_sqlite_url(database_url: str) -> bool:
    return database_url.strip().casefold().startswith("sqlite")


def create_db_engine(database_url: str, *, echo: bool = False) -> Engine:
    """
    Build a SQLAlchemy engine for `database_url`.

    For file-backed SQLite the parent directory is created on demand and the
    connection is shared across the driver's worker threads.
    """

    url_text = (database_url or "").strip()
    if not url_text:
        raise DatabaseConnectionError("No database URL configured. Set ANITRACK_DB_URL, DATABASE_URL or DB_PATH.")

    try:
        url = make_url(url_text)
    except ArgumentError as exc:
        raise DatabaseConnectionError(f"Invalid database URL: {exc}") from exc

    if url.get_backend_name() == "sqlite":
        database = url.database or ""
        if database and database != ":memory:":
            Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(url, echo=echo, connect_args={"check_same_thread": False, "timeout": 30})
        event.listen(engine, "connect", _enable_sqlite_pragmas)
        return engine

    return create_engine(url, echo=echo, pool_pre_ping=True)
