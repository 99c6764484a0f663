"""
Table definitions for the tracker store.

Provenance is carried on `shows`/`episodes` as `source` (`local` or an upstream name
such as `anilist`) plus `external_id`. Local rows never carry an external id; the
unique `(source, external_id)` constraints ignore NULL ids so local rows never collide.
"""
from __future__ import annotations

import logging

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
    select,
    true,
)
from sqlalchemy.engine import Engine

from anitrack_backend.db.types import UTCDateTime, utc_now

logger = logging.getLogger(__name__)

LOCAL_SOURCE = "local"

_PROVENANCE_CHECK = (
    "(source = 'local' AND external_id IS NULL) OR (source <> 'local' AND external_id IS NOT NULL)"
)

metadata = MetaData()

shows = Table(
    "shows",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", Text, nullable=False),
    Column("cover_image_url", Text),
    Column("synopsis", Text),
    Column("total_episodes", Integer),
    Column("source", String(32), nullable=False, server_default=LOCAL_SOURCE),
    Column("external_id", String(64)),
    Column("created_at", UTCDateTime, nullable=False, default=utc_now),
    UniqueConstraint("source", "external_id", name="uq_shows_source_external"),
    CheckConstraint(_PROVENANCE_CHECK, name="ck_shows_provenance"),
)

episodes = Table(
    "episodes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("show_id", Integer, ForeignKey("shows.id", ondelete="CASCADE"), nullable=False),
    Column("episode_number", Integer, nullable=False),
    Column("title", Text),
    Column("release_at", UTCDateTime, nullable=False),
    Column("source", String(32), nullable=False, server_default=LOCAL_SOURCE),
    Column("external_id", String(64)),
    Column("created_at", UTCDateTime, nullable=False, default=utc_now),
    UniqueConstraint("show_id", "episode_number", name="uq_episodes_show_number"),
    UniqueConstraint("source", "external_id", name="uq_episodes_source_external"),
    CheckConstraint(_PROVENANCE_CHECK, name="ck_episodes_provenance"),
    Index("idx_episodes_release_at", "release_at"),
)

reminders = Table(
    "reminders",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    # Opaque owner reference; resolved to an account email by the auth layer.
    Column("owner_ref", String(128), nullable=False),
    Column("show_id", Integer, ForeignKey("shows.id", ondelete="CASCADE")),
    Column("email", Text),
    Column("discord_webhook_url", Text),
    Column("minutes_before", Integer, nullable=False, server_default="60"),
    Column("is_active", Boolean, nullable=False, server_default=true()),
    Column("created_at", UTCDateTime, nullable=False, default=utc_now),
    CheckConstraint("minutes_before BETWEEN 5 AND 1440", name="ck_reminders_lead"),
    Index("idx_reminders_active", "is_active"),
    Index("idx_reminders_owner", "owner_ref"),
)

notification_log = Table(
    "notification_log",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("reminder_id", Integer, ForeignKey("reminders.id", ondelete="CASCADE"), nullable=False),
    Column("episode_id", Integer, ForeignKey("episodes.id", ondelete="CASCADE"), nullable=False),
    Column("channel", String(16), nullable=False),
    Column("sent_at", UTCDateTime, nullable=False, default=utc_now),
    UniqueConstraint("reminder_id", "episode_id", "channel", name="uq_notification_log_triple"),
)

sync_state = Table(
    "sync_state",
    metadata,
    Column("source", String(32), primary_key=True),
    Column("state_key", String(64), primary_key=True),
    Column("state_value", Text),
    Column("updated_at", UTCDateTime, nullable=False, default=utc_now),
)


def init_db(engine: Engine, *, seed: bool = False) -> bool:
    """
    Create all tables (idempotent) and optionally seed demo local shows.

    Returns True when seed rows were inserted.
    """

    metadata.create_all(engine)
    if not seed:
        return False

    from anitrack_backend.db.seed import seed_local_catalog

    with engine.begin() as conn:
        show_count = conn.execute(select(func.count()).select_from(shows)).scalar_one()
        if show_count:
            return False
        inserted = seed_local_catalog(conn)
    logger.info(f"Seeded {inserted} local shows into an empty catalog")
    return True
