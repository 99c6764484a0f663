from __future__ import annotations

import re
from urllib.parse import urlparse

from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from anitrack_backend.config import MAX_LEAD_MINUTES, MIN_LEAD_MINUTES, ConfigurationError
from anitrack_backend.db.schema import reminders, shows
from anitrack_backend.models.reminders import ReminderCreate, ReminderRecord

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ReminderRepositoryError(RuntimeError):
    pass


def _clean(value: str | None) -> str | None:
    text = str(value or "").strip()
    return text or None


def validate_reminder_create(conn: Connection, reminder: ReminderCreate) -> ReminderCreate:
    """
    Reject reminders the dispatch engine could never serve.

    Returns a cleaned copy (trimmed targets). Raises `ConfigurationError`.
    """

    owner_ref = _clean(reminder.owner_ref)
    if not owner_ref:
        raise ConfigurationError("Reminder needs an owner reference.")

    email = _clean(reminder.email)
    webhook = _clean(reminder.discord_webhook_url)
    if not email and not webhook:
        raise ConfigurationError("Provide at least one channel: email or Discord webhook URL.")
    if email and not _EMAIL_RE.match(email):
        raise ConfigurationError(f"Invalid reminder email address: {email!r}")
    if webhook:
        parsed = urlparse(webhook)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError("Discord webhook URL must be an http(s) URL.")

    try:
        minutes_before = int(reminder.minutes_before)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid lead time: {reminder.minutes_before!r}") from exc
    if not MIN_LEAD_MINUTES <= minutes_before <= MAX_LEAD_MINUTES:
        raise ConfigurationError(
            f"Lead time must be between {MIN_LEAD_MINUTES} and {MAX_LEAD_MINUTES} minutes (got {minutes_before})."
        )

    show_id = reminder.show_id
    if show_id is not None:
        exists = conn.execute(select(shows.c.id).where(shows.c.id == int(show_id))).scalar_one_or_none()
        if exists is None:
            raise ConfigurationError(f"Reminder filter references unknown show_id={show_id}.")
        show_id = int(show_id)

    return ReminderCreate(
        owner_ref=owner_ref,
        show_id=show_id,
        email=email,
        discord_webhook_url=webhook,
        minutes_before=minutes_before,
    )


def create_reminder(conn: Connection, reminder: ReminderCreate) -> ReminderRecord:
    cleaned = validate_reminder_create(conn, reminder)
    stmt = insert(reminders).values(
        owner_ref=cleaned.owner_ref,
        show_id=cleaned.show_id,
        email=cleaned.email,
        discord_webhook_url=cleaned.discord_webhook_url,
        minutes_before=cleaned.minutes_before,
        is_active=True,
    )
    try:
        result = conn.execute(stmt)
    except SQLAlchemyError as exc:
        raise ReminderRepositoryError(f"Database error creating reminder: {exc}") from exc
    reminder_id = int(result.inserted_primary_key[0])
    created = get_reminder(conn, reminder_id)
    if created is None:
        raise ReminderRepositoryError(f"Reminder {reminder_id} vanished after insert.")
    return created


def get_reminder(conn: Connection, reminder_id: int) -> ReminderRecord | None:
    row = conn.execute(select(reminders).where(reminders.c.id == int(reminder_id))).first()
    return ReminderRecord.from_row(row._mapping) if row is not None else None


def list_active_reminders(conn: Connection) -> list[ReminderRecord]:
    stmt = select(reminders).where(reminders.c.is_active.is_(True)).order_by(reminders.c.id.asc())
    return [ReminderRecord.from_row(row._mapping) for row in conn.execute(stmt)]


def list_reminders_for_owner(conn: Connection, owner_ref: str) -> list[ReminderRecord]:
    stmt = (
        select(reminders)
        .where(reminders.c.owner_ref == str(owner_ref))
        .order_by(reminders.c.created_at.desc(), reminders.c.id.desc())
    )
    return [ReminderRecord.from_row(row._mapping) for row in conn.execute(stmt)]


def delete_reminder(conn: Connection, *, owner_ref: str, reminder_id: int) -> bool:
    """Delete one of the owner's reminders. Returns False when nothing matched."""

    stmt = delete(reminders).where(reminders.c.id == int(reminder_id), reminders.c.owner_ref == str(owner_ref))
    try:
        result = conn.execute(stmt)
    except SQLAlchemyError as exc:
        raise ReminderRepositoryError(f"Database error deleting reminder {reminder_id}: {exc}") from exc
    return (result.rowcount or 0) > 0


def set_reminder_active(conn: Connection, *, owner_ref: str, reminder_id: int, is_active: bool) -> bool:
    stmt = (
        update(reminders)
        .where(reminders.c.id == int(reminder_id), reminders.c.owner_ref == str(owner_ref))
        .values(is_active=bool(is_active))
    )
    try:
        result = conn.execute(stmt)
    except SQLAlchemyError as exc:
        raise ReminderRepositoryError(f"Database error updating reminder {reminder_id}: {exc}") from exc
    return (result.rowcount or 0) > 0
