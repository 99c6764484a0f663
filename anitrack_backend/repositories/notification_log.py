from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from anitrack_backend.db.dialect import upsert_insert
from anitrack_backend.db.schema import notification_log
from anitrack_backend.db.types import utc_now
from anitrack_backend.models.reminders import Channel, NotificationRecord


class NotificationLogRepositoryError(RuntimeError):
    pass


def _channel_value(channel: Channel | str) -> str:
    return channel.value if isinstance(channel, Channel) else str(channel)


def was_notification_sent(conn: Connection, *, reminder_id: int, episode_id: int, channel: Channel | str) -> bool:
    stmt = (
        select(notification_log.c.id)
        .where(
            notification_log.c.reminder_id == int(reminder_id),
            notification_log.c.episode_id == int(episode_id),
            notification_log.c.channel == _channel_value(channel),
        )
        .limit(1)
    )
    return conn.execute(stmt).first() is not None


def record_notification_sent(
    conn: Connection,
    *,
    reminder_id: int,
    episode_id: int,
    channel: Channel | str,
    sent_at: datetime | None = None,
) -> bool:
    """
    Write the ledger row for a delivered notification.

    Returns False when the (reminder, episode, channel) triple is already recorded.
    """

    stmt = (
        upsert_insert(conn, notification_log)
        .values(
            reminder_id=int(reminder_id),
            episode_id=int(episode_id),
            channel=_channel_value(channel),
            sent_at=sent_at or utc_now(),
        )
        .on_conflict_do_nothing(
            index_elements=[notification_log.c.reminder_id, notification_log.c.episode_id, notification_log.c.channel]
        )
    )
    try:
        result = conn.execute(stmt)
    except SQLAlchemyError as exc:
        raise NotificationLogRepositoryError(
            f"Database error recording notification reminder={reminder_id} episode={episode_id} "
            f"channel={_channel_value(channel)}: {exc}"
        ) from exc
    return (result.rowcount or 0) > 0


def list_notifications_for_reminder(conn: Connection, reminder_id: int) -> list[NotificationRecord]:
    stmt = (
        select(
            notification_log.c.reminder_id,
            notification_log.c.episode_id,
            notification_log.c.channel,
            notification_log.c.sent_at,
        )
        .where(notification_log.c.reminder_id == int(reminder_id))
        .order_by(notification_log.c.sent_at.asc(), notification_log.c.id.asc())
    )
    return [NotificationRecord(**dict(row._mapping)) for row in conn.execute(stmt)]
