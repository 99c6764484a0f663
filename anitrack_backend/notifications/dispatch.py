"""
Reminder dispatch.

Each scan looks at every active reminder against every episode releasing within the
lookahead window. A (reminder, episode) pair is due on the tick whose time `now`
satisfies `0 <= now - (release_at - lead) < tick_interval`. Ticks spaced exactly one
interval apart therefore pick each trigger up exactly once; the notification ledger
covers the rest (manual scans, the start-up scan, retries after a failed delivery).

A delivery that keeps failing until its window closes is never sent. No record of the
miss is kept beyond the warning logged for each failed attempt.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.engine import Engine

from anitrack_backend.db.types import utc_now
from anitrack_backend.models.catalog import UpcomingEpisode
from anitrack_backend.models.reminders import Channel, ReminderRecord
from anitrack_backend.notifications.channels import (
    ChannelDeliveryError,
    EmailSender,
    OwnerDirectory,
    WebhookSender,
)
from anitrack_backend.notifications.messages import EMAIL_SUBJECT, build_discord_payload, build_reminder_message
from anitrack_backend.repositories.episodes import list_episodes_releasing_between
from anitrack_backend.repositories.notification_log import record_notification_sent, was_notification_sent
from anitrack_backend.repositories.reminders import list_active_reminders

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = timedelta(seconds=60)
DEFAULT_LOOKAHEAD = timedelta(hours=48)


def trigger_time(release_at: datetime, minutes_before: int) -> datetime:
    return release_at - timedelta(minutes=int(minutes_before))


def is_due(release_at: datetime, minutes_before: int, now: datetime, tick_interval: timedelta) -> bool:
    elapsed = now - trigger_time(release_at, minutes_before)
    return timedelta(0) <= elapsed < tick_interval


@dataclass
class DispatchSummary:
    due_pairs: int = 0
    sent: int = 0
    already_sent: int = 0
    failed: int = 0
    no_target: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class ReminderDispatcher:
    def __init__(
        self,
        engine: Engine,
        *,
        email_sender: EmailSender,
        webhook_sender: WebhookSender,
        owner_directory: OwnerDirectory | None = None,
        tick_interval: timedelta = DEFAULT_TICK_INTERVAL,
        lookahead: timedelta = DEFAULT_LOOKAHEAD,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if tick_interval <= timedelta(0):
            raise ValueError("tick_interval must be positive.")
        if lookahead <= tick_interval:
            raise ValueError("lookahead must exceed tick_interval.")
        self._engine = engine
        self._email_sender = email_sender
        self._webhook_sender = webhook_sender
        self._owner_directory = owner_directory
        self.tick_interval = tick_interval
        self.lookahead = lookahead
        self._clock = clock
        # Serializes overlapping scans so the ledger check and write stay paired.
        self._lock = threading.Lock()

    def resolve_target(self, reminder: ReminderRecord, channel: Channel) -> str | None:
        target = reminder.target_for(channel)
        if target:
            return target
        if channel.supports_account_fallback and self._owner_directory is not None:
            try:
                return self._owner_directory.email_for_owner(reminder.owner_ref)
            except Exception as exc:  # noqa: BLE001
                logger.warning(f"Owner email lookup failed for reminder {reminder.id}: {exc}")
        return None

    def _deliver(self, channel: Channel, target: str, message: str) -> None:
        if channel is Channel.EMAIL:
            self._email_sender.deliver_email(target, EMAIL_SUBJECT, message)
        elif channel is Channel.DISCORD:
            self._webhook_sender.deliver_webhook(target, build_discord_payload(message))
        else:
            raise ChannelDeliveryError(f"Unsupported channel: {channel}", channel=channel, target=target)

    def _dispatch_one(
        self,
        reminder: ReminderRecord,
        episode: UpcomingEpisode,
        channel: Channel,
        target: str,
        message: str,
        summary: DispatchSummary,
    ) -> None:
        with self._engine.connect() as conn:
            if was_notification_sent(conn, reminder_id=reminder.id, episode_id=episode.id, channel=channel):
                summary.already_sent += 1
                return

        try:
            self._deliver(channel, target, message)
        except ChannelDeliveryError as exc:
            summary.failed += 1
            logger.warning(
                f"Failed to send {channel.value} reminder {reminder.id} for episode {episode.id}: {exc}"
            )
            return
        except Exception:  # noqa: BLE001
            summary.failed += 1
            logger.exception(f"Unexpected error sending {channel.value} reminder {reminder.id} for episode {episode.id}")
            return

        try:
            with self._engine.begin() as conn:
                recorded = record_notification_sent(
                    conn,
                    reminder_id=reminder.id,
                    episode_id=episode.id,
                    channel=channel,
                    sent_at=self._clock(),
                )
        except Exception:  # noqa: BLE001
            summary.failed += 1
            logger.exception(
                f"Sent {channel.value} reminder {reminder.id} for episode {episode.id} but could not record it"
            )
            return

        if recorded:
            summary.sent += 1
            logger.info(f"Sent {channel.value} reminder {reminder.id} for episode {episode.id}")
        else:
            summary.already_sent += 1
            logger.warning(f"Ledger already had {channel.value} reminder {reminder.id} for episode {episode.id}")

    def _pair_matches(self, reminder: ReminderRecord, episode: UpcomingEpisode, now: datetime) -> bool:
        if reminder.show_id is not None and reminder.show_id != episode.show_id:
            return False
        return is_due(episode.release_at, reminder.minutes_before, now, self.tick_interval)

    def scan(self, now: datetime | None = None) -> DispatchSummary:
        """
        Send every notification due at `now` (default: the clock).

        Delivery failures are logged and counted, never raised.
        """

        now = now or self._clock()
        summary = DispatchSummary()
        with self._lock:
            with self._engine.connect() as conn:
                reminders = list_active_reminders(conn)
                episodes = list_episodes_releasing_between(conn, now, now + self.lookahead)

            for reminder in reminders:
                for episode in episodes:
                    if not self._pair_matches(reminder, episode, now):
                        continue
                    summary.due_pairs += 1
                    message = build_reminder_message(episode)
                    targets = [(channel, self.resolve_target(reminder, channel)) for channel in Channel]
                    targets = [(channel, target) for channel, target in targets if target]
                    if not targets:
                        summary.no_target += 1
                        logger.warning(f"Reminder {reminder.id} is due for episode {episode.id} but has no delivery target")
                        continue
                    for channel, target in targets:
                        self._dispatch_one(reminder, episode, channel, target, message, summary)

        if summary.due_pairs:
            logger.info(f"Reminder scan at {now.isoformat()}: {summary.to_dict()}")
        else:
            logger.debug(f"Reminder scan at {now.isoformat()}: nothing due")
        return summary
