from __future__ import annotations

from datetime import UTC, datetime

import pytest
from sqlalchemy.engine import Engine

from anitrack_backend.config import ConfigurationError
from anitrack_backend.models.catalog import ShowUpsert
from anitrack_backend.models.reminders import Channel, ReminderCreate
from anitrack_backend.repositories.episodes import insert_local_episode
from anitrack_backend.repositories.notification_log import (
    list_notifications_for_reminder,
    record_notification_sent,
    was_notification_sent,
)
from anitrack_backend.repositories.reminders import (
    create_reminder,
    delete_reminder,
    list_active_reminders,
    list_reminders_for_owner,
    set_reminder_active,
)
from anitrack_backend.repositories.shows import insert_local_show


@pytest.mark.parametrize(
    ("reminder", "message"),
    [
        (ReminderCreate(owner_ref=" ", email="a@example.com"), "owner"),
        (ReminderCreate(owner_ref="u1"), "at least one channel"),
        (ReminderCreate(owner_ref="u1", email="not-an-email"), "email"),
        (ReminderCreate(owner_ref="u1", discord_webhook_url="ftp://discord.example/hook"), "http"),
        (ReminderCreate(owner_ref="u1", email="a@example.com", minutes_before=4), "between"),
        (ReminderCreate(owner_ref="u1", email="a@example.com", minutes_before=1441), "between"),
        (ReminderCreate(owner_ref="u1", email="a@example.com", show_id=4242), "unknown show"),
    ],
)
def test_create_reminder_rejects_unusable_input(engine: Engine, reminder: ReminderCreate, message: str) -> None:
    with engine.begin() as conn:
        with pytest.raises(ConfigurationError, match=message):
            create_reminder(conn, reminder)


def test_create_reminder_trims_targets_and_defaults_active(engine: Engine) -> None:
    with engine.begin() as conn:
        show_id = insert_local_show(conn, ShowUpsert(title="Local"))
        created = create_reminder(
            conn,
            ReminderCreate(
                owner_ref="u1",
                show_id=show_id,
                email="  fan@example.com ",
                discord_webhook_url=" ",
                minutes_before=5,
            ),
        )

    assert created.email == "fan@example.com"
    assert created.discord_webhook_url is None
    assert created.show_id == show_id
    assert created.minutes_before == 5
    assert created.is_active is True
    assert created.created_at is not None and created.created_at.tzinfo is UTC


def test_owner_scoped_listing_delete_and_deactivate(engine: Engine) -> None:
    with engine.begin() as conn:
        mine = create_reminder(conn, ReminderCreate(owner_ref="u1", email="a@example.com"))
        other = create_reminder(conn, ReminderCreate(owner_ref="u2", email="b@example.com"))
        paused = create_reminder(conn, ReminderCreate(owner_ref="u1", discord_webhook_url="https://discord.example/h"))

        assert set_reminder_active(conn, owner_ref="u1", reminder_id=paused.id, is_active=False) is True
        assert delete_reminder(conn, owner_ref="u1", reminder_id=other.id) is False

    with engine.connect() as conn:
        assert {r.id for r in list_reminders_for_owner(conn, "u1")} == {mine.id, paused.id}
        assert [r.id for r in list_active_reminders(conn)] == [mine.id, other.id]

    with engine.begin() as conn:
        assert delete_reminder(conn, owner_ref="u2", reminder_id=other.id) is True

    with engine.connect() as conn:
        assert list_reminders_for_owner(conn, "u2") == []


def test_notification_ledger_records_each_triple_once(engine: Engine) -> None:
    sent_at = datetime(2024, 1, 10, 15, 0, tzinfo=UTC)
    with engine.begin() as conn:
        show_id = insert_local_show(conn, ShowUpsert(title="Local"))
        episode_id = insert_local_episode(
            conn, show_id=show_id, episode_number=1, title=None, release_at=datetime(2024, 1, 10, 16, 0, tzinfo=UTC)
        )
        reminder = create_reminder(conn, ReminderCreate(owner_ref="u1", email="a@example.com"))

    with engine.begin() as conn:
        assert was_notification_sent(conn, reminder_id=reminder.id, episode_id=episode_id, channel=Channel.EMAIL) is False
        assert record_notification_sent(
            conn, reminder_id=reminder.id, episode_id=episode_id, channel=Channel.EMAIL, sent_at=sent_at
        )
        assert not record_notification_sent(
            conn, reminder_id=reminder.id, episode_id=episode_id, channel=Channel.EMAIL, sent_at=sent_at
        )
        assert record_notification_sent(
            conn, reminder_id=reminder.id, episode_id=episode_id, channel=Channel.DISCORD, sent_at=sent_at
        )

    with engine.connect() as conn:
        assert was_notification_sent(conn, reminder_id=reminder.id, episode_id=episode_id, channel="email") is True
        records = list_notifications_for_reminder(conn, reminder.id)

    assert sorted(record.channel for record in records) == ["discord", "email"]
    assert all(record.sent_at == sent_at for record in records)
