from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from anitrack_backend.db.connection import create_db_engine
from anitrack_backend.db.schema import init_db
from anitrack_backend.models.catalog import ShowUpsert
from anitrack_backend.models.reminders import ReminderCreate
from anitrack_backend.repositories.episodes import insert_local_episode
from anitrack_backend.repositories.reminders import create_reminder
from anitrack_backend.repositories.shows import insert_local_show
from scripts import init_db as init_db_script
from scripts import run_reminder_scan, run_scheduler, sync_status
from scripts._jobs_common import parse_now


@pytest.fixture()
def db_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    url = f"sqlite:///{tmp_path / 'tracker.db'}"
    for name in ("ANITRACK_DB_URL", "DATABASE_URL", "OWNER_EMAILS_JSON", "SMTP_HOST", "DISABLE_STARTUP_JOBS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ANITRACK_DB_URL", url)
    monkeypatch.setattr("scripts._jobs_common.load_env", lambda: None)
    monkeypatch.setattr("scripts._jobs_common.setup_logging", lambda level: None)
    return url


def test_parse_now_accepts_z_suffix_and_naive_values() -> None:
    assert parse_now("2024-01-10T15:00:00Z") == datetime(2024, 1, 10, 15, 0, tzinfo=UTC)
    assert parse_now("2024-01-10T15:00:00") == datetime(2024, 1, 10, 15, 0, tzinfo=UTC)
    assert parse_now(None) is None


def test_init_db_script_seeds(db_url: str, capsys: pytest.CaptureFixture[str]) -> None:
    assert init_db_script.main(["--seed"]) == 0
    assert "seeded=True" in capsys.readouterr().out


def test_sync_status_script_prints_json(db_url: str, capsys: pytest.CaptureFixture[str]) -> None:
    assert sync_status.main([]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["anilist"]["last_run_at"] is None
    assert payload["anilist"]["source"] == "anilist"


def test_reminder_scan_script_sends_due_reminders(db_url: str, capsys: pytest.CaptureFixture[str]) -> None:
    engine = create_db_engine(db_url)
    init_db(engine)
    release = datetime(2024, 1, 10, 16, 0, tzinfo=UTC)
    with engine.begin() as conn:
        show_id = insert_local_show(conn, ShowUpsert(title="Local"))
        insert_local_episode(conn, show_id=show_id, episode_number=1, title=None, release_at=release)
        create_reminder(conn, ReminderCreate(owner_ref="u1", email="fan@example.com", minutes_before=60))
    engine.dispose()

    now = (release - timedelta(minutes=60)).isoformat()
    assert run_reminder_scan.main(["--now", now]) == 0
    out = capsys.readouterr().out
    assert "due=1" in out
    assert "sent=1" in out


def test_run_scheduler_honors_disable_flag(db_url: str, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DISABLE_STARTUP_JOBS", "1")
    assert run_scheduler.main([]) == 0
