from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.engine import Engine

from anitrack_backend.models.catalog import ShowUpsert
from anitrack_backend.repositories.episodes import (
    EpisodeRepositoryError,
    find_episode_by_external_id,
    insert_local_episode,
    list_episodes_releasing_between,
    list_upcoming_episodes,
    upsert_synced_episode,
)
from anitrack_backend.repositories.shows import (
    ShowRepositoryError,
    find_show_id_by_external_id,
    get_show,
    insert_local_show,
    list_shows,
    upsert_synced_show,
)

RELEASE = datetime(2024, 1, 10, 16, 0, tzinfo=UTC)


def _sync_show(conn, external_id: str = "101", title: str = "Frieren") -> int:  # noqa: ANN001
    upsert_synced_show(conn, source="anilist", external_id=external_id, show=ShowUpsert(title=title))
    show_id = find_show_id_by_external_id(conn, source="anilist", external_id=external_id)
    assert show_id is not None
    return show_id


def test_upsert_synced_show_reports_only_real_changes(engine: Engine) -> None:
    show = ShowUpsert(title="Frieren", cover_image_url="https://img/large.jpg", total_episodes=28)
    with engine.begin() as conn:
        assert upsert_synced_show(conn, source="anilist", external_id="101", show=show) is True
        assert upsert_synced_show(conn, source="anilist", external_id="101", show=show) is False
        assert (
            upsert_synced_show(
                conn,
                source="anilist",
                external_id="101",
                show=ShowUpsert(title="Frieren", cover_image_url="https://img/large.jpg", total_episodes=28, synopsis="Elf"),
            )
            is True
        )

    with engine.connect() as conn:
        shows = list_shows(conn, source="anilist")
    assert len(shows) == 1
    assert shows[0].synopsis == "Elf"
    assert shows[0].external_id == "101"


def test_synced_show_requires_external_identity(engine: Engine) -> None:
    with engine.begin() as conn:
        with pytest.raises(ShowRepositoryError):
            upsert_synced_show(conn, source="local", external_id="1", show=ShowUpsert(title="x"))
        with pytest.raises(ShowRepositoryError):
            upsert_synced_show(conn, source="anilist", external_id=" ", show=ShowUpsert(title="x"))


def test_local_and_synced_shows_coexist(engine: Engine) -> None:
    with engine.begin() as conn:
        local_id = insert_local_show(conn, ShowUpsert(title="Local Show"))
        insert_local_show(conn, ShowUpsert(title="Another Local"))
        synced_id = _sync_show(conn)

    with engine.connect() as conn:
        assert get_show(conn, local_id).source == "local"
        assert get_show(conn, local_id).external_id is None
        assert get_show(conn, synced_id).source == "anilist"
        assert get_show(conn, 9999) is None
        assert len(list_shows(conn)) == 3


def test_upsert_synced_episode_is_idempotent_and_tracks_schedule_changes(engine: Engine) -> None:
    with engine.begin() as conn:
        show_id = _sync_show(conn)
        kwargs = dict(source="anilist", external_id="9001", show_id=show_id, episode_number=1, title="Episode 1")
        assert upsert_synced_episode(conn, release_at=RELEASE, **kwargs) is True
        assert upsert_synced_episode(conn, release_at=RELEASE, **kwargs) is False
        assert upsert_synced_episode(conn, release_at=RELEASE + timedelta(hours=1), **kwargs) is True

        episode = find_episode_by_external_id(conn, source="anilist", external_id="9001")
    assert episode is not None
    assert episode.release_at == RELEASE + timedelta(hours=1)


def test_upsert_synced_episode_follows_show_re_keying(engine: Engine) -> None:
    with engine.begin() as conn:
        first_show = _sync_show(conn, "101", "First")
        second_show = _sync_show(conn, "202", "Second")
        upsert_synced_episode(
            conn, source="anilist", external_id="9001", show_id=first_show, episode_number=3, title=None, release_at=RELEASE
        )
        assert upsert_synced_episode(
            conn, source="anilist", external_id="9001", show_id=second_show, episode_number=3, title=None, release_at=RELEASE
        )
        episode = find_episode_by_external_id(conn, source="anilist", external_id="9001")

    assert episode is not None
    assert episode.show_id == second_show


def test_episode_writes_require_aware_release_time(engine: Engine) -> None:
    with engine.begin() as conn:
        show_id = insert_local_show(conn, ShowUpsert(title="Local"))
        with pytest.raises(EpisodeRepositoryError):
            insert_local_episode(conn, show_id=show_id, episode_number=1, title=None, release_at=datetime(2024, 1, 1))


def test_list_episodes_releasing_between_is_half_open_and_joined(engine: Engine) -> None:
    with engine.begin() as conn:
        show_id = insert_local_show(conn, ShowUpsert(title="Local"))
        for number, offset in ((1, 0), (2, 1), (3, 2)):
            insert_local_episode(
                conn, show_id=show_id, episode_number=number, title=None, release_at=RELEASE + timedelta(hours=offset)
            )

    with engine.connect() as conn:
        found = list_episodes_releasing_between(conn, RELEASE, RELEASE + timedelta(hours=2))

    assert [ep.episode_number for ep in found] == [1, 2]
    assert {ep.show_title for ep in found} == {"Local"}


def test_list_upcoming_episodes_clamps_days_and_filters_show(engine: Engine) -> None:
    now = RELEASE - timedelta(days=1)
    with engine.begin() as conn:
        first = insert_local_show(conn, ShowUpsert(title="First"))
        second = insert_local_show(conn, ShowUpsert(title="Second"))
        insert_local_episode(conn, show_id=first, episode_number=1, title=None, release_at=RELEASE)
        insert_local_episode(conn, show_id=second, episode_number=1, title=None, release_at=RELEASE)
        insert_local_episode(conn, show_id=first, episode_number=2, title=None, release_at=now + timedelta(days=90))
        insert_local_episode(conn, show_id=first, episode_number=3, title=None, release_at=now - timedelta(hours=1))

    with engine.connect() as conn:
        assert len(list_upcoming_episodes(conn, days=1000, now=now)) == 2
        only_first = list_upcoming_episodes(conn, days=14, show_id=first, now=now)

    assert [(ep.show_id, ep.episode_number) for ep in only_first] == [(first, 1)]
