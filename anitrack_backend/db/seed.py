from __future__ import annotations

from datetime import UTC, datetime, timedelta

from sqlalchemy.engine import Connection

from anitrack_backend.db.types import utc_now
from anitrack_backend.models.catalog import ShowUpsert
from anitrack_backend.repositories.episodes import insert_local_episode
from anitrack_backend.repositories.shows import insert_local_show

# (show, day offsets from today for episodes 1..n)
DEMO_SHOWS: tuple[tuple[ShowUpsert, tuple[int, ...]], ...] = (
    (
        ShowUpsert(
            title="Skybound Blades",
            cover_image_url="https://images.unsplash.com/photo-1519861531473-9200262188bf?w=640&q=80&auto=format&fit=crop",
            synopsis="A fallen knight and a rogue pilot chase relics hidden above a floating archipelago.",
            total_episodes=12,
        ),
        (1, 8, 15),
    ),
    (
        ShowUpsert(
            title="Neon Ramen Club",
            cover_image_url="https://images.unsplash.com/photo-1543353071-10c8ba85a904?w=640&q=80&auto=format&fit=crop",
            synopsis="Three students solve city mysteries one midnight ramen stall at a time.",
            total_episodes=10,
        ),
        (3, 10, 17),
    ),
    (
        ShowUpsert(
            title="Clockwork Familiar",
            cover_image_url="https://images.unsplash.com/photo-1517336714739-489689fd1ca8?w=640&q=80&auto=format&fit=crop",
            synopsis="A watchmaker binds a mechanical spirit to reverse a timeline fracture.",
            total_episodes=13,
        ),
        (2, 9, 16),
    ),
)


def seed_local_catalog(conn: Connection, *, now: datetime | None = None) -> int:
    """
    Insert the demo local shows and their first episodes.

    Episode N of each show releases `offset` days from `now` at (15 + N):00 UTC.
    Returns the number of shows inserted.
    """

    now = (now or utc_now()).astimezone(UTC)
    inserted = 0
    for show, offsets in DEMO_SHOWS:
        show_id = insert_local_show(conn, show)
        inserted += 1
        for index, offset in enumerate(offsets):
            number = index + 1
            release_at = (now + timedelta(days=offset)).replace(hour=15 + number, minute=0, second=0, microsecond=0)
            insert_local_episode(
                conn,
                show_id=show_id,
                episode_number=number,
                title=f"Episode {number}: {show.title} Arc {number}",
                release_at=release_at,
            )
    return inserted
