"""
Repository layer for DB access patterns.

Every function takes an open SQLAlchemy `Connection`; callers own the transaction
(`with engine.begin() as conn:`), which is how the sync engine applies a whole run
as one atomic batch.
"""

from anitrack_backend.repositories.episodes import EpisodeRepositoryError, list_upcoming_episodes
from anitrack_backend.repositories.reminders import (
    ReminderRepositoryError,
    create_reminder,
    delete_reminder,
    list_reminders_for_owner,
)
from anitrack_backend.repositories.shows import ShowRepositoryError, get_show, list_shows
from anitrack_backend.repositories.sync_state import fetch_sync_status

__all__ = [
    "EpisodeRepositoryError",
    "ReminderRepositoryError",
    "ShowRepositoryError",
    "create_reminder",
    "delete_reminder",
    "fetch_sync_status",
    "get_show",
    "list_reminders_for_owner",
    "list_shows",
    "list_upcoming_episodes",
]
