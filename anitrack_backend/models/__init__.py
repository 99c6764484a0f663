"""
Domain models shared across repositories, engines and scripts.
"""

from anitrack_backend.models.catalog import AiringItem, EpisodeRecord, ShowRecord, ShowUpsert, UpcomingEpisode
from anitrack_backend.models.reminders import Channel, NotificationRecord, ReminderCreate, ReminderRecord
from anitrack_backend.models.sync import SyncStatus, SyncSummary

__all__ = [
    "AiringItem",
    "Channel",
    "EpisodeRecord",
    "NotificationRecord",
    "ReminderCreate",
    "ReminderRecord",
    "ShowRecord",
    "ShowUpsert",
    "SyncStatus",
    "SyncSummary",
    "UpcomingEpisode",
]
