from __future__ import annotations

from datetime import UTC
from email.utils import format_datetime

from anitrack_backend.models.catalog import UpcomingEpisode

EMAIL_SUBJECT = "Anime Episode Reminder"
DISCORD_PREFIX = ":tv: "


def build_reminder_message(episode: UpcomingEpisode) -> str:
    release = format_datetime(episode.release_at.astimezone(UTC), usegmt=True)
    return f"{episode.show_title} - Episode {episode.episode_number} releases at {release}."


def build_discord_payload(message: str) -> dict[str, str]:
    return {"content": f"{DISCORD_PREFIX}{message}"}
