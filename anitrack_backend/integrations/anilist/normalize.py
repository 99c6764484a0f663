from __future__ import annotations

import html
import re
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from anitrack_backend.models.catalog import AiringItem

_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")


def sanitize_text(value: object) -> str | None:
    """
    Turn AniList rich-text descriptions into plain text.

    `<br>` becomes a newline, other markup is dropped and HTML entities are decoded.
    """

    if value is None:
        return None
    text = str(value)
    if not text:
        return None
    text = _BR_RE.sub("\n", text)
    text = _TAG_RE.sub("", text)
    text = html.unescape(text).strip()
    return text or None


def _as_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_positive_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
        return parsed if parsed > 0 else None
    return None


def _pick_title(media: Mapping[str, Any], media_id: str) -> str:
    title = media.get("title")
    if isinstance(title, Mapping):
        for key in ("english", "romaji", "native"):
            candidate = _as_str(title.get(key))
            if candidate:
                return candidate
    return f"Anime {media_id}"


def _pick_cover(media: Mapping[str, Any]) -> str | None:
    cover = media.get("coverImage")
    if not isinstance(cover, Mapping):
        return None
    return _as_str(cover.get("large")) or _as_str(cover.get("medium"))


def _parse_airing_at(value: object) -> datetime | None:
    seconds = _as_positive_int(value)
    if seconds is None:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def normalize_airing_schedule(raw: object) -> AiringItem | None:
    """
    Validate one raw `airingSchedules` entry.

    Returns None for anything that is not an anime episode with ids, an episode
    number and an airing time; such items are skipped, not fatal.
    """

    if not isinstance(raw, Mapping):
        return None
    media = raw.get("media")
    if not isinstance(media, Mapping) or media.get("type") != "ANIME":
        return None

    show_external_id = _as_str(media.get("id"))
    episode_external_id = _as_str(raw.get("id"))
    episode_number = _as_positive_int(raw.get("episode"))
    release_at = _parse_airing_at(raw.get("airingAt"))
    if not show_external_id or not episode_external_id or episode_number is None or release_at is None:
        return None

    return AiringItem(
        show_external_id=show_external_id,
        show_title=_pick_title(media, show_external_id),
        episode_external_id=episode_external_id,
        episode_number=episode_number,
        release_at=release_at,
        cover_image_url=_pick_cover(media),
        synopsis=sanitize_text(media.get("description")),
        total_episodes=_as_positive_int(media.get("episodes")),
    )
