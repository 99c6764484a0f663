from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class ShowRecord:
    """
    Canonical show record (maps to `shows`).

    `external_id` is set iff `source` is not `local`.
    """

    id: int
    title: str
    cover_image_url: str | None = None
    synopsis: str | None = None
    total_episodes: int | None = None
    source: str = "local"
    external_id: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ShowRecord:
        return cls(
            id=int(row["id"]),
            title=str(row["title"]),
            cover_image_url=row.get("cover_image_url"),
            synopsis=row.get("synopsis"),
            total_episodes=row.get("total_episodes"),
            source=str(row.get("source") or "local"),
            external_id=row.get("external_id"),
        )


@dataclass(frozen=True)
class ShowUpsert:
    title: str
    cover_image_url: str | None = None
    synopsis: str | None = None
    total_episodes: int | None = None


@dataclass(frozen=True)
class EpisodeRecord:
    id: int
    show_id: int
    episode_number: int
    title: str | None
    release_at: datetime
    source: str = "local"
    external_id: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> EpisodeRecord:
        return cls(
            id=int(row["id"]),
            show_id=int(row["show_id"]),
            episode_number=int(row["episode_number"]),
            title=row.get("title"),
            release_at=row["release_at"],
            source=str(row.get("source") or "local"),
            external_id=row.get("external_id"),
        )


@dataclass(frozen=True)
class UpcomingEpisode:
    """Episode joined with its show title, as read by the dispatch engine and listings."""

    id: int
    show_id: int
    show_title: str
    episode_number: int
    title: str | None
    release_at: datetime


@dataclass(frozen=True)
class AiringItem:
    """
    One normalized upstream airing-schedule entry.

    Built at the integration boundary; anything that cannot produce every required
    field is rejected there, so the sync engine only sees well-formed items.
    """

    show_external_id: str
    show_title: str
    episode_external_id: str
    episode_number: int
    release_at: datetime
    cover_image_url: str | None = None
    synopsis: str | None = None
    total_episodes: int | None = None

    @property
    def show_upsert(self) -> ShowUpsert:
        return ShowUpsert(
            title=self.show_title,
            cover_image_url=self.cover_image_url,
            synopsis=self.synopsis,
            total_episodes=self.total_episodes,
        )

    @property
    def episode_title(self) -> str:
        return f"Episode {self.episode_number}"
