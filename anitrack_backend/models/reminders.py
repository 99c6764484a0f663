from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class Channel(str, Enum):
    EMAIL = "email"
    DISCORD = "discord"

    @property
    def supports_account_fallback(self) -> bool:
        return self is Channel.EMAIL


@dataclass(frozen=True)
class ReminderCreate:
    owner_ref: str
    show_id: int | None = None
    email: str | None = None
    discord_webhook_url: str | None = None
    minutes_before: int = 60


@dataclass(frozen=True)
class ReminderRecord:
    id: int
    owner_ref: str
    show_id: int | None
    email: str | None
    discord_webhook_url: str | None
    minutes_before: int
    is_active: bool = True
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ReminderRecord:
        show_id = row.get("show_id")
        return cls(
            id=int(row["id"]),
            owner_ref=str(row["owner_ref"]),
            show_id=int(show_id) if show_id is not None else None,
            email=row.get("email"),
            discord_webhook_url=row.get("discord_webhook_url"),
            minutes_before=int(row["minutes_before"]),
            is_active=bool(row.get("is_active", True)),
            created_at=row.get("created_at"),
        )

    def target_for(self, channel: Channel) -> str | None:
        if channel is Channel.EMAIL:
            return self.email or None
        if channel is Channel.DISCORD:
            return self.discord_webhook_url or None
        return None


@dataclass(frozen=True)
class NotificationRecord:
    reminder_id: int
    episode_id: int
    channel: str
    sent_at: datetime
