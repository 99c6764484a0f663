"""
Runtime settings for the tracker backend.

Settings are read from the process environment (after `load_env()` has merged any
`.env` file). Numeric values that fail to parse fall back to their defaults and are
clamped to sane ranges; combinations that cannot work raise `ConfigurationError`.
"""
from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from croniter import croniter

from anitrack_backend.utils.env import env_bool, env_float, env_int, env_str

DEFAULT_DB_PATH = "./data/tracker.db"
DEFAULT_SYNC_CRON = "15 */6 * * *"

MIN_LEAD_MINUTES = 5
MAX_LEAD_MINUTES = 1440


class ConfigurationError(ValueError):
    pass


@dataclass(frozen=True)
class SmtpSettings:
    host: str = ""
    port: int = 587
    user: str = ""
    password: str = ""
    sender: str = "anime-tracker@example.com"

    @property
    def enabled(self) -> bool:
        return bool(self.host and self.user and self.password)


@dataclass(frozen=True)
class Settings:
    database_url: str
    anilist_sync_cron: str = DEFAULT_SYNC_CRON
    anilist_page_limit: int = 3
    anilist_per_page: int = 50
    anilist_timeout_seconds: float = 20.0
    dispatch_interval_seconds: int = 60
    dispatch_lookahead_hours: int = 48
    delivery_timeout_seconds: float = 10.0
    smtp: SmtpSettings = field(default_factory=SmtpSettings)
    disable_startup_jobs: bool = False
    log_level: str = "INFO"

    def validate(self) -> None:
        if not croniter.is_valid(self.anilist_sync_cron):
            raise ConfigurationError(f"Invalid ANILIST_SYNC_CRON expression: {self.anilist_sync_cron!r}")
        if self.dispatch_interval_seconds < 1:
            raise ConfigurationError("DISPATCH_INTERVAL_SECONDS must be at least 1.")
        # Episodes are only scanned from `now` onwards, so a due window must close
        # before the shortest-lead episode releases.
        if self.dispatch_interval_seconds > MIN_LEAD_MINUTES * 60:
            raise ConfigurationError(
                f"DISPATCH_INTERVAL_SECONDS must not exceed the minimum reminder lead time ({MIN_LEAD_MINUTES} minutes)."
            )
        lookahead_seconds = self.dispatch_lookahead_hours * 3600
        required = MAX_LEAD_MINUTES * 60 + self.dispatch_interval_seconds
        if lookahead_seconds <= required:
            raise ConfigurationError(
                "DISPATCH_LOOKAHEAD_HOURS must exceed the maximum reminder lead time "
                f"({MAX_LEAD_MINUTES} minutes) plus the dispatch interval "
                f"({self.dispatch_interval_seconds}s); got {self.dispatch_lookahead_hours}h."
            )


def resolve_database_url(environ: Mapping[str, str]) -> str:
    """
    Resolve the database URL using a prioritized lookup.

    Priority order:
    1. ANITRACK_DB_URL - explicit SQLAlchemy URL for this service
    2. DATABASE_URL - standard Postgres connection string
    3. DB_PATH - SQLite file path (default `./data/tracker.db`)
    """

    url = env_str(environ, "ANITRACK_DB_URL")
    if url:
        return url

    url = env_str(environ, "DATABASE_URL")
    if url:
        # Hosted Postgres providers still hand out the legacy scheme.
        if url.startswith("postgres://"):
            url = "postgresql://" + url[len("postgres://") :]
        return url

    db_path = Path(env_str(environ, "DB_PATH", DEFAULT_DB_PATH)).expanduser().resolve()
    return f"sqlite:///{db_path}"


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ
    settings = Settings(
        database_url=resolve_database_url(env),
        anilist_sync_cron=env_str(env, "ANILIST_SYNC_CRON", DEFAULT_SYNC_CRON),
        anilist_page_limit=env_int(env, "ANILIST_PAGE_LIMIT", 3, minimum=1, maximum=10),
        anilist_per_page=env_int(env, "ANILIST_PER_PAGE", 50, minimum=10, maximum=50),
        anilist_timeout_seconds=env_float(env, "ANILIST_TIMEOUT_SECONDS", 20.0),
        dispatch_interval_seconds=env_int(env, "DISPATCH_INTERVAL_SECONDS", 60, minimum=1),
        dispatch_lookahead_hours=env_int(env, "DISPATCH_LOOKAHEAD_HOURS", 48, minimum=1),
        delivery_timeout_seconds=env_float(env, "DELIVERY_TIMEOUT_SECONDS", 10.0),
        smtp=SmtpSettings(
            host=env_str(env, "SMTP_HOST"),
            port=env_int(env, "SMTP_PORT", 587, minimum=1, maximum=65535),
            user=env_str(env, "SMTP_USER"),
            password=env_str(env, "SMTP_PASS"),
            sender=env_str(env, "SMTP_FROM", "anime-tracker@example.com"),
        ),
        disable_startup_jobs=env_bool(env, "DISABLE_STARTUP_JOBS", False),
        log_level=env_str(env, "LOG_LEVEL", "INFO").upper(),
    )
    settings.validate()
    return settings
