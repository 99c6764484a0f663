from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.engine import Engine

from anitrack_backend.config import Settings
from anitrack_backend.db.connection import create_db_engine
from anitrack_backend.db.schema import init_db
from anitrack_backend.ingestion.anilist_sync import AniListSyncEngine
from anitrack_backend.integrations.anilist.client import HttpAniListClient
from anitrack_backend.jobs.scheduler import JobScheduler
from anitrack_backend.notifications.channels import DiscordWebhookSender, OwnerDirectory, SmtpEmailSender
from anitrack_backend.notifications.dispatch import ReminderDispatcher


@dataclass(frozen=True)
class Runtime:
    engine: Engine
    sync_engine: AniListSyncEngine
    dispatcher: ReminderDispatcher
    scheduler: JobScheduler


def build_runtime(
    settings: Settings,
    *,
    owner_directory: OwnerDirectory | None = None,
    engine: Engine | None = None,
    seed: bool = False,
) -> Runtime:
    """Wire the store, both engines and the driver from settings."""

    engine = engine or create_db_engine(settings.database_url)
    init_db(engine, seed=seed)

    sync_engine = AniListSyncEngine(
        engine,
        HttpAniListClient(timeout_seconds=settings.anilist_timeout_seconds),
        page_limit=settings.anilist_page_limit,
        per_page=settings.anilist_per_page,
    )
    dispatcher = ReminderDispatcher(
        engine,
        email_sender=SmtpEmailSender(settings.smtp, timeout_seconds=settings.delivery_timeout_seconds),
        webhook_sender=DiscordWebhookSender(timeout_seconds=settings.delivery_timeout_seconds),
        owner_directory=owner_directory,
        tick_interval=timedelta(seconds=settings.dispatch_interval_seconds),
        lookahead=timedelta(hours=settings.dispatch_lookahead_hours),
    )
    scheduler = JobScheduler(sync_engine, dispatcher, sync_cron=settings.anilist_sync_cron)
    return Runtime(engine=engine, sync_engine=sync_engine, dispatcher=dispatcher, scheduler=scheduler)
