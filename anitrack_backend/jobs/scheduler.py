"""
Background driver for the sync and dispatch engines.

Each engine runs on its own daemon thread so a slow AniList fetch never delays a
reminder tick. Both run once at start-up, then on their cadence: the sync on a cron
expression, the dispatch on ticks aligned to multiples of its interval. A dispatch
tick hands its scheduled instant to `scan()` so consecutive due windows tile exactly
even when the thread wakes late.
"""
from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime, timedelta
from typing import Any, Callable

from croniter import croniter

from anitrack_backend.db.types import utc_now
from anitrack_backend.ingestion.anilist_sync import AniListSyncEngine
from anitrack_backend.models.sync import SyncStatus, SyncSummary
from anitrack_backend.notifications.dispatch import DispatchSummary, ReminderDispatcher

logger = logging.getLogger(__name__)

MAX_CATCH_UP_TICKS = 5

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def next_cron_time(expression: str, after: datetime) -> datetime:
    return croniter(expression, after).get_next(datetime)


def next_aligned_tick(after: datetime, interval: timedelta) -> datetime:
    """First multiple of `interval` (counted from the Unix epoch) strictly after `after`."""

    elapsed = after - _EPOCH
    ticks = elapsed // interval
    return _EPOCH + (ticks + 1) * interval


class JobScheduler:
    def __init__(
        self,
        sync_engine: AniListSyncEngine,
        dispatcher: ReminderDispatcher,
        *,
        sync_cron: str,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if not croniter.is_valid(sync_cron):
            raise ValueError(f"Invalid sync cron expression: {sync_cron!r}")
        self._sync_engine = sync_engine
        self._dispatcher = dispatcher
        self._sync_cron = sync_cron
        self._clock = clock
        self._stop_event = threading.Event()
        self._threads: list[threading.Thread] = []

    @property
    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def start(self) -> None:
        if self.is_running:
            raise RuntimeError("Job scheduler already running")
        self._stop_event.clear()
        self._threads = [
            threading.Thread(target=self._sync_loop, name="anilist-sync", daemon=True),
            threading.Thread(target=self._dispatch_loop, name="reminder-dispatch", daemon=True),
        ]
        for thread in self._threads:
            thread.start()
        logger.info(
            f"Job scheduler started (sync cron={self._sync_cron!r}, "
            f"dispatch every {self._dispatcher.tick_interval.total_seconds():.0f}s)"
        )

    def stop(self, timeout: float | None = 30.0) -> None:
        """Signal both loops to stop and wait for any in-flight run to finish."""

        self._stop_event.set()
        for thread in self._threads:
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(f"Thread {thread.name} still running after {timeout}s; leaving it to finish")
        logger.info("Job scheduler stopped")

    def _wait_until(self, when: datetime) -> bool:
        """Sleep until `when`; returns True if a stop was requested meanwhile."""

        delay = (when - self._clock()).total_seconds()
        return self._stop_event.wait(max(0.0, delay))

    def _run_guarded(self, name: str, func: Callable[..., Any], *args: Any) -> None:
        try:
            func(*args)
        except Exception:  # noqa: BLE001
            logger.exception(f"{name} cycle failed")

    def _sync_loop(self) -> None:
        self._run_guarded("anilist-sync", self._sync_engine.sync_safe)
        while not self._stop_event.is_set():
            next_run = next_cron_time(self._sync_cron, self._clock())
            if self._wait_until(next_run):
                return
            self._run_guarded("anilist-sync", self._sync_engine.sync_safe)

    def _dispatch_loop(self) -> None:
        interval = self._dispatcher.tick_interval
        started = self._clock()
        self._run_guarded("reminder-dispatch", self._dispatcher.scan, started)

        next_tick = next_aligned_tick(started, interval)
        while not self._stop_event.is_set():
            if self._wait_until(next_tick):
                return

            now = self._clock()
            behind = (now - next_tick) // interval
            if behind > MAX_CATCH_UP_TICKS:
                skipped_to = next_aligned_tick(now, interval) - interval
                logger.warning(
                    f"Reminder dispatch fell {behind} ticks behind; skipping from {next_tick.isoformat()} "
                    f"to {skipped_to.isoformat()}"
                )
                next_tick = skipped_to

            self._run_guarded("reminder-dispatch", self._dispatcher.scan, next_tick)
            next_tick = next_tick + interval

    def run_reconciliation_now(self) -> SyncSummary:
        """Manual trigger; failures propagate so the caller can retry interactively."""

        return self._sync_engine.sync()

    def run_dispatch_now(self, now: datetime | None = None) -> DispatchSummary:
        return self._dispatcher.scan(now)

    def list_sync_status(self) -> dict[str, SyncStatus]:
        status = self._sync_engine.status()
        return {status.source: status}
