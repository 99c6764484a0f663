"""
AniList -> catalog reconciliation.

A run fetches every page first and only then opens one transaction for all upserts,
so an upstream failure on any page leaves the catalog untouched, and a database
failure mid-batch rolls the whole run back.
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Protocol

from sqlalchemy.engine import Connection, Engine

from anitrack_backend.db.types import utc_now
from anitrack_backend.integrations.anilist.normalize import normalize_airing_schedule
from anitrack_backend.models.catalog import AiringItem, EpisodeRecord
from anitrack_backend.models.sync import SyncStatus, SyncSummary
from anitrack_backend.repositories.episodes import find_episode_by_slot, upsert_synced_episode
from anitrack_backend.repositories.shows import find_show_id_by_external_id, upsert_synced_show
from anitrack_backend.repositories.sync_state import (
    fetch_sync_status,
    mark_sync_attempt,
    write_sync_failure,
    write_sync_success,
)

logger = logging.getLogger(__name__)

ANILIST_SOURCE = "anilist"


class AiringScheduleSource(Protocol):
    def iter_airing_schedule(self, *, page_limit: int, per_page: int) -> Iterable[list[dict[str, Any]]]: ...


@dataclass
class _BatchCounters:
    upserted_shows: int = 0
    upserted_episodes: int = 0
    skipped_items: int = 0
    conflicts: int = 0


class AniListSyncEngine:
    def __init__(
        self,
        engine: Engine,
        client: AiringScheduleSource,
        *,
        source: str = ANILIST_SOURCE,
        page_limit: int = 3,
        per_page: int = 50,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._engine = engine
        self._client = client
        self.source = source
        self._page_limit = max(1, int(page_limit))
        self._per_page = max(1, int(per_page))
        self._clock = clock
        # Serializes overlapping runs (timer tick vs manual trigger).
        self._lock = threading.Lock()

    def _fetch_all(self) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        for page_items in self._client.iter_airing_schedule(page_limit=self._page_limit, per_page=self._per_page):
            rows.extend(page_items)
        return rows

    def _apply_item(self, conn: Connection, item: AiringItem, counters: _BatchCounters) -> EpisodeRecord | None:
        """
        Upsert one item's show and episode.

        Returns the episode row blocking the item's (show, episode number) slot, if any;
        a blocked item writes no episode.
        """

        if upsert_synced_show(conn, source=self.source, external_id=item.show_external_id, show=item.show_upsert):
            counters.upserted_shows += 1

        show_id = find_show_id_by_external_id(conn, source=self.source, external_id=item.show_external_id)
        if show_id is None:
            counters.skipped_items += 1
            return None

        occupant = find_episode_by_slot(conn, show_id=show_id, episode_number=item.episode_number)
        if occupant is not None and (occupant.source, occupant.external_id) != (self.source, item.episode_external_id):
            return occupant

        if upsert_synced_episode(
            conn,
            source=self.source,
            external_id=item.episode_external_id,
            show_id=show_id,
            episode_number=item.episode_number,
            title=item.episode_title,
            release_at=item.release_at,
        ):
            counters.upserted_episodes += 1
        return None

    def _apply_items(self, conn: Connection, items: list[AiringItem], counters: _BatchCounters) -> None:
        # Upstream renumbering can move an episode into a slot that a later item in the
        # same batch vacates, so blocked items are retried until a pass frees nothing.
        pending = items
        while True:
            blocked: list[tuple[AiringItem, EpisodeRecord]] = []
            for item in pending:
                occupant = self._apply_item(conn, item, counters)
                if occupant is not None:
                    blocked.append((item, occupant))
            if not blocked or len(blocked) == len(pending):
                break
            pending = [item for item, _occupant in blocked]

        for item, occupant in blocked:
            counters.conflicts += 1
            logger.warning(
                f"Skipping {self.source} episode {item.episode_external_id}: show_id={occupant.show_id} "
                f"episode {item.episode_number} is held by episode id={occupant.id}"
            )

    def _apply(self, raw_items: list[dict[str, Any]]) -> SyncSummary:
        counters = _BatchCounters()
        with self._engine.begin() as conn:
            items: list[AiringItem] = []
            for raw in raw_items:
                item = normalize_airing_schedule(raw)
                if item is None:
                    counters.skipped_items += 1
                    continue
                items.append(item)
            self._apply_items(conn, items, counters)

            summary = SyncSummary(
                source=self.source,
                fetched_count=len(raw_items),
                upserted_shows=counters.upserted_shows,
                upserted_episodes=counters.upserted_episodes,
                skipped_items=counters.skipped_items,
                conflicts=counters.conflicts,
                completed_at=self._clock(),
            )
            write_sync_success(conn, summary)
        return summary

    def _record_failure(self, exc: BaseException) -> None:
        try:
            with self._engine.begin() as conn:
                write_sync_failure(conn, source=self.source, error=exc, now=self._clock())
        except Exception as state_exc:  # noqa: BLE001
            logger.error(f"Could not record {self.source} sync failure: {state_exc}")

    def sync(self) -> SyncSummary:
        """
        Run one reconciliation and return its summary.

        Raises `UpstreamUnavailable` / `UpstreamProtocolError` (or a repository error)
        after recording it as the source's last error.
        """

        with self._lock:
            with self._engine.begin() as conn:
                mark_sync_attempt(conn, source=self.source, now=self._clock())
            try:
                raw_items = self._fetch_all()
                summary = self._apply(raw_items)
            except Exception as exc:
                logger.error(f"{self.source} sync failed: {exc}")
                self._record_failure(exc)
                raise

        logger.info(
            f"{self.source} sync complete: fetched={summary.fetched_count} "
            f"shows={summary.upserted_shows} episodes={summary.upserted_episodes} "
            f"skipped={summary.skipped_items} conflicts={summary.conflicts}"
        )
        return summary

    def sync_safe(self) -> SyncSummary | None:
        """Timer entry point: like `sync()` but never raises."""

        try:
            return self.sync()
        except Exception:  # noqa: BLE001
            logger.exception(f"{self.source} sync run aborted")
            return None

    def status(self) -> SyncStatus:
        with self._engine.connect() as conn:
            return fetch_sync_status(conn, sources=[self.source])[self.source]
