"""All-time ranking: fold many seasons of standings into one persisted snapshot."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone

from livetable.api.client import Malformed, UpstreamError
from livetable.api.endpoints import parse_standings
from livetable.api.models import ClubAggregate, RankingSnapshot, TableRow
from livetable.config import Settings
from livetable.services.data_service import DataService
from livetable.services.snapshot_store import SnapshotStore

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def fold_season(totals: dict[str, ClubAggregate], season: int, rows: list[TableRow]) -> None:
    """Add one season's table rows to the running totals, keyed by club name."""
    for row in rows:
        name = row.team.name
        club = totals.get(name)
        if club is None:
            club = totals[name] = ClubAggregate(name=name, crest_url=row.team.crest)
        club.add_row(season, row)


def build_ranking(totals: dict[str, ClubAggregate]) -> list[ClubAggregate]:
    clubs = list(totals.values())
    for club in clubs:
        club.finalize()
    clubs.sort(key=lambda c: c.points, reverse=True)
    return clubs


class RankingAggregator:
    """Rebuilds the ranking snapshot with per-season retry and linear backoff.

    At most one run executes at a time; a call made while a run is in
    flight returns None without doing anything.
    """

    def __init__(
        self,
        settings: Settings,
        data_service: DataService,
        store: SnapshotStore,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.settings = settings
        self.data_service = data_service
        self.store = store
        self._sleep = sleep
        self._clock = clock
        self._running = False
        self._idle = asyncio.Event()
        self._idle.set()
        self._background: set[asyncio.Task] = set()
        self.last_error: str | None = None

    @property
    def running(self) -> bool:
        return self._running

    def seasons(self) -> list[int]:
        return list(range(self.settings.ranking_start_year, self._clock().year + 1))

    def is_stale(self, snapshot: RankingSnapshot) -> bool:
        max_age = timedelta(hours=self.settings.ranking_max_age_hours)
        generated_at = snapshot.generated_at
        if generated_at.tzinfo is None:
            generated_at = generated_at.replace(tzinfo=timezone.utc)
        return self._clock() - generated_at >= max_age

    async def refresh(self, force: bool = False) -> RankingSnapshot | None:
        """Rebuild the snapshot unless a fresh one exists (or another run is active)."""
        if self._running:
            log.info("Ranking refresh already in progress, skipping")
            return None
        self._running = True
        self._idle.clear()
        try:
            if not force:
                snapshot = await self.store.load()
                if snapshot is not None and not self.is_stale(snapshot):
                    return snapshot
            return await self._rebuild()
        finally:
            self._running = False
            self._idle.set()

    async def wait_idle(self) -> None:
        await self._idle.wait()

    async def _fetch_season(self, season: int) -> list[TableRow] | None:
        attempts = self.settings.ranking_retry_attempts
        for attempt in range(1, attempts + 1):
            try:
                data = await self.data_service.fetch_standings(season, bypass_cache=True)
                return parse_standings(data).table("TOTAL")
            except Malformed as exc:
                log.warning("Season %s returned a malformed payload, skipping: %s", season, exc)
                return None
            except UpstreamError as exc:
                delay = self.settings.ranking_backoff_seconds * attempt
                log.warning(
                    "Season %s attempt %d/%d failed (%s), waiting %.1fs",
                    season, attempt, attempts, exc, delay,
                )
                await self._sleep(delay)
        log.error("Giving up on season %s after %d attempts", season, attempts)
        return None

    async def _rebuild(self) -> RankingSnapshot:
        totals: dict[str, ClubAggregate] = {}
        seasons = self.seasons()
        skipped: list[int] = []
        for season in seasons:
            log.info("Collecting season %s", season)
            rows = await self._fetch_season(season)
            if rows is None:
                skipped.append(season)
                continue
            if not rows:
                log.info("Season %s has no TOTAL table yet", season)
            fold_season(totals, season, rows)

        snapshot = RankingSnapshot(generated_at=self._clock(), ranking=build_ranking(totals))
        await self.store.save(snapshot)
        log.info(
            "Ranking rebuilt: %d clubs from %d/%d seasons",
            len(snapshot.ranking), len(seasons) - len(skipped), len(seasons),
        )
        if skipped:
            log.warning("Seasons missing from this ranking: %s", skipped)
        return snapshot

    # ── Background runs ──

    def schedule_refresh(self, force: bool = False) -> asyncio.Task | None:
        """Start a refresh as a background task; failures land in last_error."""
        if self._running:
            return None
        task = asyncio.create_task(self.refresh(force=force))
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return task

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.last_error = str(exc)
            log.error("Background ranking refresh failed", exc_info=exc)
        else:
            self.last_error = None

    async def close(self) -> None:
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
