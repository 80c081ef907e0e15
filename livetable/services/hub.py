"""Owns the cache, query layer, ranking job and broadcaster; the boundary talks only to this."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from livetable.api.models import RankingSnapshot
from livetable.config import Settings
from livetable.services.broadcaster import LiveBroadcaster, Sink
from livetable.services.data_service import DataService
from livetable.services.ranking import RankingAggregator
from livetable.services.snapshot_store import PersistenceError, SnapshotStore

log = logging.getLogger(__name__)


class Hub:
    """Process-wide state with an explicit teardown path."""

    def __init__(
        self,
        settings: Settings,
        data_service: DataService | None = None,
        store: SnapshotStore | None = None,
        ranking: RankingAggregator | None = None,
        broadcaster: LiveBroadcaster | None = None,
    ) -> None:
        self.settings = settings
        self.data_service = data_service or DataService(settings)
        self.store = store or SnapshotStore(settings.snapshot_path)
        self.ranking = ranking or RankingAggregator(settings, self.data_service, self.store)
        self.broadcaster = broadcaster or LiveBroadcaster(
            self.data_service.fetch_live_matches,
            interval=settings.live_poll_interval,
            push_timeout=settings.live_push_timeout,
        )

    async def close(self) -> None:
        self.broadcaster.close()
        await self.ranking.close()
        await self.data_service.close()

    # ── Queries ──

    async def query_standings(self, season: int | None = None) -> dict:
        return await self.data_service.fetch_standings(season)

    async def query_matches(
        self,
        season: int | None = None,
        matchday: int | None = None,
        status: str | None = None,
    ) -> dict:
        return await self.data_service.fetch_matches(season=season, matchday=matchday, status=status)

    async def query_live(self) -> dict:
        return await self.data_service.fetch_live_matches()

    async def query_season_table(self, season: int, table_type: str = "TOTAL") -> dict:
        return await self.data_service.fetch_season_table(season, table_type)

    # ── Ranking ──

    async def get_ranking_snapshot(self) -> RankingSnapshot:
        """Serve the persisted ranking; rebuild first if there is none.

        A stale snapshot is still served while a background refresh runs.
        """
        snapshot = await self.store.load()
        if snapshot is None:
            log.info("No usable ranking snapshot, rebuilding before responding")
            return await self._rebuild_now()
        if self.ranking.is_stale(snapshot):
            log.info("Ranking snapshot from %s is stale, refreshing in background", snapshot.generated_at)
            self.ranking.schedule_refresh()
        return snapshot

    async def force_ranking_refresh(self) -> RankingSnapshot:
        return await self._rebuild_now()

    async def _rebuild_now(self) -> RankingSnapshot:
        snapshot = await self.ranking.refresh(force=True)
        if snapshot is not None:
            return snapshot
        # Another run holds the in-flight guard; serve whatever it writes.
        await self.ranking.wait_idle()
        snapshot = await self.store.load()
        if snapshot is None:
            raise PersistenceError("No ranking snapshot available after refresh")
        return snapshot

    # ── Live ──

    async def subscribe_live(self, sink: Sink) -> int:
        return await self.broadcaster.subscribe(sink)

    def unsubscribe_live(self, handle: int) -> None:
        self.broadcaster.unsubscribe(handle)

    async def status(self) -> dict:
        snapshot = await self.store.load()
        quota = self.data_service.client.last_quota
        age_hours = None
        if snapshot is not None:
            generated_at = snapshot.generated_at
            if generated_at.tzinfo is None:
                generated_at = generated_at.replace(tzinfo=timezone.utc)
            age_hours = (datetime.now(timezone.utc) - generated_at).total_seconds() / 3600
        return {
            "cache_entries": len(self.data_service.cache),
            "live": {
                "state": self.broadcaster.state.value,
                "subscribers": self.broadcaster.subscriber_count,
                "has_payload": self.broadcaster.latest_payload is not None,
            },
            "ranking": {
                "generated_at": snapshot.generated_at.isoformat() if snapshot else None,
                "age_hours": round(age_hours, 2) if age_hours is not None else None,
                "refresh_in_progress": self.ranking.running,
                "last_error": self.ranking.last_error,
            },
            "quota": {
                "available_minute": quota.available_minute,
                "reset_seconds": quota.reset_seconds,
            },
        }
