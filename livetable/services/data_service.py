"""Query layer: cache keys, cache lookups and per-operation TTLs over the upstream API."""

from __future__ import annotations

import logging

from livetable.api.client import FootballDataClient
from livetable.api.endpoints import IN_PLAY, get_matches, get_standings, only_in_play, parse_standings
from livetable.config import Settings
from livetable.services.cache import TTLCache, make_key
from livetable.services.historical import HistoricalStandings

log = logging.getLogger(__name__)


class DataService:
    """Serves matches and standings from the TTL cache, fetching on miss.

    Upstream errors propagate untouched and failures are never cached.
    """

    def __init__(
        self,
        settings: Settings,
        client: FootballDataClient | None = None,
        cache: TTLCache | None = None,
        historical: HistoricalStandings | None = None,
    ) -> None:
        self.settings = settings
        self.client = client or FootballDataClient(
            settings.api_token,
            base_url=settings.base_url,
            timeout=settings.request_timeout,
        )
        self.cache = cache or TTLCache()
        self.historical = historical or HistoricalStandings(settings.historical_path)

    async def close(self) -> None:
        await self.client.close()
        self.cache.clear()

    async def fetch_standings(self, season: int | None = None, *, bypass_cache: bool = False) -> dict:
        """Fetch the standings payload. Cached for standings_ttl unless bypassed."""
        if bypass_cache:
            return await get_standings(self.client, self.settings.competition, season=season)

        cache_key = make_key("standings", {"season": season})
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        data = await get_standings(self.client, self.settings.competition, season=season)
        self.cache.set(cache_key, data, ttl=self.settings.standings_ttl)
        return data

    async def fetch_matches(
        self,
        season: int | None = None,
        matchday: int | None = None,
        status: str | None = None,
    ) -> dict:
        """Fetch matches. In-play queries get the short live TTL."""
        if status is not None:
            status = status.upper()
        cache_key = make_key("matches", {"season": season, "matchday": matchday, "status": status})
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        data = await get_matches(
            self.client,
            self.settings.competition,
            season=season,
            matchday=matchday,
            status=status,
        )
        ttl = self.settings.live_ttl if status == IN_PLAY else self.settings.matches_ttl
        self.cache.set(cache_key, data, ttl=ttl)
        return data

    async def fetch_live_matches(self) -> dict:
        """Matches currently in play, as {"matches": [...]}."""
        cache_key = make_key("live")
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        data = await get_matches(self.client, self.settings.competition, status=IN_PLAY)
        live = only_in_play(data)
        self.cache.set(cache_key, live, ttl=self.settings.live_ttl)
        return live

    async def fetch_season_table(self, season: int, table_type: str = "TOTAL") -> dict:
        """One season's table, served from the local historical file when present.

        A local hit never touches the upstream client. An upstream season
        without a table of the requested type yields an empty, uncached table.
        """
        table_type = table_type.upper()
        cache_key = make_key("season_table", {"season": season, "type": table_type})
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        local = await self.historical.lookup(season)
        if local is not None:
            log.info("Using local historical table for season %s", season)
            result = {"season": season, "type": table_type, "table": local}
            self.cache.set(cache_key, result, ttl=self.settings.historical_ttl)
            return result

        log.info("Fetching season %s (%s) table from upstream", season, table_type)
        data = await get_standings(self.client, self.settings.competition, season=season)
        rows = parse_standings(data).table(table_type)
        result = {
            "season": season,
            "type": table_type,
            "table": [row.model_dump() for row in rows],
        }
        if not rows:
            log.warning("No %s table available for season %s", table_type, season)
            return result

        self.cache.set(cache_key, result, ttl=self.settings.season_table_ttl)
        return result
