"""Tests for the Hub facade: ranking read path and live subscription wiring."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from conftest import match, standings_payload
from livetable.api.models import RankingSnapshot
from livetable.services.data_service import DataService
from livetable.services.hub import Hub
from livetable.services.ranking import RankingAggregator
from livetable.services.snapshot_store import SnapshotStore

NOW = datetime(2018, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_client(season_rows):
    client = AsyncMock()
    client.last_quota.available_minute = 9
    client.last_quota.reset_seconds = 30

    async def get(path, params=None):
        if path.endswith("/standings"):
            return standings_payload(season_rows[params["season"]])
        return {"matches": [match(1, "IN_PLAY", 2, 1), match(2, "FINISHED")]}

    client.get.side_effect = get
    return client


@pytest.fixture
async def hub(settings, mock_client):
    async def no_sleep(delay: float) -> None:
        return None

    data_service = DataService(settings, client=mock_client)
    store = SnapshotStore(settings.snapshot_path)
    ranking = RankingAggregator(settings, data_service, store, sleep=no_sleep, clock=lambda: NOW)
    hub = Hub(settings, data_service=data_service, store=store, ranking=ranking)
    yield hub
    await hub.close()


def _standings_calls(mock_client) -> int:
    return sum(1 for call in mock_client.get.await_args_list if call.args[0].endswith("/standings"))


async def test_missing_snapshot_is_built_before_responding(hub, mock_client, settings):
    snapshot = await hub.get_ranking_snapshot()

    assert snapshot.generated_at == NOW
    assert snapshot.ranking[0].name == "Palmeiras"
    assert _standings_calls(mock_client) == 4
    assert settings.snapshot_path.exists()


async def test_repeated_reads_within_a_day_make_no_calls(hub, mock_client):
    await hub.get_ranking_snapshot()
    await hub.get_ranking_snapshot()
    await hub.get_ranking_snapshot()
    assert _standings_calls(mock_client) == 4


async def test_unparseable_snapshot_forces_rebuild(hub, mock_client, settings):
    settings.snapshot_path.write_text("garbage", encoding="utf-8")
    snapshot = await hub.get_ranking_snapshot()
    assert snapshot.generated_at == NOW
    assert _standings_calls(mock_client) == 4


async def test_stale_snapshot_served_while_refreshing_in_background(hub, mock_client):
    stale = RankingSnapshot(generated_at=NOW - timedelta(hours=30), ranking=[])
    await hub.store.save(stale)

    served = await hub.get_ranking_snapshot()
    assert served.generated_at == stale.generated_at

    await asyncio.gather(*hub.ranking._background)
    refreshed = await hub.store.load()
    assert refreshed.generated_at == NOW
    assert _standings_calls(mock_client) == 4


async def test_force_refresh_always_refetches(hub, mock_client):
    await hub.force_ranking_refresh()
    await hub.force_ranking_refresh()
    assert _standings_calls(mock_client) == 8


async def test_concurrent_force_refresh_waits_for_inflight_run(hub, mock_client):
    first, second = await asyncio.gather(hub.force_ranking_refresh(), hub.force_ranking_refresh())
    assert first.generated_at == second.generated_at == NOW
    assert _standings_calls(mock_client) == 4


async def test_live_subscription_receives_in_play_matches(hub):
    received = []

    async def sink(payload):
        received.append(payload)

    handle = await hub.subscribe_live(sink)
    assert [m["id"] for m in received[0]["matches"]] == [1]

    hub.unsubscribe_live(handle)
    assert hub.broadcaster.subscriber_count == 0


async def test_status_reports_components(hub):
    await hub.get_ranking_snapshot()
    status = await hub.status()

    assert status["live"] == {"state": "idle", "subscribers": 0, "has_payload": False}
    assert status["ranking"]["generated_at"] == NOW.isoformat()
    assert status["ranking"]["refresh_in_progress"] is False
    assert status["quota"] == {"available_minute": 9, "reset_seconds": 30}
