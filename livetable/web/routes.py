"""HTTP routes: cached queries, ranking snapshot and the live SSE stream.

- GET  /api/standings                      - current standings
- GET  /api/matches                        - matches, filterable by matchday/season/status
- GET  /api/live                           - matches in play
- GET  /api/matches/stream                 - server-sent events with live updates
- GET  /api/ranking                        - all-time ranking snapshot
- POST /api/ranking/refresh                - rebuild the ranking now
- GET  /api/standings/{season}/{type}      - one season's TOTAL/HOME/AWAY table
- GET  /api/status                         - cache, live and ranking state
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from livetable.api.endpoints import IN_PLAY
from livetable.services.hub import Hub

log = logging.getLogger(__name__)

router = APIRouter()
health_router = APIRouter()

# Payloads buffered per SSE client before the oldest are dropped.
STREAM_BUFFER = 8


def get_hub(request: Request) -> Hub:
    return request.app.state.hub


@health_router.get("/health")
def health() -> dict:
    return {"status": "healthy"}


@router.get("/standings")
async def standings(season: int | None = None, hub: Hub = Depends(get_hub)) -> dict:
    return await hub.query_standings(season)


@router.get("/matches")
async def matches(
    matchday: int | None = Query(default=None, ge=1),
    season: int | None = None,
    status: str | None = None,
    live: bool = False,
    hub: Hub = Depends(get_hub),
) -> dict:
    if live:
        status = IN_PLAY
    return await hub.query_matches(season=season, matchday=matchday, status=status)


@router.get("/live")
async def live_matches(hub: Hub = Depends(get_hub)) -> dict:
    return await hub.query_live()


def format_event(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def bounded_sink(queue: asyncio.Queue) -> Callable[[dict], Awaitable[None]]:
    """A sink that never blocks: when the queue is full the oldest payload is dropped."""

    async def push(payload: dict) -> None:
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(payload)

    return push


@router.get("/matches/stream")
async def stream_live(hub: Hub = Depends(get_hub)) -> StreamingResponse:
    queue: asyncio.Queue[dict] = asyncio.Queue(maxsize=STREAM_BUFFER)

    # Subscribing inside the generator ties the registration to its finally
    # block, even when the response is dropped before the body is read.
    async def events():
        handle = None
        try:
            handle = await hub.subscribe_live(bounded_sink(queue))
            log.info("Live stream subscriber %s connected", handle)
            while True:
                payload = await queue.get()
                yield format_event(payload)
        finally:
            if handle is not None:
                hub.unsubscribe_live(handle)
                log.info("Live stream subscriber %s disconnected", handle)

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/ranking")
async def ranking(hub: Hub = Depends(get_hub)) -> dict:
    snapshot = await hub.get_ranking_snapshot()
    return snapshot.model_dump(mode="json", by_alias=True)


@router.post("/ranking/refresh")
async def ranking_refresh(hub: Hub = Depends(get_hub)) -> dict:
    snapshot = await hub.force_ranking_refresh()
    return snapshot.model_dump(mode="json", by_alias=True)


@router.get("/standings/{season}/{table_type}")
async def season_table(
    season: int,
    table_type: Literal["total", "home", "away", "TOTAL", "HOME", "AWAY"],
    hub: Hub = Depends(get_hub),
) -> dict:
    return await hub.query_season_table(season, table_type)


@router.get("/status")
async def status(hub: Hub = Depends(get_hub)) -> dict:
    return await hub.status()
