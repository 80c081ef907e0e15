"""Typed fetch functions for the football-data.org competition resources."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from livetable.api.client import FootballDataClient, Malformed
from livetable.api.models import StandingsResponse

log = logging.getLogger(__name__)

IN_PLAY = "IN_PLAY"


def _expect_list_field(data: object, field: str, path: str) -> dict:
    if not isinstance(data, dict) or not isinstance(data.get(field), list):
        raise Malformed(f"{path} response has no '{field}' list")
    return data


async def get_matches(
    client: FootballDataClient,
    competition: str,
    *,
    season: int | None = None,
    matchday: int | None = None,
    status: str | None = None,
) -> dict:
    """Fetch the competition's matches, optionally filtered upstream."""
    path = f"/competitions/{competition}/matches"
    params = {"season": season, "matchday": matchday, "status": status}
    data = await client.get(path, params=params)
    return _expect_list_field(data, "matches", path)


async def get_standings(
    client: FootballDataClient,
    competition: str,
    *,
    season: int | None = None,
) -> dict:
    """Fetch the competition's standings payload (TOTAL, HOME and AWAY tables)."""
    path = f"/competitions/{competition}/standings"
    data = await client.get(path, params={"season": season})
    return _expect_list_field(data, "standings", path)


def parse_standings(data: dict) -> StandingsResponse:
    """Validate a raw standings payload into typed table rows."""
    try:
        return StandingsResponse.model_validate(data)
    except ValidationError as exc:
        raise Malformed(f"standings payload did not validate: {exc.error_count()} errors") from exc


def only_in_play(data: dict) -> dict:
    """Keep only matches whose status is IN_PLAY."""
    return {"matches": [m for m in data.get("matches", []) if m.get("status") == IN_PLAY]}
