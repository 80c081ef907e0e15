"""Shared test fixtures."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from livetable.config import Settings


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        api_token="test_token",
        ranking_start_year=2015,
        snapshot_path=tmp_path / "ranking_cache.json",
        historical_path=tmp_path / "ranking_historico.json",
    )


@pytest.fixture
def clock(monkeypatch):
    """Controllable monotonic clock for the TTL cache only."""
    fake = SimpleNamespace(now=1000.0)
    fake.monotonic = lambda: fake.now
    monkeypatch.setattr("livetable.services.cache.time", fake)
    return fake


def make_row(
    name: str,
    position: int,
    points: int,
    *,
    played: int = 38,
    won: int = 0,
    draw: int = 0,
    lost: int = 0,
    goals_for: int = 0,
    goals_against: int = 0,
    crest: str = "",
) -> dict:
    return {
        "position": position,
        "team": {"id": position, "name": name, "shortName": name, "crest": crest},
        "playedGames": played,
        "won": won,
        "draw": draw,
        "lost": lost,
        "points": points,
        "goalsFor": goals_for,
        "goalsAgainst": goals_against,
        "goalDifference": goals_for - goals_against,
    }


def standings_payload(total: list[dict], home: list[dict] | None = None) -> dict:
    return {
        "competition": {"code": "BSA"},
        "standings": [
            {"stage": "REGULAR_SEASON", "type": "TOTAL", "group": None, "table": total},
            {"stage": "REGULAR_SEASON", "type": "HOME", "group": None, "table": home or []},
            {"stage": "REGULAR_SEASON", "type": "AWAY", "group": None, "table": []},
        ],
    }


def match(match_id: int, status: str, home: int = 0, away: int = 0) -> dict:
    return {
        "id": match_id,
        "status": status,
        "homeTeam": {"name": f"Home {match_id}"},
        "awayTeam": {"name": f"Away {match_id}"},
        "score": {"fullTime": {"home": home, "away": away}},
    }


@pytest.fixture
def season_rows() -> dict[int, list[dict]]:
    """Four seasons of a tiny three-club league."""
    return {
        2015: [
            make_row("Palmeiras", 1, 80, won=25, draw=5, lost=8, goals_for=60, goals_against=30),
            make_row("Flamengo", 2, 70, won=21, draw=7, lost=10, goals_for=55, goals_against=35),
            make_row("Santos", 3, 50, won=13, draw=11, lost=14, goals_for=40, goals_against=45),
        ],
        2016: [
            make_row("Flamengo", 1, 75, won=22, draw=9, lost=7, goals_for=58, goals_against=28),
            make_row("Palmeiras", 2, 72, won=21, draw=9, lost=8, goals_for=50, goals_against=30),
            make_row("Santos", 3, 55, won=15, draw=10, lost=13, goals_for=42, goals_against=40),
        ],
        2017: [
            make_row("Santos", 1, 78, won=24, draw=6, lost=8, goals_for=61, goals_against=29),
            make_row("Palmeiras", 2, 66, won=19, draw=9, lost=10, goals_for=49, goals_against=37),
            make_row("Flamengo", 3, 60, won=17, draw=9, lost=12, goals_for=45, goals_against=40),
        ],
        2018: [
            make_row("Palmeiras", 1, 82, won=25, draw=7, lost=6, goals_for=64, goals_against=26),
            make_row("Santos", 2, 64, won=18, draw=10, lost=10, goals_for=47, goals_against=38),
            make_row("Flamengo", 3, 63, won=18, draw=9, lost=11, goals_for=50, goals_against=41),
        ],
    }
