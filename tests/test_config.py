"""Tests for Settings validation and environment loading."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from livetable.config import Settings, load_settings


def test_defaults_match_upstream_cadence():
    s = Settings()
    assert s.standings_ttl == 120
    assert s.matches_ttl == 120
    assert s.live_ttl == 30
    assert s.live_poll_interval == 20
    assert s.ranking_retry_attempts == 3
    assert s.ranking_backoff_seconds == 5.0
    assert s.ranking_max_age_hours == 24


def test_api_token_is_stripped():
    assert Settings(api_token="  abc \n").api_token == "abc"


@pytest.mark.parametrize(
    "field", ["live_ttl", "standings_ttl", "live_poll_interval", "live_push_timeout", "ranking_retry_attempts"]
)
def test_non_positive_values_rejected(field):
    with pytest.raises(ValidationError):
        Settings(**{field: 0})


def test_future_start_year_rejected():
    with pytest.raises(ValidationError):
        Settings(ranking_start_year=9999)


def test_unknown_log_format_rejected():
    with pytest.raises(ValidationError):
        Settings(log_format="xml")


def test_load_settings_reads_environment(monkeypatch):
    monkeypatch.setenv("FD_API_TOKEN", "from-env")
    monkeypatch.setenv("PORT", "8123")
    s = load_settings()
    assert s.api_token == "from-env"
    assert s.port == 8123
