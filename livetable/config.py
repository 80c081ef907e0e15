"""Load .env and settings.yaml, expose all configuration."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

log = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _load_env() -> None:
    env_path = PROJECT_ROOT / ".env"
    load_dotenv(env_path)


def _load_yaml() -> dict:
    settings_path = PROJECT_ROOT / "settings.yaml"
    if settings_path.exists():
        try:
            with open(settings_path) as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError:
            log.warning("Failed to parse settings.yaml, using defaults")
            return {}
    return {}


class Settings(BaseModel):
    api_token: str = ""

    @field_validator("api_token")
    @classmethod
    def strip_api_token(cls, v: str) -> str:
        return v.strip()

    base_url: str = "https://api.football-data.org/v4"
    competition: str = "BSA"
    request_timeout: float = 15.0

    # Cache lifetimes in seconds
    standings_ttl: int = 120
    matches_ttl: int = 120
    live_ttl: int = 30
    historical_ttl: int = 3600
    season_table_ttl: int = 300

    ranking_start_year: int = 2015
    ranking_max_age_hours: float = 24
    ranking_retry_attempts: int = 3
    ranking_backoff_seconds: float = 5.0

    live_poll_interval: float = 20
    live_push_timeout: float = 5.0

    snapshot_path: Path = PROJECT_ROOT / "ranking_cache.json"
    historical_path: Path = PROJECT_ROOT / "data" / "ranking_historico.json"

    host: str = "0.0.0.0"
    port: int = 4000
    log_level: str = "INFO"
    log_format: str = "text"
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    @field_validator(
        "standings_ttl", "matches_ttl", "live_ttl", "historical_ttl",
        "season_table_ttl", "live_poll_interval", "live_push_timeout", "ranking_max_age_hours",
        "ranking_retry_attempts",
    )
    @classmethod
    def must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("ranking_backoff_seconds")
    @classmethod
    def backoff_not_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @field_validator("ranking_start_year")
    @classmethod
    def start_year_not_in_future(cls, v: int) -> int:
        if v > datetime.now().year:
            raise ValueError("start year is in the future")
        return v

    @field_validator("log_format")
    @classmethod
    def known_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("text", "json"):
            raise ValueError("log_format must be 'text' or 'json'")
        return v


def load_settings() -> Settings:
    _load_env()
    raw = _load_yaml()
    raw["api_token"] = os.getenv("FD_API_TOKEN", "")
    if os.getenv("PORT"):
        raw["port"] = int(os.environ["PORT"])
    if os.getenv("LOG_LEVEL"):
        raw["log_level"] = os.environ["LOG_LEVEL"]
    return Settings(**raw)
