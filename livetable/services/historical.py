"""Read-only lookup of pre-baked season tables shipped as a local JSON file."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

log = logging.getLogger(__name__)


class HistoricalStandings:
    """Maps season-year strings to table arrays, loaded once on first use."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._seasons: dict[str, list] | None = None

    def _read(self) -> dict[str, list]:
        if not self._path.exists():
            log.info("No historical standings file at %s", self._path)
            return {}
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            log.exception("Failed to read historical standings from %s", self._path)
            return {}
        if not isinstance(data, dict):
            log.warning("Historical standings file %s is not an object, ignoring", self._path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, list)}

    async def load(self) -> dict[str, list]:
        """Read the file off the event loop, once."""
        if self._seasons is None:
            self._seasons = await asyncio.to_thread(self._read)
        return self._seasons

    async def lookup(self, season: int | str) -> list | None:
        seasons = await self.load()
        return seasons.get(str(season))
