"""JSON file persistence for the all-time ranking snapshot."""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from livetable.api.models import RankingSnapshot

log = logging.getLogger(__name__)


class PersistenceError(Exception):
    """The snapshot file could not be read or written."""


class SnapshotStore:
    """Reads and atomically rewrites the ranking snapshot document."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read(self) -> RankingSnapshot | None:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PersistenceError(f"Failed to read {self.path}: {exc}") from exc
        try:
            return RankingSnapshot.model_validate_json(raw)
        except ValidationError:
            log.warning("Ranking snapshot at %s is unparseable, ignoring it", self.path)
            return None

    def _write(self, snapshot: RankingSnapshot) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(snapshot.to_json())
                os.replace(tmp_path, self.path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise PersistenceError(f"Failed to write {self.path}: {exc}") from exc

    async def load(self) -> RankingSnapshot | None:
        """Return the last fully-written snapshot, or None if absent or unparseable."""
        return await asyncio.to_thread(self._read)

    async def save(self, snapshot: RankingSnapshot) -> None:
        await asyncio.to_thread(self._write, snapshot)
