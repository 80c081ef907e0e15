"""Fan-out of the in-play query to long-lived subscribers."""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

log = logging.getLogger(__name__)

Sink = Callable[[dict], Awaitable[None]]


class BroadcastState(Enum):
    IDLE = "idle"  # No subscribers, no timer
    ACTIVE = "active"  # At least one subscriber, timer running


@dataclass
class LiveSubscriber:
    id: int
    sink: Sink


class LiveBroadcaster:
    """Polls `fetch` every `interval` seconds while anyone is subscribed.

    Every successful poll replaces the retained payload and is pushed to
    each subscriber in registration order. The retained payload survives
    the registry emptying, so a later subscriber still gets something
    before the next poll lands.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[Any]],
        interval: float = 20,
        push_timeout: float = 5.0,
    ) -> None:
        self._fetch = fetch
        self._interval = interval
        self._push_timeout = push_timeout
        self._subscribers: dict[int, LiveSubscriber] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()
        self._timer: asyncio.Task | None = None
        self._latest: dict | None = None

    @property
    def state(self) -> BroadcastState:
        return BroadcastState.ACTIVE if self._timer is not None else BroadcastState.IDLE

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def latest_payload(self) -> dict | None:
        return self._latest

    async def subscribe(self, sink: Sink) -> int:
        """Register a sink; the first subscriber triggers an immediate poll and starts the timer.

        If the caller is cancelled before this returns, the registration is
        rolled back, since the caller never learns the id to unsubscribe with.
        """
        subscriber = LiveSubscriber(id=next(self._ids), sink=sink)
        try:
            if await self._register(subscriber):
                await self.poll_once()
        except asyncio.CancelledError:
            self.unsubscribe(subscriber.id)
            raise
        return subscriber.id

    async def _register(self, subscriber: LiveSubscriber) -> bool:
        async with self._lock:
            self._subscribers[subscriber.id] = subscriber
            if self._latest is not None:
                await self._push(subscriber, self._latest)
            if self._timer is not None:
                return False
            self._timer = asyncio.create_task(self._poll_forever())
            log.info("Live polling started (every %ss)", self._interval)
            return True

    def unsubscribe(self, subscriber_id: int) -> None:
        """Drop a subscriber; stop the timer when none remain.

        Never suspends, so it is safe to call from a cancelled transport task.
        """
        if self._subscribers.pop(subscriber_id, None) is None:
            return
        if not self._subscribers and self._timer is not None:
            self._timer.cancel()
            self._timer = None
            log.info("Live polling stopped, no subscribers left")

    async def poll_once(self) -> None:
        """One tick: fetch, retain and broadcast. Errors are logged and skipped."""
        try:
            payload = await self._fetch()
        except Exception as exc:
            log.warning("Live poll failed, keeping last payload: %s", exc)
            return
        async with self._lock:
            self._latest = payload
            for subscriber in list(self._subscribers.values()):
                await self._push(subscriber, payload)

    async def _push(self, subscriber: LiveSubscriber, payload: dict) -> None:
        # Runs under the lock, so one stuck sink must not stall the rest.
        try:
            await asyncio.wait_for(subscriber.sink(payload), self._push_timeout)
        except asyncio.TimeoutError:
            log.warning("Push to live subscriber %s timed out after %ss", subscriber.id, self._push_timeout)
        except Exception:
            log.warning("Push to live subscriber %s failed", subscriber.id, exc_info=True)

    async def _poll_forever(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.poll_once()

    def close(self) -> None:
        self._subscribers.clear()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
