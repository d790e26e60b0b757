"""WebSocket fan-out. Routes publish from worker threads; each socket drains its own asyncio queue."""

from __future__ import annotations

import asyncio
from threading import Lock
from typing import Any

import structlog
from pydantic import BaseModel

log = structlog.get_logger(__name__)

QUEUE_SIZE = 1000


class Subscription:
    """One connected client. An empty market filter means "every market"."""

    def __init__(self, loop: asyncio.AbstractEventLoop, maxsize: int = QUEUE_SIZE) -> None:
        self.loop = loop
        self.queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=maxsize)
        self.markets: set[str] = set()
        self.dropped = 0

    def wants(self, payload: dict[str, Any]) -> bool:
        market_id = payload.get("market_id")
        return not self.markets or market_id is None or market_id in self.markets

    def offer(self, payload: dict[str, Any]) -> None:
        """Enqueue on the subscriber's loop thread. Drops the message if the client is too slow."""
        try:
            self.queue.put_nowait(payload)
        except asyncio.QueueFull:
            self.dropped += 1
            log.warning("ws_queue_full", dropped=self.dropped)


class Broadcaster:
    def __init__(self) -> None:
        self._lock = Lock()
        self._subs: set[Subscription] = set()

    def subscribe(self, loop: asyncio.AbstractEventLoop | None = None) -> Subscription:
        sub = Subscription(loop or asyncio.get_running_loop())
        with self._lock:
            self._subs.add(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            self._subs.discard(sub)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subs)

    def publish(self, message: BaseModel) -> int:
        """Send to every interested subscriber. Safe to call from any thread. Returns receiver count."""
        payload = message.model_dump(mode="json")
        with self._lock:
            targets = [s for s in self._subs if s.wants(payload)]
        delivered = 0
        for sub in targets:
            try:
                sub.loop.call_soon_threadsafe(sub.offer, payload)
            except RuntimeError:
                # Loop already closed; the socket handler will unsubscribe
                continue
            delivered += 1
        if delivered:
            log.debug("ws_broadcast", type=payload.get("type"), receivers=delivered)
        return delivered
