# intake/services/change_feed.py
"""
In-process change notifications for live views.

Subscribers get "something changed, re-fetch" signals: table, row id and
operation, never the row itself. Publishing is safe from worker threads:
delivery hops onto the subscriber's event loop. A full queue already holds a
pending re-fetch signal, so further signals are coalesced.
"""

import asyncio
import threading
from dataclasses import dataclass, field
from typing import Optional

from intake.utils.logger import get_logger

logger = get_logger(__name__)

QUEUE_SIZE = 100


@dataclass
class ChangeSignal:
    table: str
    row_id: str
    operation: str                 # insert | update | delete
    scope: dict = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {"table": self.table, "row_id": self.row_id, "operation": self.operation,
                "scope": {k: v for k, v in self.scope.items() if v is not None}}


class Subscription:
    def __init__(self, feed: "ChangeFeed", table: str, filters: dict):
        self.feed = feed
        self.table = table
        self.filters = filters
        self.loop = asyncio.get_running_loop()
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=QUEUE_SIZE)

    def matches(self, signal: ChangeSignal) -> bool:
        if signal.table != self.table:
            return False
        return all(str(signal.scope.get(k)) == str(v) for k, v in self.filters.items())

    def _put(self, signal: ChangeSignal):
        try:
            self.queue.put_nowait(signal)
        except asyncio.QueueFull:
            pass

    def deliver(self, signal: ChangeSignal) -> bool:
        """Returns False if the subscriber's loop is gone."""
        if self.loop.is_closed():
            return False
        self.loop.call_soon_threadsafe(self._put, signal)
        return True

    async def get(self, timeout: Optional[float] = None) -> Optional[ChangeSignal]:
        try:
            return await asyncio.wait_for(self.queue.get(), timeout)
        except asyncio.TimeoutError:
            return None

    def close(self):
        self.feed.unsubscribe(self)


class ChangeFeed:
    def __init__(self):
        self._subscriptions: list[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, table: str, **filters) -> Subscription:
        sub = Subscription(self, table, filters)
        with self._lock:
            self._subscriptions.append(sub)
        logger.debug(f"[FEED] subscribed to {table} {filters}")
        return sub

    def unsubscribe(self, sub: Subscription):
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

    def publish(self, signal: ChangeSignal) -> int:
        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(signal)]
        delivered = 0
        for sub in targets:
            if sub.deliver(signal):
                delivered += 1
            else:
                self.unsubscribe(sub)
        return delivered

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)


change_feed = ChangeFeed()
