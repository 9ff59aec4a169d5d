# intake/services/query_cache.py
"""
Read-through cache for list/detail queries, and the single table that says
which cached queries a mutation makes stale.

Every service mutation calls notify_mutation() after commit; nothing else
invalidates keys by hand.

The cache lives in one process. Writes made by another worker process or by
the setup scripts never reach it, so entries also expire after
QUERY_CACHE_TTL_SECONDS; run with QUERY_CACHE_ENABLED=false when serving
from more than one worker.
"""

import itertools
import threading
import time
from typing import Any, Callable, Hashable, Optional

from intake.config import settings
from intake.services.change_feed import ChangeSignal, change_feed
from intake.utils.logger import get_logger

logger = get_logger(__name__)

_MISSING = object()


class QueryCache:
    """
    Keys are tuples; invalidating a prefix drops every key that starts with it.

    A load that overlaps an invalidation of any prefix of its key is returned
    to its caller but not stored: the row it read may predate the write.
    """

    def __init__(self, enabled: bool = True, ttl_seconds: Optional[float] = None):
        self.enabled = enabled
        self.ttl_seconds = ttl_seconds
        self._data: dict[tuple, tuple[Any, Optional[float]]] = {}
        self._invalidated_at: dict[tuple, int] = {}     # prefix -> generation
        self._generation = itertools.count(1)
        self._current = 0
        self._lock = threading.Lock()

    def _fresh(self, entry) -> bool:
        _, expires_at = entry
        return expires_at is None or time.monotonic() < expires_at

    def _invalidated_since(self, key: tuple, generation: int) -> bool:
        return any(self._invalidated_at.get(key[:i], 0) > generation for i in range(1, len(key) + 1))

    def get_or_load(self, key: tuple, loader: Callable[[], Any]) -> Any:
        if not self.enabled:
            return loader()
        with self._lock:
            entry = self._data.get(key, _MISSING)
            if entry is not _MISSING and self._fresh(entry):
                return entry[0]
            started = self._current

        value = loader()

        with self._lock:
            if self._invalidated_since(key, started):
                logger.debug(f"[CACHE] {key} invalidated during load; not stored")
                return value
            expires_at = time.monotonic() + self.ttl_seconds if self.ttl_seconds else None
            self._data[key] = (value, expires_at)
        return value

    def invalidate(self, prefix: tuple) -> int:
        with self._lock:
            self._current = next(self._generation)
            self._invalidated_at[prefix] = self._current
            stale = [k for k in self._data if k[:len(prefix)] == prefix]
            for k in stale:
                del self._data[k]
        return len(stale)

    def keys(self) -> list[tuple]:
        with self._lock:
            return list(self._data)

    def clear(self):
        with self._lock:
            self._data.clear()
            self._invalidated_at.clear()


query_cache = QueryCache(settings.QUERY_CACHE_ENABLED, settings.QUERY_CACHE_TTL_SECONDS)


def _vehicle_keys(row_id: Hashable, scope: dict) -> list[tuple]:
    return [("vehicles",), ("vehicle", row_id), ("vehicle-plate",), ("dashboard",)]


# table -> query-key prefixes made stale by a write to one of its rows
INVALIDATION_MAP: dict[str, Callable[[Hashable, dict], list[tuple]]] = {
    # vehicle reads embed their owner client
    "clients": lambda row_id, scope: [("clients",), ("client", row_id), ("dashboard",),
                                      ("vehicles",), ("vehicle",), ("vehicle-plate",)],
    "vehicles": _vehicle_keys,
    "vehicle_photos": lambda row_id, scope: [("vehicle-photos", scope.get("vehicle_id"))],
    "profiles": lambda row_id, scope: [("users",), ("profile", row_id)],
    "user_roles": lambda row_id, scope: [("users",), ("profile", scope.get("user_id"))],
}


def stale_keys(table: str, row_id: Hashable, **scope) -> list[tuple]:
    return INVALIDATION_MAP[table](row_id, scope)


def invalidate_for(table: str, row_id: Hashable, **scope) -> list[tuple]:
    keys = stale_keys(table, row_id, **scope)
    for prefix in keys:
        query_cache.invalidate(prefix)
    return keys


def notify_mutation(table: str, row_id: Hashable, operation: str, **scope):
    """Call after a successful commit: drop stale queries, then tell live subscribers."""
    keys = invalidate_for(table, row_id, **scope)
    logger.debug(f"[CACHE] {operation} {table}/{row_id} invalidated {keys}")
    change_feed.publish(ChangeSignal(table=table, row_id=str(row_id), operation=operation, scope=scope))
