# intake/services/inflight.py
"""
At-most-one-in-flight guard for mutations on the same entity.
A second submit while the first is pending is rejected, never queued.
"""

import threading
from contextlib import contextmanager

from intake.exceptions import MutationInProgressError
from intake.utils.logger import get_logger

logger = get_logger(__name__)


class InFlightRegistry:
    def __init__(self):
        self._pending: set[tuple[str, str]] = set()
        self._lock = threading.Lock()

    def is_pending(self, entity: str, entity_id: str) -> bool:
        with self._lock:
            return (entity, str(entity_id)) in self._pending

    @contextmanager
    def claim(self, entity: str, entity_id: str):
        key = (entity, str(entity_id))
        with self._lock:
            if key in self._pending:
                logger.warning(f"[INFLIGHT] Rejected duplicate submit for {entity}/{entity_id}")
                raise MutationInProgressError()
            self._pending.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._pending.discard(key)


inflight = InFlightRegistry()
