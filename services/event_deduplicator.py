"""
Event idempotency.

The persistent store does an atomic insert-if-absent. When it is unreachable
a bounded in-memory window takes over (oldest evicted first, entries expire
after the TTL), favouring availability over exactly-once delivery.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Optional

from ports.clock import ClockPort
from ports.dedupe_store import DedupeStorePort
from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import AppException
from shared_utils.logging_utils import ContextualLogger


logger = ContextualLogger(scope=LogScope.DEDUPE)


class EventDeduplicator:
    def __init__(
        self,
        *,
        clock: ClockPort,
        store: Optional[DedupeStorePort] = None,
        capacity: int = Defaults.DEDUPE_CAPACITY,
        ttl_seconds: float = Defaults.DEDUPE_TTL_SECONDS,
    ) -> None:
        self._clock = clock
        self._store = store
        self._capacity = capacity
        self._ttl = ttl_seconds
        self._seen: "OrderedDict[str, float]" = OrderedDict()

    def is_duplicate(self, event_id: str) -> bool:
        """Claim *event_id*; True if it was already claimed."""
        if self._store is not None:
            try:
                inserted = self._store.try_insert(event_id)
            except AppException as e:
                logger.warning("dedupe_store_unavailable", event_id=event_id, error=e.message)
            else:
                if not inserted:
                    logger.info("duplicate_event_skipped", event_id=event_id, source="store")
                return not inserted

        duplicate = not self._remember(event_id)
        if duplicate:
            logger.info("duplicate_event_skipped", event_id=event_id, source="memory")
        return duplicate

    def _remember(self, event_id: str) -> bool:
        now = self._clock.now()
        self._expire(now)

        if event_id in self._seen:
            return False

        self._seen[event_id] = now
        while len(self._seen) > self._capacity:
            self._seen.popitem(last=False)
        return True

    def _expire(self, now: float) -> None:
        while self._seen:
            oldest_id, seen_at = next(iter(self._seen.items()))
            if now - seen_at < self._ttl:
                break
            del self._seen[oldest_id]

    def __len__(self) -> int:
        return len(self._seen)
