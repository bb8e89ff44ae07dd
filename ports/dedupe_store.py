"""
Port interface for event idempotency records.

Implementations: DynamoDedupeStoreAdapter (adapters/)
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class DedupeStorePort(Protocol):
    """Atomic insert-if-absent store keyed by event id."""

    def try_insert(self, event_id: str) -> bool:
        """Record an event id if it has not been seen before.

        Args:
            event_id: Unique id of the inbound event.

        Returns:
            True if this call inserted the id, False if it already existed.

        Raises:
            ExternalServiceError: If the store is unreachable.
        """
        ...
