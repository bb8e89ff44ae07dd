"""Port interface for monotonic time, injected into TTL caches."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ClockPort(Protocol):
    def now(self) -> float:
        """Return monotonic seconds."""
        ...
