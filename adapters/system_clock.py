"""Monotonic clock adapter implementing ClockPort."""

import time


class SystemClock:
    def now(self) -> float:
        return time.monotonic()
