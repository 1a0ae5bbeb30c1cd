"""Clocks used for freshness calculations."""

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Source of wall time in Unix seconds."""

    def now(self) -> float:
        """Return the current time."""
        ...


class SystemClock:
    """Clock backed by ``time.time()``.

    Wall time rather than monotonic time, since entries may be shared
    between processes through a Redis store.
    """

    def now(self) -> float:
        return time.time()


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("cannot move a clock backwards")
        self._now += seconds

    def set(self, timestamp: float) -> None:
        self._now = timestamp
