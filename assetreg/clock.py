# assetreg/clock.py
"""
Logical clock collaborator.

The registry never reads the time itself: callers pass the registration
timestamp in. LogicalClock is a convenience for callers that need one,
producing integer timestamps that never go backwards.
"""

import threading
import time
from typing import Callable, Optional


class LogicalClock:
    """
    Monotonic, non-decreasing logical timestamps.

    With a source (e.g. time.time) the clock follows it but never returns a
    value lower than one already handed out. Without a source it is a plain
    counter.
    """

    def __init__(self, floor: int = 0, source: Optional[Callable[[], float]] = None):
        self._last = int(floor)
        self._source = source
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            if self._source is None:
                self._last += 1
            else:
                self._last = max(self._last, int(self._source()))
            return self._last

    @classmethod
    def wall(cls, floor: int = 0) -> "LogicalClock":
        """Clock following wall-clock seconds, starting no lower than floor."""
        return cls(floor=floor, source=time.time)
