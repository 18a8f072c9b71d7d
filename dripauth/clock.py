"""
Time sources for cooldown comparisons.

The engine never trusts caller-supplied timestamps; it asks a Clock.
"""

import threading
import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Monotonically non-decreasing time source, in Unix seconds."""

    @abstractmethod
    def now(self) -> float:
        pass


class SystemClock(Clock):
    """
    Wall clock that never runs backwards.

    If the system time steps back (NTP correction), the last returned value
    is repeated until the wall clock catches up.
    """

    def __init__(self):
        self._last = 0.0
        self._lock = threading.Lock()

    def now(self) -> float:
        with self._lock:
            current = time.time()
            if current > self._last:
                self._last = current
            return self._last


class ManualClock(Clock):
    """Clock that only moves when told to (tests, simulations)."""

    def __init__(self, start: float = 0.0):
        self._now = float(start)
        self._lock = threading.Lock()

    def now(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> float:
        if seconds < 0:
            raise ValueError("ManualClock cannot move backwards")
        with self._lock:
            self._now += seconds
            return self._now

    def set(self, timestamp: float) -> None:
        with self._lock:
            if timestamp < self._now:
                raise ValueError("ManualClock cannot move backwards")
            self._now = float(timestamp)
