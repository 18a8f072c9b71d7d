"""
DripAuth Cooldown Tracker

Minimum elapsed time between successful drips of the same identifier under
the same module. The key is (module_id, identifier); the recipient address
plays no part, so one identifier cannot dodge its cooldown by switching
recipients.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

from .errors import CooldownNotElapsedError

CooldownKey = Tuple[str, bytes]


class CooldownStore(ABC):
    """Abstract interface for last-drip timestamps."""

    @abstractmethod
    def get(self, key: CooldownKey) -> Optional[float]:
        pass

    @abstractmethod
    def set(self, key: CooldownKey, timestamp: float) -> None:
        pass


class InMemoryCooldownStore(CooldownStore):
    """In-memory cooldown store (not persistent across restarts)."""

    def __init__(self):
        self._last: Dict[CooldownKey, float] = {}
        self._lock = threading.Lock()

    def get(self, key: CooldownKey) -> Optional[float]:
        with self._lock:
            return self._last.get(key)

    def set(self, key: CooldownKey, timestamp: float) -> None:
        with self._lock:
            self._last[key] = timestamp

    def __len__(self) -> int:
        with self._lock:
            return len(self._last)


class CooldownTracker:
    """Enforce per-module, per-identifier cooldowns."""

    def __init__(self, store: Optional[CooldownStore] = None):
        self.store = store if store is not None else InMemoryCooldownStore()

    def last_drip(self, module_id: str, identifier: bytes) -> Optional[float]:
        return self.store.get((module_id, identifier))

    def next_allowed(self, module_id: str, identifier: bytes, cooldown_seconds: int) -> Optional[float]:
        """Earliest time the identifier may drip again, None if it never has."""
        last = self.last_drip(module_id, identifier)
        if last is None:
            return None
        return last + cooldown_seconds

    def check(self, module_id: str, identifier: bytes, cooldown_seconds: int, now: float) -> None:
        """
        Raise if the cooldown has not elapsed.

        A drip exactly ``cooldown_seconds`` after the last one is allowed.
        """
        last = self.last_drip(module_id, identifier)
        if last is None:
            return
        elapsed = now - last
        if elapsed < cooldown_seconds:
            raise CooldownNotElapsedError(retry_after=cooldown_seconds - elapsed)

    def record(self, module_id: str, identifier: bytes, now: float) -> None:
        self.store.set((module_id, identifier), now)
