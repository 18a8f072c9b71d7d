"""
DripAuth Replay Guard

Global set of consumed nonces. A nonce consumed by any successful drip, under
any module, can never authorize another drip. Entries are never expired.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

from .codec import nonce_to_hex
from .errors import NonceAlreadyUsedError


class NonceStore(ABC):
    """
    Abstract interface for the consumed-nonce set.

    Implementations must be:
    - Permanent (no expiry, no eviction)
    - Consistent (add is an atomic set-if-absent)
    """

    @abstractmethod
    def add(self, nonce: int, consumed_at: float) -> bool:
        """
        Record a nonce as consumed.

        Returns:
            True if the nonce was newly recorded
            False if it was already present
        """

    @abstractmethod
    def contains(self, nonce: int) -> bool:
        pass

    @abstractmethod
    def consumed_at(self, nonce: int) -> Optional[float]:
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass


class InMemoryNonceStore(NonceStore):
    """
    In-memory nonce store.

    Not persistent across restarts; a deployment that restarts needs a
    durable store behind the same interface.
    """

    def __init__(self):
        self._used: Dict[int, float] = {}
        self._lock = threading.Lock()

    def add(self, nonce: int, consumed_at: float) -> bool:
        with self._lock:
            if nonce in self._used:
                return False
            self._used[nonce] = consumed_at
            return True

    def contains(self, nonce: int) -> bool:
        with self._lock:
            return nonce in self._used

    def consumed_at(self, nonce: int) -> Optional[float]:
        with self._lock:
            return self._used.get(nonce)

    def __len__(self) -> int:
        with self._lock:
            return len(self._used)


class ReplayGuard:
    """Check and consume single-use nonces."""

    def __init__(self, store: Optional[NonceStore] = None):
        self.store = store if store is not None else InMemoryNonceStore()

    def is_consumed(self, nonce: int) -> bool:
        return self.store.contains(nonce)

    def check(self, nonce: int) -> None:
        """Raise if ``nonce`` has already been consumed."""
        if self.store.contains(nonce):
            raise NonceAlreadyUsedError(f"nonce {nonce_to_hex(nonce)} already used")

    def consume(self, nonce: int, now: float) -> None:
        """Mark ``nonce`` consumed. Raises if another request got there first."""
        if not self.store.add(nonce, now):
            raise NonceAlreadyUsedError(f"nonce {nonce_to_hex(nonce)} already used")
