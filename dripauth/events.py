"""
Drip notification events.

Exactly one event is emitted per successful drip. Off-system observers use
the feed for auditing.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .codec import nonce_to_hex


@dataclass(frozen=True)
class DripEvent:
    """A completed drip."""
    scheme_name: str
    identifier: bytes
    amount: int
    recipient: str
    module_id: str
    nonce: int
    timestamp: float
    transfer_reference: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scheme_name": self.scheme_name,
            "identifier": "0x" + self.identifier.hex(),
            "amount": self.amount,
            "recipient": self.recipient,
            "module_id": self.module_id,
            "nonce": "0x" + nonce_to_hex(self.nonce),
            "timestamp": datetime.fromtimestamp(self.timestamp, tz=timezone.utc)
                .isoformat().replace("+00:00", "Z"),
            "transfer_reference": self.transfer_reference,
        }


class EventSink(ABC):
    """Abstract interface for event consumers."""

    @abstractmethod
    def emit(self, event: DripEvent) -> None:
        pass


class InMemoryEventLog(EventSink):
    """
    In-memory event feed.

    Not persistent; bounded by ``max_events`` (oldest dropped first).
    """

    def __init__(self, max_events: int = 10000):
        self._events: List[DripEvent] = []
        self._lock = threading.Lock()
        self._max_events = max_events

    def emit(self, event: DripEvent) -> None:
        with self._lock:
            self._events.append(event)
            if len(self._events) > self._max_events:
                self._events = self._events[-self._max_events:]

    def query(
        self,
        module_id: Optional[str] = None,
        recipient: Optional[str] = None,
        identifier: Optional[bytes] = None,
        since: Optional[float] = None
    ) -> List[DripEvent]:
        with self._lock:
            events = self._events[:]

        if module_id:
            events = [e for e in events if e.module_id == module_id]
        if recipient:
            events = [e for e in events if e.recipient == recipient]
        if identifier is not None:
            events = [e for e in events if e.identifier == identifier]
        if since is not None:
            events = [e for e in events if e.timestamp >= since]

        return events

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
