"""
DripAuth Funds Transfer

The engine moves funds through a FundsTransfer collaborator. The real ledger
(a chain, a custodial wallet service) lives outside this package; it is
adapted by implementing ``FundsTransfer.transfer``.
"""

import secrets
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass
class TransferResult:
    """Outcome reported by the ledger."""
    success: bool
    amount: int = 0
    reference: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, amount: int, reference: Optional[str] = None) -> 'TransferResult':
        return cls(success=True, amount=amount, reference=reference or secrets.token_hex(8))

    @classmethod
    def failed(cls, error: str) -> 'TransferResult':
        return cls(success=False, error=error)


class FundsTransfer(ABC):
    """
    Abstract interface for moving funds to a recipient.

    The call is blocking. Anything other than a successful result carrying
    exactly the requested amount is treated by the engine as failure.
    """

    @abstractmethod
    def transfer(self, recipient: str, amount: int) -> TransferResult:
        pass


class InMemoryLedger(FundsTransfer):
    """
    Ledger holding a finite reserve and per-recipient balances.

    For development and tests; a transfer fails when the reserve cannot
    cover the amount.
    """

    def __init__(self, reserve: int = 0):
        if reserve < 0:
            raise ValueError("reserve must not be negative")
        self._reserve = reserve
        self._balances: Dict[str, int] = {}
        self._lock = threading.Lock()

    @property
    def reserve(self) -> int:
        with self._lock:
            return self._reserve

    def fund(self, amount: int) -> None:
        if amount < 0:
            raise ValueError("amount must not be negative")
        with self._lock:
            self._reserve += amount

    def balance_of(self, recipient: str) -> int:
        with self._lock:
            return self._balances.get(recipient, 0)

    def transfer(self, recipient: str, amount: int) -> TransferResult:
        with self._lock:
            if amount > self._reserve:
                return TransferResult.failed(
                    f"insufficient reserve: {self._reserve} < {amount}"
                )
            self._reserve -= amount
            self._balances[recipient] = self._balances.get(recipient, 0) + amount
        return TransferResult.ok(amount)
