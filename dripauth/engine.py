"""
DripAuth Engine

The core authorization and distribution engine. For every drip request it:
- Resolves the auth module and its configuration
- Has the module authenticate the signed proof
- Checks the global replay guard and the per-identifier cooldown
- Moves the configured amount through the funds transfer collaborator
- Commits nonce consumption and cooldown, then emits one event

Checks run in a fixed order and the first failure wins. Nothing is committed
unless the transfer succeeded.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .clock import Clock, SystemClock
from .codec import Proof, nonce_to_hex
from .cooldown import CooldownTracker
from .errors import (
    AuthenticationFailedError,
    DripError,
    ErrorKind,
    ModuleNotSupportedError,
    TransferFailedError,
)
from .events import DripEvent, EventSink, InMemoryEventLog
from .locking import KeyedLock
from .logging_config import audit_log
from .registry import ModuleRegistry
from .replay import ReplayGuard
from .transfer import FundsTransfer, TransferResult

logger = logging.getLogger(__name__)


class DripState(str, Enum):
    """
    Per-request state machine.

    RECEIVED -> MODULE_RESOLVED -> AUTHENTICATED -> REPLAY_CHECKED ->
    COOLDOWN_CHECKED -> AUTHORIZED -> TRANSFERRED -> COMPLETED

    REJECTED is terminal and reachable from every non-terminal state.
    """
    RECEIVED = "RECEIVED"
    MODULE_RESOLVED = "MODULE_RESOLVED"
    AUTHENTICATED = "AUTHENTICATED"
    REPLAY_CHECKED = "REPLAY_CHECKED"
    COOLDOWN_CHECKED = "COOLDOWN_CHECKED"
    AUTHORIZED = "AUTHORIZED"
    TRANSFERRED = "TRANSFERRED"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"


@dataclass
class DripResult:
    """Outcome of one drip request."""
    state: DripState
    trace: List[DripState] = field(default_factory=list)
    event: Optional[DripEvent] = None
    error: Optional[DripError] = None

    def succeeded(self) -> bool:
        return self.state == DripState.COMPLETED

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    @property
    def rejected_at(self) -> Optional[DripState]:
        """Last state reached before rejection."""
        if self.state != DripState.REJECTED:
            return None
        return self.trace[-2]

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "state": self.state.value,
            "trace": [s.value for s in self.trace],
        }
        if self.event:
            d["event"] = self.event.to_dict()
        if self.error:
            d["error"] = self.error.kind.value
            d["detail"] = self.error.message
        return d


class DripEngine:
    """
    Orchestrates drip requests over owned state.

    The engine owns the replay guard, the cooldown tracker and the event
    sink; the registry is shared with whoever administers it. Check-and-commit
    for a request holds a lock on its nonce and on its (module, identifier)
    pair, including across the blocking transfer call.

    Usage:
        engine = DripEngine(registry, ledger, chain_id="dripauth-local-1")
        event = engine.drip(recipient, nonce, "github", b"12345", signature)
    """

    def __init__(
        self,
        registry: ModuleRegistry,
        transfer: FundsTransfer,
        chain_id: str,
        clock: Optional[Clock] = None,
        replay_guard: Optional[ReplayGuard] = None,
        cooldowns: Optional[CooldownTracker] = None,
        event_sink: Optional[EventSink] = None
    ):
        if not chain_id:
            raise ValueError("chain_id is required")
        self.registry = registry
        self.transfer = transfer
        self.chain_id = chain_id
        self.clock = clock if clock is not None else SystemClock()
        self.replay_guard = replay_guard if replay_guard is not None else ReplayGuard()
        self.cooldowns = cooldowns if cooldowns is not None else CooldownTracker()
        self.event_sink = event_sink if event_sink is not None else InMemoryEventLog()
        self._locks = KeyedLock()

    def drip(
        self,
        recipient: str,
        nonce: int,
        module_id: str,
        identifier: bytes,
        signature: bytes
    ) -> DripEvent:
        """
        Process a drip request.

        Returns:
            The emitted DripEvent

        Raises:
            ModuleNotSupportedError, AuthenticationFailedError,
            NonceAlreadyUsedError, CooldownNotElapsedError, TransferFailedError
        """
        result = self.try_drip(recipient, nonce, module_id, identifier, signature)
        if result.error is not None:
            raise result.error
        return result.event

    def try_drip(
        self,
        recipient: str,
        nonce: int,
        module_id: str,
        identifier: bytes,
        signature: bytes
    ) -> DripResult:
        """Process a drip request, reporting rejections in the result."""
        trace = [DripState.RECEIVED]
        audit_log.drip_request(
            module_id=module_id,
            recipient=recipient,
            nonce_hex=_nonce_repr(nonce),
            identifier_hex=_identifier_repr(identifier),
        )

        try:
            event = self._run(recipient, nonce, module_id, identifier, signature, trace)
        except DripError as e:
            rejected_at = trace[-1]
            trace.append(DripState.REJECTED)
            audit_log.drip_rejected(
                module_id=module_id,
                reason=e.kind.value,
                state=rejected_at.value,
                detail=e.message,
            )
            return DripResult(state=DripState.REJECTED, trace=trace, error=e)

        return DripResult(state=DripState.COMPLETED, trace=trace, event=event)

    def _run(
        self,
        recipient: str,
        nonce: int,
        module_id: str,
        identifier: bytes,
        signature: bytes,
        trace: List[DripState]
    ) -> DripEvent:
        # 1. module resolution; config is an immutable snapshot from here on
        module, config = self.registry.resolve(module_id)
        if config is None or module is None:
            raise ModuleNotSupportedError(f"module {module_id!r} is not registered")
        if not config.enabled:
            raise ModuleNotSupportedError(f"module {module_id!r} is disabled")
        trace.append(DripState.MODULE_RESOLVED)

        # 2. authentication
        try:
            proof = Proof(recipient=recipient, nonce=nonce, identifier=identifier)
        except ValueError as e:
            raise AuthenticationFailedError(f"malformed proof: {e}") from e
        identifier = module.verify(proof, signature, self.chain_id)
        trace.append(DripState.AUTHENTICATED)

        with self._locks.hold(_nonce_key(nonce), _cooldown_key(module_id, identifier)):
            # an admin write may have landed while waiting on the locks
            current_module, config = self.registry.resolve(module_id)
            if config is None or current_module is None or not config.enabled:
                raise ModuleNotSupportedError(f"module {module_id!r} is no longer available")
            if current_module is not module:
                identifier = current_module.verify(proof, signature, self.chain_id)

            # 3. replay
            self.replay_guard.check(nonce)
            trace.append(DripState.REPLAY_CHECKED)

            # 4. cooldown
            now = self.clock.now()
            self.cooldowns.check(module_id, identifier, config.cooldown_seconds, now)
            trace.append(DripState.COOLDOWN_CHECKED)
            trace.append(DripState.AUTHORIZED)

            # 5. the only externally visible effect
            outcome = self._transfer(proof.recipient, config.amount)
            trace.append(DripState.TRANSFERRED)

            # 6. commit
            self.replay_guard.consume(nonce, now)
            self.cooldowns.record(module_id, identifier, now)
            event = DripEvent(
                scheme_name=config.name,
                identifier=identifier,
                amount=config.amount,
                recipient=proof.recipient,
                module_id=module_id,
                nonce=nonce,
                timestamp=now,
                transfer_reference=outcome.reference,
            )
            try:
                self.event_sink.emit(event)
            except Exception:
                # funds already moved; the drip stands
                logger.exception("Event sink failed for drip to %s via %s", proof.recipient, module_id)
            trace.append(DripState.COMPLETED)

        audit_log.drip_completed(
            module_id=module_id,
            scheme_name=config.name,
            recipient=proof.recipient,
            amount=config.amount,
            identifier_hex=identifier.hex(),
            transfer_reference=outcome.reference,
        )
        return event

    def _transfer(self, recipient: str, amount: int) -> TransferResult:
        """Run the transfer; anything but an exact success is a failure."""
        try:
            result = self.transfer.transfer(recipient, amount)
        except Exception as e:
            logger.exception("Funds transfer raised for %s", recipient)
            raise TransferFailedError(f"transfer raised: {e}") from e

        if not isinstance(result, TransferResult) or not result.success:
            error = getattr(result, "error", None) or "transfer reported failure"
            raise TransferFailedError(error)
        if result.amount != amount:
            raise TransferFailedError(
                f"ambiguous transfer: moved {result.amount} of {amount}"
            )
        return result

    # Read-only views

    def is_nonce_used(self, nonce: int) -> bool:
        return self.replay_guard.is_consumed(nonce)

    def last_drip(self, module_id: str, identifier: bytes) -> Optional[float]:
        return self.cooldowns.last_drip(module_id, identifier)

    def next_drip_at(self, module_id: str, identifier: bytes) -> Optional[float]:
        """
        Earliest time ``identifier`` may drip again under the module's
        current cooldown. None if it never dripped or the module has no
        config.
        """
        config = self.registry.get(module_id)
        if config is None:
            return None
        return self.cooldowns.next_allowed(module_id, identifier, config.cooldown_seconds)


def _nonce_key(nonce: int) -> str:
    return f"nonce:{nonce_to_hex(nonce)}"


def _cooldown_key(module_id: str, identifier: bytes) -> str:
    return f"cooldown:{module_id}:{identifier.hex()}"


def _nonce_repr(nonce: Any) -> str:
    if isinstance(nonce, int) and not isinstance(nonce, bool) and nonce >= 0:
        return "0x" + format(nonce, "x")
    return repr(nonce)


def _identifier_repr(identifier: Any) -> str:
    if isinstance(identifier, bytes):
        return identifier.hex()
    return repr(identifier)
