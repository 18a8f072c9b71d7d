"""
DripAuth error kinds.

Every rejection of a request is one of these. None of them leaves engine
state modified.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Rejection reasons reported to callers."""
    UNAUTHORIZED = "Unauthorized"
    MODULE_NOT_SUPPORTED = "ModuleNotSupported"
    AUTHENTICATION_FAILED = "AuthenticationFailed"
    NONCE_ALREADY_USED = "NonceAlreadyUsed"
    COOLDOWN_NOT_ELAPSED = "CooldownNotElapsed"
    TRANSFER_FAILED = "TransferFailed"


class DripError(Exception):
    """Base class for all request rejections."""

    kind: ErrorKind

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.kind.value
        super().__init__(f"{self.kind.value}: {self.message}")


class UnauthorizedError(DripError):
    """Configuration change attempted by someone other than the administrator."""
    kind = ErrorKind.UNAUTHORIZED


class ModuleNotSupportedError(DripError):
    """Module absent from the registry or disabled."""
    kind = ErrorKind.MODULE_NOT_SUPPORTED


class AuthenticationFailedError(DripError):
    """Signature does not verify against the module's authority key."""
    kind = ErrorKind.AUTHENTICATION_FAILED


class NonceAlreadyUsedError(DripError):
    kind = ErrorKind.NONCE_ALREADY_USED


class CooldownNotElapsedError(DripError):
    """Identifier asked again before its module cooldown expired."""
    kind = ErrorKind.COOLDOWN_NOT_ELAPSED

    def __init__(self, retry_after: float, message: Optional[str] = None):
        self.retry_after = retry_after
        super().__init__(message or f"retry in {retry_after:.0f}s")


class TransferFailedError(DripError):
    kind = ErrorKind.TRANSFER_FAILED
