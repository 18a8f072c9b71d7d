"""
Input validation for DripAuth.

Parses and validates untrusted request fields before they reach the engine.
"""

import base64
import binascii
import re
from typing import Any, Optional

from .codec import MAX_NONCE, NONCE_BITS


HEX_PATTERN = re.compile(r'^[a-fA-F0-9]*$')
BASE64_PATTERN = re.compile(r'^[A-Za-z0-9+/]*={0,2}$')
MODULE_ID_PATTERN = re.compile(r'^[A-Za-z0-9_.:-]{1,64}$')

MAX_IDENTIFIER_HEX = 512


class ValidationError(Exception):
    """Raised when input validation fails."""
    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


def _strip_0x(value: str) -> str:
    if value[:2] in ("0x", "0X"):
        return value[2:]
    return value


def validate_hex(value: str, field_name: str, max_length: Optional[int] = None) -> str:
    """
    Validate a hex string, with or without a 0x prefix.

    Returns:
        The lowercased hex digits without prefix

    Raises:
        ValidationError: If validation fails
    """
    if not isinstance(value, str):
        raise ValidationError(field_name, "must be a string")

    digits = _strip_0x(value.strip()).lower()

    if not digits:
        raise ValidationError(field_name, "cannot be empty")

    if not HEX_PATTERN.match(digits):
        raise ValidationError(field_name, "must be valid hexadecimal")

    if max_length and len(digits) > max_length:
        raise ValidationError(field_name, f"must be at most {max_length} hex digits")

    return digits


def validate_base64(value: str, field_name: str) -> bytes:
    """
    Validate and decode standard base64.

    Raises:
        ValidationError: If validation fails
    """
    if not isinstance(value, str):
        raise ValidationError(field_name, "must be a string")

    value = value.strip()

    if not value:
        raise ValidationError(field_name, "cannot be empty")

    if not BASE64_PATTERN.match(value):
        raise ValidationError(field_name, "must be valid base64")

    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError(field_name, "must be valid base64")


def parse_nonce(value: Any) -> int:
    """Accept an int or a hex string; return a 256-bit nonce."""
    if isinstance(value, bool):
        raise ValidationError("nonce", "must be an integer or hex string")
    if isinstance(value, int):
        nonce = value
    else:
        nonce = int(validate_hex(value, "nonce", max_length=NONCE_BITS // 4), 16)

    if not 0 <= nonce <= MAX_NONCE:
        raise ValidationError("nonce", f"must fit in {NONCE_BITS} bits")
    return nonce


def parse_identifier(value: str) -> bytes:
    """Hex-encoded identifier to bytes."""
    digits = validate_hex(value, "identifier", max_length=MAX_IDENTIFIER_HEX)
    if len(digits) % 2:
        raise ValidationError("identifier", "must have an even number of hex digits")
    return bytes.fromhex(digits)


def validate_module_id(value: str) -> str:
    if not isinstance(value, str) or not MODULE_ID_PATTERN.match(value):
        raise ValidationError("module_id", "must be 1-64 characters of [A-Za-z0-9_.:-]")
    return value
