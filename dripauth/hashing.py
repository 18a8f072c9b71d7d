"""
DripAuth Hashing

All digests use SHA-256. Raw digests feed the proof codec; the prefixed hex
form is used wherever a digest is shown to humans or logged.
"""

import hashlib
from typing import Any, Union

from .canonicalization import canonicalize


def sha256_digest(data: Union[bytes, str]) -> bytes:
    """Compute the raw 32-byte SHA-256 digest."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.sha256(data).digest()


def sha256_hash(data: Union[bytes, str]) -> str:
    """
    Compute SHA-256 hash in display format.

    Returns:
        Hash string in format "sha256:abcdef..."
    """
    if isinstance(data, str):
        data = data.encode('utf-8')

    digest = hashlib.sha256(data).hexdigest().lower()
    return f"sha256:{digest}"


def struct_hash(obj: Any) -> bytes:
    """
    Hash a structured value.

    struct_hash = SHA-256(CJE(obj))
    """
    return sha256_digest(canonicalize(obj))


def fingerprint(data: bytes) -> str:
    """Short display fingerprint for keys and identifiers in logs."""
    return sha256_hash(data)[7:23]
