"""
DripAuth Cryptographic Signing

Ed25519 (RFC 8032) signatures over proof message digests.

The engine only ever verifies. ``AuthorityKey`` is the issuing side: an
eligibility authority (a GitHub OAuth backend, an NFT ownership oracle) holds
one and signs proofs for identities it has checked.
"""

import base64
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from nacl.exceptions import CryptoError
from nacl.signing import SigningKey, VerifyKey

from .codec import Domain, Proof, message_digest


PUBLIC_KEY_LENGTH = 32
SIGNATURE_LENGTH = 64
SEED_LENGTH = 32


def verify_signature(public_key: bytes, message: bytes, signature: bytes) -> bool:
    """
    Verify an Ed25519 signature.

    Fails closed: malformed keys or signatures (wrong type, wrong length,
    points that do not decode) return False exactly like a signature that
    does not match. This function never raises.

    Args:
        public_key: 32-byte Ed25519 verify key
        message: The signed bytes
        signature: 64-byte detached signature

    Returns:
        True only if the signature is valid for message under public_key
    """
    if not isinstance(public_key, bytes) or len(public_key) != PUBLIC_KEY_LENGTH:
        return False
    if not isinstance(signature, bytes) or len(signature) != SIGNATURE_LENGTH:
        return False
    if not isinstance(message, bytes):
        return False

    try:
        VerifyKey(public_key).verify(message, signature)
        return True
    except (CryptoError, ValueError, TypeError):
        return False


@dataclass(frozen=True)
class AuthorityKey:
    """Ed25519 key pair held by an eligibility authority."""
    key_id: str
    signing_key: bytes
    verify_key: bytes
    algorithm: str = "Ed25519"

    @classmethod
    def generate(cls, key_id: str = "authority") -> "AuthorityKey":
        """Generate a fresh random key pair."""
        sk = SigningKey.generate()
        return cls(key_id=key_id, signing_key=bytes(sk), verify_key=bytes(sk.verify_key))

    @classmethod
    def from_seed(cls, seed: bytes, key_id: str = "authority") -> "AuthorityKey":
        """Deterministic key pair from a 32-byte seed."""
        if len(seed) != SEED_LENGTH:
            raise ValueError(f"Seed must be {SEED_LENGTH} bytes")
        sk = SigningKey(seed)
        return cls(key_id=key_id, signing_key=bytes(sk), verify_key=bytes(sk.verify_key))

    @property
    def public_key(self) -> bytes:
        return self.verify_key

    @property
    def public_key_b64(self) -> str:
        return base64.b64encode(self.verify_key).decode('utf-8')

    def sign(self, data: bytes) -> bytes:
        return SigningKey(self.signing_key).sign(data).signature

    def sign_proof(self, proof: Proof, domain: Domain) -> bytes:
        """Sign ``proof`` for verification by the module described by ``domain``."""
        return self.sign(message_digest(proof, domain))

    def to_trust_entry(self) -> Dict[str, Any]:
        """Public part, as published to operators configuring a module."""
        return {
            "key_id": self.key_id,
            "algorithm": self.algorithm,
            "public_key": self.public_key_b64,
        }


# Convenience functions

def generate_signing_key() -> Tuple[bytes, bytes]:
    """
    Generate an Ed25519 key pair.

    Returns:
        Tuple of (signing_key_bytes, verify_key_bytes)
    """
    signing_key = SigningKey.generate()
    return bytes(signing_key), bytes(signing_key.verify_key)


def sign_data(data: bytes, signing_key: bytes) -> bytes:
    """Sign data with Ed25519 signing key."""
    return SigningKey(signing_key).sign(data).signature
