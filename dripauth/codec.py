"""
DripAuth Proof Codec

Deterministic, domain-separated encoding of a drip proof.

A proof binds (recipient, nonce, identifier) and is signed by the authority
of one auth module. The signed bytes are prefixed with a domain separator
derived from the scheme name, a version string, the chain/deployment
identifier and the identity of the verifying module, so a signature made for
one module, deployment or chain never verifies anywhere else.

Layout (EIP-712 style, SHA-256 throughout):

    domain_separator = SHA256(CJE(domain))
    struct_hash      = SHA256(CJE(proof))
    encoded          = 0x19 0x01 || domain_separator || struct_hash
    message_digest   = SHA256(encoded)

The authority signs ``message_digest``.
"""

from dataclasses import dataclass
from typing import Any, Dict

from .hashing import sha256_digest, struct_hash


ENCODING_PREFIX = b"\x19\x01"
DOMAIN_TYPE = "DripAuthDomain"
PROOF_TYPE = "DripProof"

NONCE_BITS = 256
MAX_NONCE = (1 << NONCE_BITS) - 1


def nonce_to_hex(nonce: int) -> str:
    """Fixed-width lowercase hex rendering of a 256-bit nonce."""
    return format(nonce, "064x")


@dataclass(frozen=True)
class Domain:
    """Signing domain of one auth module instance."""
    name: str
    version: str
    chain_id: str
    verifying_module: str

    def __post_init__(self):
        for attr in ("name", "version", "chain_id", "verifying_module"):
            value = getattr(self, attr)
            if not isinstance(value, str) or not value:
                raise ValueError(f"Domain {attr} must be a non-empty string")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": DOMAIN_TYPE,
            "name": self.name,
            "version": self.version,
            "chain_id": self.chain_id,
            "verifying_module": self.verifying_module,
        }


@dataclass(frozen=True)
class Proof:
    """
    A claim that ``identifier`` authorizes a drip to ``recipient``.

    ``identifier`` is opaque, scheme-specific data (a GitHub user id, an NFT
    token id); only the auth module that owns the scheme interprets it.
    """
    recipient: str
    nonce: int
    identifier: bytes

    def __post_init__(self):
        if not isinstance(self.recipient, str) or not self.recipient:
            raise ValueError("recipient must be a non-empty string")
        if isinstance(self.nonce, bool) or not isinstance(self.nonce, int):
            raise ValueError("nonce must be an integer")
        if not 0 <= self.nonce <= MAX_NONCE:
            raise ValueError(f"nonce must fit in {NONCE_BITS} bits")
        if not isinstance(self.identifier, bytes):
            raise ValueError("identifier must be bytes")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": PROOF_TYPE,
            "recipient": self.recipient,
            "nonce": nonce_to_hex(self.nonce),
            "identifier": self.identifier,
        }


def domain_separator(domain: Domain) -> bytes:
    """32-byte separator bound to (scheme, version, chain, module)."""
    return struct_hash(domain.to_dict())


def encode(proof: Proof, domain: Domain) -> bytes:
    """
    Encode a proof for signing within ``domain``.

    The result is always 66 bytes: the 2-byte prefix, the domain separator and
    the proof struct hash.
    """
    return ENCODING_PREFIX + domain_separator(domain) + struct_hash(proof.to_dict())


def message_digest(proof: Proof, domain: Domain) -> bytes:
    """The exact bytes an authority signs for ``proof`` in ``domain``."""
    return sha256_digest(encode(proof, domain))
