"""
DripAuth Auth Modules

An auth module gates drips by one eligibility scheme. Each instance owns an
immutable authority public key and validates proofs signed by that authority
for its own signing domain.

Design principles:
- Stateless (replay and cooldown state belong to the engine)
- Fail-closed (malformed identifiers and signatures are authentication failures)
- Immutable trust root (rotate a key by installing a new instance)
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from .codec import Domain, Proof, message_digest
from .errors import AuthenticationFailedError
from .hashing import fingerprint
from .signing import PUBLIC_KEY_LENGTH, verify_signature


DEFAULT_VERSION = "1"
MAX_IDENTIFIER_LENGTH = 256


class AuthModule(ABC):
    """Abstract base class for all auth module types."""

    module_type: str = ""
    default_scheme_name: str = ""

    def __init__(
        self,
        module_id: str,
        authority_public_key: bytes,
        scheme_name: Optional[str] = None,
        version: str = DEFAULT_VERSION
    ):
        scheme_name = scheme_name or self.default_scheme_name
        if not module_id:
            raise ValueError("module_id is required")
        if not scheme_name:
            raise ValueError("scheme_name is required")
        if not version:
            raise ValueError("version is required")
        if not isinstance(authority_public_key, bytes) or len(authority_public_key) != PUBLIC_KEY_LENGTH:
            raise ValueError(f"authority_public_key must be {PUBLIC_KEY_LENGTH} bytes")

        self._module_id = module_id
        self._authority_public_key = authority_public_key
        self._scheme_name = scheme_name
        self._version = version

    @property
    def module_id(self) -> str:
        return self._module_id

    @property
    def authority_public_key(self) -> bytes:
        return self._authority_public_key

    @property
    def scheme_name(self) -> str:
        return self._scheme_name

    @property
    def version(self) -> str:
        return self._version

    def domain(self, chain_id: str) -> Domain:
        """The signing domain of this instance on ``chain_id``."""
        return Domain(
            name=self._scheme_name,
            version=self._version,
            chain_id=chain_id,
            verifying_module=self._module_id,
        )

    def verify(self, proof: Proof, signature: bytes, chain_id: str) -> bytes:
        """
        Validate a signed proof.

        Args:
            proof: The (recipient, nonce, identifier) claim
            signature: Authority signature over the proof's message digest
            chain_id: Deployment context the proof must have been signed for

        Returns:
            The proof identifier

        Raises:
            AuthenticationFailedError: identifier malformed for this scheme,
                or signature not produced by the authority for this domain
        """
        if not self.is_valid_identifier(proof.identifier):
            raise AuthenticationFailedError(f"identifier rejected by {self.module_type} scheme")

        digest = message_digest(proof, self.domain(chain_id))
        if not verify_signature(self._authority_public_key, digest, signature):
            raise AuthenticationFailedError("signature does not match authority key")

        return proof.identifier

    @abstractmethod
    def is_valid_identifier(self, identifier: bytes) -> bool:
        """Scheme-specific identifier format check. Must not raise."""

    def describe(self) -> Dict[str, Any]:
        return {
            "module_id": self._module_id,
            "type": self.module_type,
            "scheme_name": self._scheme_name,
            "version": self._version,
            "authority_key_fingerprint": fingerprint(self._authority_public_key),
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(module_id={self._module_id!r}, scheme_name={self._scheme_name!r})"


class SignedClaimModule(AuthModule):
    """
    Generic signed claim.

    Accepts any non-empty identifier; the authority alone decides what it
    means.
    """

    module_type = "signed_claim"
    default_scheme_name = "SignedClaimModule"

    def is_valid_identifier(self, identifier: bytes) -> bool:
        return 0 < len(identifier) <= MAX_IDENTIFIER_LENGTH


class GithubModule(AuthModule):
    """
    "Has GitHub account Y".

    The identifier is the numeric GitHub user id as ASCII decimal. User ids
    are used instead of logins because logins can be renamed and re-registered.
    """

    module_type = "github"
    default_scheme_name = "GithubModule"

    def is_valid_identifier(self, identifier: bytes) -> bool:
        if not 0 < len(identifier) <= 20:
            return False
        if not identifier.isdigit():
            return False
        # no leading zeros, so each account has exactly one encoding
        return identifier == b"0" or not identifier.startswith(b"0")


class NftOwnershipModule(AuthModule):
    """
    "Owns NFT X".

    The identifier is the 32-byte big-endian token id; the authority signs
    only after checking current ownership of that token by the recipient.
    """

    module_type = "nft_ownership"
    default_scheme_name = "NftOwnershipModule"

    TOKEN_ID_LENGTH = 32

    def is_valid_identifier(self, identifier: bytes) -> bool:
        return len(identifier) == self.TOKEN_ID_LENGTH

    @classmethod
    def token_identifier(cls, token_id: int) -> bytes:
        """Encode an integer token id as a module identifier."""
        return token_id.to_bytes(cls.TOKEN_ID_LENGTH, "big")


# Module type registry
MODULE_TYPES: Dict[str, type] = {
    SignedClaimModule.module_type: SignedClaimModule,
    GithubModule.module_type: GithubModule,
    NftOwnershipModule.module_type: NftOwnershipModule,
}


def create_module(
    module_type: str,
    module_id: str,
    authority_public_key: bytes,
    scheme_name: Optional[str] = None,
    version: str = DEFAULT_VERSION
) -> AuthModule:
    """Factory function to create an auth module instance."""
    if module_type not in MODULE_TYPES:
        raise ValueError(f"Unknown module type: {module_type}")

    return MODULE_TYPES[module_type](
        module_id=module_id,
        authority_public_key=authority_public_key,
        scheme_name=scheme_name,
        version=version,
    )
