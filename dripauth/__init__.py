"""
DripAuth: Authorization and Distribution Engine

Version: 1.0.0
License: Apache 2.0

Gates a faucet behind pluggable eligibility schemes. A drip succeeds only if:
    the module is registered and enabled,
    the module's authority signed (recipient, nonce, identifier) for this domain,
    the nonce was never used before, anywhere,
    the identifier's cooldown under the module has elapsed,
    and the funds transfer succeeded.

Usage:
    from dripauth import (
        AuthorityKey,
        DripEngine,
        GithubModule,
        InMemoryLedger,
        ModuleConfig,
        ModuleRegistry,
        Proof,
    )

    authority = AuthorityKey.generate()
    registry = ModuleRegistry(admin="ops")
    registry.install("ops", GithubModule("github", authority.public_key))
    registry.configure("ops", "github", ModuleConfig(
        name="GithubModule", enabled=True, cooldown_seconds=86400, amount=5 * 10**16
    ))

    engine = DripEngine(registry, InMemoryLedger(reserve=10**18), chain_id="testnet-1")

    proof = Proof(recipient="0xabc...", nonce=1, identifier=b"583231")
    module = registry.get_module("github")
    signature = authority.sign_proof(proof, module.domain(engine.chain_id))

    event = engine.drip(proof.recipient, proof.nonce, "github", proof.identifier, signature)
"""

__version__ = "1.0.0"
__license__ = "Apache-2.0"

# Encoding and hashing
from .canonicalization import canonicalize, canonicalize_str
from .hashing import sha256_digest, sha256_hash, struct_hash
from .codec import (
    Domain,
    Proof,
    MAX_NONCE,
    domain_separator,
    encode,
    message_digest,
    nonce_to_hex,
)

# Signatures
from .signing import (
    AuthorityKey,
    generate_signing_key,
    sign_data,
    verify_signature,
)

# Errors
from .errors import (
    ErrorKind,
    DripError,
    UnauthorizedError,
    ModuleNotSupportedError,
    AuthenticationFailedError,
    NonceAlreadyUsedError,
    CooldownNotElapsedError,
    TransferFailedError,
)

# Auth modules
from .modules import (
    AuthModule,
    SignedClaimModule,
    GithubModule,
    NftOwnershipModule,
    MODULE_TYPES,
    create_module,
)

# State
from .registry import ModuleConfig, ModuleRegistry
from .replay import NonceStore, InMemoryNonceStore, ReplayGuard
from .cooldown import CooldownStore, InMemoryCooldownStore, CooldownTracker

# Collaborators
from .clock import Clock, SystemClock, ManualClock
from .transfer import FundsTransfer, TransferResult, InMemoryLedger
from .events import DripEvent, EventSink, InMemoryEventLog

# Engine
from .engine import DripEngine, DripResult, DripState


__all__ = [
    "__version__",

    # Encoding
    "canonicalize",
    "canonicalize_str",
    "sha256_digest",
    "sha256_hash",
    "struct_hash",
    "Domain",
    "Proof",
    "MAX_NONCE",
    "domain_separator",
    "encode",
    "message_digest",
    "nonce_to_hex",

    # Signatures
    "AuthorityKey",
    "generate_signing_key",
    "sign_data",
    "verify_signature",

    # Errors
    "ErrorKind",
    "DripError",
    "UnauthorizedError",
    "ModuleNotSupportedError",
    "AuthenticationFailedError",
    "NonceAlreadyUsedError",
    "CooldownNotElapsedError",
    "TransferFailedError",

    # Auth modules
    "AuthModule",
    "SignedClaimModule",
    "GithubModule",
    "NftOwnershipModule",
    "MODULE_TYPES",
    "create_module",

    # State
    "ModuleConfig",
    "ModuleRegistry",
    "NonceStore",
    "InMemoryNonceStore",
    "ReplayGuard",
    "CooldownStore",
    "InMemoryCooldownStore",
    "CooldownTracker",

    # Collaborators
    "Clock",
    "SystemClock",
    "ManualClock",
    "FundsTransfer",
    "TransferResult",
    "InMemoryLedger",
    "DripEvent",
    "EventSink",
    "InMemoryEventLog",

    # Engine
    "DripEngine",
    "DripResult",
    "DripState",
]
