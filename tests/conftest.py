import base64

import pytest
from fastapi.testclient import TestClient

from dripauth import (
    AuthorityKey,
    DripEngine,
    GithubModule,
    InMemoryLedger,
    ManualClock,
    ModuleConfig,
    ModuleRegistry,
    Proof,
)
from dripauth.service import create_app

ADMIN = "ops-admin"
CHAIN_ID = "testnet-1"
T0 = 1_700_000_000.0
AMOUNT = 5 * 10 ** 16


@pytest.fixture
def authority():
    return AuthorityKey.from_seed(b"\x01" * 32, key_id="github-authority")


@pytest.fixture
def clock():
    return ManualClock(start=T0)


@pytest.fixture
def ledger():
    return InMemoryLedger(reserve=10 ** 18)


@pytest.fixture
def engine(authority, clock, ledger):
    registry = ModuleRegistry(admin=ADMIN)
    registry.install(ADMIN, GithubModule("github", authority.public_key))
    registry.configure(ADMIN, "github", ModuleConfig(
        name="GithubModule", enabled=True, cooldown_seconds=86400, amount=AMOUNT,
    ))
    return DripEngine(registry, ledger, chain_id=CHAIN_ID, clock=clock)


@pytest.fixture
def client(engine):
    return TestClient(create_app(engine))


@pytest.fixture
def drip_body(authority, engine):
    """Build a signed /drip request body."""
    def make(nonce=1, identifier=b"583231", recipient="0xrecipient", module_id="github", signer=None):
        proof = Proof(recipient=recipient, nonce=nonce, identifier=identifier)
        module = engine.registry.get_module("github")
        signature = (signer or authority).sign_proof(proof, module.domain(CHAIN_ID))
        return {
            "recipient": recipient,
            "nonce": hex(nonce),
            "module_id": module_id,
            "identifier": identifier.hex(),
            "signature": base64.b64encode(signature).decode("ascii"),
        }
    return make
