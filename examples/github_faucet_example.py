#!/usr/bin/env python3
"""
DripAuth Example - GitHub-gated Faucet

Walks through a faucet that drips once per day to each GitHub account, with
the account linkage attested by an off-system OAuth authority.

Run with: python examples/github_faucet_example.py
"""

from datetime import datetime, timezone

from dripauth import (
    AuthorityKey,
    DripEngine,
    DripError,
    GithubModule,
    InMemoryEventLog,
    InMemoryLedger,
    ManualClock,
    ModuleConfig,
    ModuleRegistry,
    Proof,
)

ADMIN = "faucet-ops"
CHAIN_ID = "dripauth-testnet-1"
ONE_DAY = 86400
DRIP_AMOUNT = 5 * 10 ** 16


def simulate_github_oauth(authority: AuthorityKey, module: GithubModule, recipient: str,
                          nonce: int, github_user_id: str) -> bytes:
    """
    Simulate the authority attesting a GitHub account.

    In production, the authority service would:
    1. Complete the OAuth flow with GitHub
    2. Read the numeric user id from the API
    3. Sign (recipient, nonce, user id) for this module's domain
    """
    proof = Proof(recipient=recipient, nonce=nonce, identifier=github_user_id.encode("ascii"))
    return authority.sign_proof(proof, module.domain(CHAIN_ID))


def attempt(engine: DripEngine, label: str, recipient: str, nonce: int,
            identifier: bytes, signature: bytes) -> None:
    print(f"\n[{label}]")
    result = engine.try_drip(recipient, nonce, "github", identifier, signature)
    if result.succeeded():
        event = result.event
        print(f"  ✓ DRIPPED {event.amount} to {event.recipient}")
        print(f"    Scheme: {event.scheme_name}  Identifier: {event.identifier.decode()}")
    else:
        print(f"  ✗ REJECTED: {result.error_kind.value} (at {result.rejected_at.value})")
        print(f"    {result.error.message}")


def main():
    print("=" * 70)
    print("DripAuth GitHub Faucet - Example")
    print("=" * 70)

    # =========================================================================
    # SETUP
    # =========================================================================

    print("\n[SETUP] Creating authority, registry and engine...")

    authority = AuthorityKey.generate("github-oauth-authority")
    module = GithubModule("github", authority.public_key)

    registry = ModuleRegistry(admin=ADMIN)
    registry.install(ADMIN, module)
    registry.configure(ADMIN, "github", ModuleConfig(
        name="GithubModule",
        enabled=True,
        cooldown_seconds=ONE_DAY,
        amount=DRIP_AMOUNT,
    ))

    start = datetime(2026, 1, 1, tzinfo=timezone.utc).timestamp()
    clock = ManualClock(start=start)
    ledger = InMemoryLedger(reserve=10 ** 18)
    events = InMemoryEventLog()
    engine = DripEngine(registry, ledger, chain_id=CHAIN_ID, clock=clock, event_sink=events)

    print(f"  Module: {module!r}")
    print(f"  Authority key: {authority.public_key_b64}")
    print(f"  Reserve: {ledger.reserve}")

    recipient = "0x9fB29AAc15b9A4B7F17c3385939b007540f4d791"
    user_id = "583231"

    # =========================================================================
    # SCENARIO 1: First drip, then replay
    # =========================================================================

    print("\n" + "-" * 70)
    print("SCENARIO 1: First drip and replay of the same proof")
    print("-" * 70)

    signature = simulate_github_oauth(authority, module, recipient, 1, user_id)
    attempt(engine, "T+0h drip", recipient, 1, user_id.encode(), signature)
    attempt(engine, "T+0h replay", recipient, 1, user_id.encode(), signature)

    # =========================================================================
    # SCENARIO 2: Cooldown
    # =========================================================================

    print("\n" + "-" * 70)
    print("SCENARIO 2: Fresh proof inside and after the cooldown")
    print("-" * 70)

    signature = simulate_github_oauth(authority, module, recipient, 2, user_id)

    clock.advance(12 * 3600)
    attempt(engine, "T+12h drip", recipient, 2, user_id.encode(), signature)
    print(f"    Next drip at: {engine.next_drip_at('github', user_id.encode())}")

    clock.advance(13 * 3600)
    attempt(engine, "T+25h drip", recipient, 2, user_id.encode(), signature)

    # =========================================================================
    # SCENARIO 3: Front-running
    # =========================================================================

    print("\n" + "-" * 70)
    print("SCENARIO 3: Observer resubmits a proof with their own address")
    print("-" * 70)

    signature = simulate_github_oauth(authority, module, recipient, 3, "1001")
    attempt(engine, "hijack", "0xattacker", 3, b"1001", signature)

    # =========================================================================
    # SCENARIO 4: Admin controls
    # =========================================================================

    print("\n" + "-" * 70)
    print("SCENARIO 4: Configuration by a non-admin and disabling the module")
    print("-" * 70)

    try:
        registry.configure("random-user", "github", ModuleConfig(
            name="GithubModule", enabled=True, cooldown_seconds=0, amount=10 ** 18,
        ))
    except DripError as e:
        print(f"\n  ✗ {e}")

    registry.configure(ADMIN, "github", ModuleConfig(
        name="GithubModule", enabled=False, cooldown_seconds=ONE_DAY, amount=DRIP_AMOUNT,
    ))
    attempt(engine, "disabled module", recipient, 3, b"1001",
            simulate_github_oauth(authority, module, recipient, 3, "1001"))

    # =========================================================================
    # EVENT FEED
    # =========================================================================

    print("\n" + "-" * 70)
    print("EVENT FEED")
    print("-" * 70)

    for event in events.query():
        print(f"\n  {event.to_dict()}")

    print(f"\nRecipient balance: {ledger.balance_of(recipient)}")
    print(f"Remaining reserve: {ledger.reserve}")

    print("\n" + "=" * 70)
    print("Example Complete")
    print("=" * 70)


if __name__ == "__main__":
    main()
