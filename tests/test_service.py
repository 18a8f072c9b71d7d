from dripauth import AuthorityKey

from .conftest import ADMIN, AMOUNT, T0


def configure(client, module_id="github", caller=ADMIN, **overrides):
    body = {"name": "GithubModule", "enabled": True, "cooldown_seconds": 86400, "amount": AMOUNT}
    body.update(overrides)
    headers = {"X-Caller-Identity": caller} if caller else {}
    return client.put(f"/modules/{module_id}", json=body, headers=headers)


# Happy path -> event
def test_drip_success(client, drip_body, ledger):
    r = client.post("/drip", json=drip_body(nonce=1))
    assert r.status_code == 200
    event = r.json()
    assert event["scheme_name"] == "GithubModule"
    assert event["identifier"] == "0x" + b"583231".hex()
    assert event["amount"] == AMOUNT
    assert event["recipient"] == "0xrecipient"
    assert event["module_id"] == "github"
    assert ledger.balance_of("0xrecipient") == AMOUNT


# Replay of the same proof -> 409
def test_drip_replay(client, drip_body):
    body = drip_body(nonce=1)
    assert client.post("/drip", json=body).status_code == 200
    r = client.post("/drip", json=body)
    assert r.status_code == 409
    assert r.json()["error"] == "NonceAlreadyUsed"


# Same identifier within cooldown -> 429 with Retry-After
def test_drip_cooldown(client, drip_body, clock):
    assert client.post("/drip", json=drip_body(nonce=1)).status_code == 200
    clock.advance(12 * 3600)
    r = client.post("/drip", json=drip_body(nonce=2))
    assert r.status_code == 429
    assert r.headers["Retry-After"] == str(12 * 3600)
    assert r.json()["extra"]["retry_after"] == 12 * 3600

    clock.set(T0 + 25 * 3600)
    assert client.post("/drip", json=drip_body(nonce=2)).status_code == 200


# Fractional wait -> Retry-After rounded up to the next whole second
def test_retry_after_rounds_up(client, drip_body, clock):
    assert client.post("/drip", json=drip_body(nonce=1)).status_code == 200
    clock.advance(86400 - 10.0005)
    r = client.post("/drip", json=drip_body(nonce=2))
    assert r.status_code == 429
    assert r.headers["Retry-After"] == "11"


# Signature from a different authority -> 401
def test_drip_bad_signature(client, drip_body):
    r = client.post("/drip", json=drip_body(signer=AuthorityKey.generate()))
    assert r.status_code == 401
    assert r.json()["error"] == "AuthenticationFailed"


# Unknown module -> 404
def test_drip_unknown_module(client, drip_body):
    r = client.post("/drip", json=drip_body(module_id="gitlab"))
    assert r.status_code == 404
    assert r.json()["error"] == "ModuleNotSupported"


# Disabled module -> 404
def test_drip_disabled_module(client, drip_body):
    assert configure(client, enabled=False).status_code == 200
    r = client.post("/drip", json=drip_body())
    assert r.status_code == 404


# Ledger cannot cover the amount -> 502, proof stays usable
def test_drip_transfer_failure(client, drip_body):
    assert configure(client, amount=10 ** 19).status_code == 200
    body = drip_body(nonce=5)
    r = client.post("/drip", json=body)
    assert r.status_code == 502
    assert r.json()["error"] == "TransferFailed"
    assert client.get("/nonces/0x5").json()["used"] is False


# Malformed request fields -> 422
def test_drip_validation(client, drip_body):
    body = drip_body()
    for field, value in (("nonce", "zz"), ("identifier", "abc"), ("signature", "!!"), ("module_id", "a b")):
        r = client.post("/drip", json={**body, field: value})
        assert r.status_code == 422, field

    r = client.post("/drip", json={**body, "nonce": "0x1" + "0" * 64})
    assert r.status_code == 422


# Configure without admin identity -> 403
def test_configure_requires_admin(client):
    r = configure(client, caller="mallory", enabled=False)
    assert r.status_code == 403
    assert r.json()["error"] == "Unauthorized"
    assert configure(client, caller=None).status_code == 403
    assert client.get("/modules/github").json()["config"]["enabled"] is True


def test_configure_replaces_config(client):
    r = configure(client, name="Renamed", cooldown_seconds=60, amount=1)
    assert r.status_code == 200
    assert r.json()["config"] == {"name": "Renamed", "enabled": True, "cooldown_seconds": 60, "amount": 1}


def test_configure_rejects_negative_values(client):
    assert configure(client, cooldown_seconds=-1).status_code == 422
    assert configure(client, amount=-5).status_code == 422


def test_module_views(client):
    r = client.get("/modules")
    assert r.status_code == 200
    [view] = r.json()
    assert view["module_id"] == "github"
    assert view["type"] == "github"
    assert view["scheme_name"] == "GithubModule"

    assert client.get("/modules/unknown").status_code == 404

    # config without an installed module is still listed
    assert configure(client, module_id="pending").status_code == 200
    view = client.get("/modules/pending").json()
    assert view["type"] is None
    assert view["config"]["name"] == "GithubModule"


def test_nonce_and_cooldown_views(client, drip_body):
    assert client.post("/drip", json=drip_body(nonce=7)).status_code == 200

    r = client.get("/nonces/7")
    assert r.json()["used"] is True
    assert r.json()["nonce"] == "0x" + "0" * 63 + "7"
    assert client.get("/nonces/8").json()["used"] is False

    r = client.get("/cooldowns/github/" + b"583231".hex())
    assert r.status_code == 200
    assert r.json()["last_drip"] == T0
    assert r.json()["next_drip_at"] == T0 + 86400


def test_events_feed(client, drip_body):
    client.post("/drip", json=drip_body(nonce=1))
    client.post("/drip", json=drip_body(nonce=2, identifier=b"42"))

    events = client.get("/events").json()["events"]
    assert len(events) == 2
    assert client.get("/events", params={"recipient": "0xnobody"}).json()["events"] == []


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert r.json()["chain_id"] == "testnet-1"
    assert r.json()["modules"] == 1


def test_request_id_propagated(client):
    r = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert r.headers["X-Request-ID"] == "req-123"
    assert client.get("/health").headers["X-Request-ID"]
