import itertools

from fastapi.testclient import TestClient

from faucet.config import Settings
from faucet.main import create_app
from faucet.pow import pow_score, solve

PUBLIC_KEY = "00" * 33
OWNER = {"X-Caller-Id": "alice"}


def make_client(**overrides) -> TestClient:
    settings = dict(account_id="alice", account_suffix=".alice", min_difficulty=0, pool_balance=1_000_000)
    settings.update(overrides)
    return TestClient(create_app(Settings(**settings)))


def create(client: TestClient, account_id: str, nonce: int = 0, public_key: str = PUBLIC_KEY, headers=None):
    return client.post(
        "/create_account",
        json={"account_id": account_id, "public_key": public_key, "nonce": nonce},
        headers=headers or {},
    )


def test_root_and_views():
    client = make_client(min_difficulty=7)
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["ok"] is True and r.json()["initialized"] is True
    assert set(r.json()["endpoints"]) == {
        "/initialize", "/suffix", "/min_difficulty", "/granted_count", "/create_account",
        "/set_min_difficulty", "/add_access_key", "/requests/{txid}",
    }
    assert client.get("/suffix").json() == {"suffix": ".alice"}
    assert client.get("/min_difficulty").json() == {"min_difficulty": 7}
    assert client.get("/granted_count").json() == {"granted_count": 0}


def test_create_account():
    client = make_client()
    r = create(client, "test.alice")
    assert r.status_code == 200, r.text
    data = r.json()
    for k in ("txid", "request", "sig"):
        assert k in data
    assert data["request"]["receiver_id"] == "test.alice"
    assert [a["type"] for a in data["request"]["actions"]] == ["create_account", "transfer", "add_key"]
    assert data["request"]["actions"][1]["amount"] == 1_000
    assert client.get("/granted_count").json() == {"granted_count": 1}

    # the background flush has run once the response is back
    ledger = client.app.state.host.ledger
    assert ledger.get_balance("test.alice") == 1_000
    rec = client.get(f"/requests/{data['txid']}")
    assert rec.status_code == 200
    assert rec.json()["type"] == "request"


def test_create_account_with_difficulty():
    client = make_client(min_difficulty=20)
    assert create(client, "test.alice", nonce=89949).status_code == 200
    nonce = next(n for n in itertools.count() if pow_score(b"test2.alice", bytes(33), n) < 20)
    r = create(client, "test2.alice", nonce=nonce)
    assert r.status_code == 400
    assert r.json()["error"] == "proof_of_work_too_weak"
    assert client.get("/granted_count").json() == {"granted_count": 1}


def test_create_account_with_solved_nonce():
    client = make_client(min_difficulty=8)
    nonce = solve(b"solved.alice", bytes.fromhex(PUBLIC_KEY), 8)
    assert create(client, "solved.alice", nonce=nonce).status_code == 200


def test_create_account_errors():
    client = make_client()
    r = create(client, "bob")
    assert r.status_code == 400
    assert r.json() == {"error": "suffix_mismatch", "detail": "Account 'bob' has to end with '.alice'"}

    assert create(client, "test.alice").status_code == 200
    r = create(client, "test.alice", nonce=1)
    assert r.status_code == 409
    assert r.json()["error"] == "duplicate_account"
    assert client.get("/granted_count").json() == {"granted_count": 1}


def test_input_validation():
    client = make_client()
    assert create(client, "test.alice", nonce=-1).status_code == 422
    assert create(client, "test.alice", nonce=2**64).status_code == 422
    assert create(client, "test.alice", public_key="zz").status_code == 422
    r = client.post("/set_min_difficulty", json={"min_difficulty": 2**32}, headers=OWNER)
    assert r.status_code == 422
    assert client.get("/granted_count").json() == {"granted_count": 0}


def test_set_min_difficulty():
    client = make_client(min_difficulty=3)
    r = client.post("/set_min_difficulty", json={"min_difficulty": 12})
    assert r.status_code == 403
    assert r.json()["error"] == "unauthorized"
    r = client.post("/set_min_difficulty", json={"min_difficulty": 12}, headers={"X-Caller-Id": "mallory"})
    assert r.status_code == 403
    assert client.get("/min_difficulty").json() == {"min_difficulty": 3}

    r = client.post("/set_min_difficulty", json={"min_difficulty": 12}, headers=OWNER)
    assert r.status_code == 200
    assert r.json() == {"suffix": ".alice", "min_difficulty": 12, "granted_count": 0}


def test_add_access_key():
    client = make_client()
    key = "00" + "ab" * 32
    r = client.post("/add_access_key", json={"public_key": key})
    assert r.status_code == 403
    host = client.app.state.host
    assert key not in host.ledger.accounts["alice"].keys

    r = client.post("/add_access_key", json={"public_key": key}, headers=OWNER)
    assert r.status_code == 200, r.text
    assert r.json()["request"]["purpose"] == "delegate"
    assert host.ledger.accounts["alice"].keys[key]["method_names"] == ["create_account"]
    assert host.ledger.accounts["alice"].keys[key]["allowance"] == 0


def test_initialize_endpoint():
    client = TestClient(create_app(Settings(account_id="alice")))
    r = client.get("/suffix")
    assert r.status_code == 409
    assert r.json()["error"] == "not_initialized"

    r = client.post("/initialize", json={"suffix": ".alice", "min_difficulty": 4})
    assert r.status_code == 200
    assert r.json() == {"suffix": ".alice", "min_difficulty": 4, "granted_count": 0}

    r = client.post("/initialize", json={"suffix": ".bob", "min_difficulty": 1})
    assert r.status_code == 409
    assert r.json()["error"] == "already_initialized"
    assert client.get("/suffix").json() == {"suffix": ".alice"}


def test_unknown_txid():
    client = make_client()
    r = client.get("/requests/" + "00" * 32)
    assert r.status_code == 404
