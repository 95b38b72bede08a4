import pytest
from fastapi.testclient import TestClient

from revsplit.errors import EmptyOperationError, error_to_dict
from revsplit.metadata import decode_token_uri
from revsplit.rpc.app import create_app
from revsplit.rpc.models import ErrorView

from .conftest import CAROL, OUTSIDER, TREASURY


@pytest.fixture
def client(pull):
    return TestClient(create_app(pull))


def test_pull_flow_over_http(client, token, pull):
    token.transfer(TREASURY, OUTSIDER, 100)
    token.approve(OUTSIDER, pull.address, 100)
    r = client.post("/deposit", json={"caller": "alice", "source": "outsider"})
    assert r.status_code == 200
    assert r.json() == {"amount": 100}

    r = client.post("/claim", json={"caller": "carol", "ids": [2]})
    assert r.json() == {"amount": 50}
    assert token.balance_of(CAROL) == 50

    summary = client.get("/splitter").json()
    assert summary["total_deposited"] == 100
    assert summary["total_claimed"] == 50

    member = client.get("/members/0").json()
    assert member["claimable"] == 25
    assert decode_token_uri(member["token_uri"])["name"] == "Band #0"

    preview = client.get("/simulate").json()
    assert [p["amount"] for p in preview] == [25, 25, 0]


def test_errors_map_to_status_codes(client):
    r = client.post("/register", json={"caller": "outsider"})
    assert r.status_code == 403
    assert r.json()["code"] == "SPLIT_UNAUTHORIZED"
    assert set(r.json()) == {"code", "message", "details"}
    assert r.json()["details"]["caller"].startswith("0x")

    r = client.post("/register", json={"caller": "alice"})
    assert r.status_code == 409
    assert r.json()["code"] == "SPLIT_EMPTY"

    assert client.get("/members/7").status_code == 404
    assert client.post("/distribute", json={"caller": "alice"}).status_code == 405
    assert client.post("/claim", json={"caller": "alice", "ids": []}).status_code == 422


def test_push_over_http(token, push):
    client = TestClient(create_app(push))
    token.transfer(TREASURY, push.address, 8)
    assert [p["amount"] for p in client.get("/simulate").json()] == [2, 2, 4]
    assert [p["amount"] for p in client.get("/simulate", params={"amount": 4}).json()] == [1, 1, 2]
    r = client.post("/distribute", json={"caller": "bob"})
    assert r.status_code == 200
    assert token.balance_of(push.address) == 0
    assert client.get("/members/1").json()["claimable"] is None


def test_health_and_metrics(client):
    assert client.get("/healthz").json() == {"status": "ok"}
    client.post("/register", json={"caller": "outsider"})
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "revsplit_ops_total" in r.text


def test_error_payloads_fit_the_error_view():
    split = ErrorView(**error_to_dict(EmptyOperationError("nothing to register")))
    assert (split.code, split.details) == ("SPLIT_EMPTY", {})

    internal = ErrorView(**error_to_dict(RuntimeError("boom")))
    assert (internal.code, internal.message) == ("INTERNAL", "boom")
