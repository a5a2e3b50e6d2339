import pytest
from fastapi.testclient import TestClient

from splitvote.engine.rpc import api
from splitvote.protocol.types.delegation import Delegation
from splitvote.protocol.crypto.addresses import address_from_bytes, address_sort_key
from conftest import addr

A, B = addr(0xA0), addr(0xB0)
D1, D2 = addr(1), addr(2)


@pytest.fixture
def client(ledger, monkeypatch):
    ledger.mint(A, 1000)
    ledger.set_delegations(A, [Delegation(delegatee=D1, numerator=6000), Delegation(delegatee=D2, numerator=4000)])
    ledger.clock.advance()
    ledger.transfer(A, B, 500)
    ledger.clock.advance()
    monkeypatch.setattr(api, "ledger", ledger)
    return TestClient(api.app)


def test_not_initialized(monkeypatch):
    monkeypatch.setattr(api, "ledger", None)
    resp = TestClient(api.app).get("/status")
    assert resp.status_code == 503


def test_status(client):
    data = client.get("/status").json()
    assert data["clock"] == 3
    assert data["clock_mode"] == "mode=blocknumber&from=default"
    assert data["total_supply"] == "1000"
    assert data["delegatees"] == 2


def test_current_and_past_votes(client):
    assert client.get(f"/votes/{D1}").json()["votes"] == "300"
    past = client.get(f"/votes/{D1}/at/1").json()
    assert past == {"delegatee": D1, "votes": "600", "time": 1}


def test_future_lookup_is_bad_request(client):
    resp = client.get(f"/votes/{D1}/at/3")
    assert resp.status_code == 400
    resp = client.get("/total_supply/at/99")
    assert resp.status_code == 400


def test_checkpoints(client):
    data = client.get(f"/votes/{D2}/checkpoints").json()
    assert data == [{"time": 1, "value": 400}, {"time": 2, "value": 200}]
    assert client.get(f"/votes/{B}/checkpoints").status_code == 404


def test_supply_and_delegations(client):
    assert client.get("/total_supply").json()["total_supply"] == "1000"
    assert client.get("/total_supply/at/0").json()["total_supply"] == "0"
    data = client.get(f"/delegations/{A}").json()
    assert data["delegations"] == [
        {"delegatee": D1, "numerator": 6000},
        {"delegatee": D2, "numerator": 4000},
    ]
    assert client.get(f"/delegations/{B}").json()["delegations"] == []
    assert client.get(f"/balance/{B}").json()["balance"] == "500"


def test_metrics_endpoint(client):
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "splitvote_total_supply" in resp.text


def test_address_case_and_prefix(client):
    assert client.get(f"/votes/{D1.upper()}").json()["votes"] == "300"
    assert client.get(f"/balance/{B.upper()}").json()["balance"] == "500"
    foreign = address_from_bytes(address_sort_key(D1), "cosmos")
    assert client.get(f"/votes/{foreign}").status_code == 400
    assert client.get(f"/delegations/{foreign}").status_code == 400
    assert client.get("/balance/svt1notvalid").status_code == 400
