"""Rate limits: box creation 429s past its limit; keys are per user, per client IP otherwise."""
from fastapi.testclient import TestClient
from starlette.requests import Request

from paybox.core.config import settings
from paybox.core.rate_limit import rate_key


def _request(headers: dict, client=("10.0.0.5", 5555)) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
    return Request({"type": "http", "method": "GET", "path": "/boxes", "headers": raw, "client": client})


def test_bearer_token_counts_per_user(make_headers):
    assert rate_key(_request(make_headers("seller-42"))) == "user:seller-42"


def test_invalid_token_falls_back_to_ip():
    assert rate_key(_request({"Authorization": "Bearer garbage"})) == "ip:10.0.0.5"


def test_forwarded_for_first_hop():
    r = _request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
    assert rate_key(r) == "ip:203.0.113.7"


def test_no_client_address():
    assert rate_key(_request({}, client=None)) == "ip:127.0.0.1"


def test_create_box_200_then_429(client: TestClient, users, monkeypatch):
    monkeypatch.setattr(settings, "rate_limit_create_per_minute", 2)
    for i in range(2):
        r = client.post("/boxes", json={"receiver_id": users["buyer"]}, headers=users["seller_headers"])
        assert r.status_code == 201, f"Request {i+1} should be 201"
    r = client.post(
        "/boxes",
        json={"receiver_id": users["buyer"]},
        headers={**users["seller_headers"], "X-Request-Id": "rl-1"},
    )
    assert r.status_code == 429
    j = r.json()
    assert j.get("code") == "rate_limited"
    assert j.get("status_code") == 429
    assert j.get("request_id") == "rl-1"
    assert "error" in j

    # the limit is per user: the buyer can still open boxes
    r = client.post("/boxes", json={"receiver_id": users["seller"]}, headers=users["buyer_headers"])
    assert r.status_code == 201
