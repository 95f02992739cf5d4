"""Health endpoint and the common error envelope."""
from fastapi.testclient import TestClient


def test_health_returns_ok(client: TestClient):
    r = client.get("/health")
    assert r.status_code == 200
    j = r.json()
    assert j.get("status") == "ok"
    assert j.get("service") == "paybox-api"
    assert j.get("database") in ("ok", "error")


def test_request_id_is_echoed(client: TestClient):
    r = client.get("/health", headers={"X-Request-Id": "abc123"})
    assert r.headers.get("X-Request-Id") == "abc123"


def test_unauthenticated_error_envelope(client: TestClient):
    r = client.get("/boxes", headers={"X-Request-Id": "req-1"})
    assert r.status_code == 401
    j = r.json()
    assert j.get("status_code") == 401
    assert j.get("request_id") == "req-1"
    assert "error" in j
