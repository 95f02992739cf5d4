"""Participant endpoints: /boxes."""
from datetime import datetime, timedelta

from fastapi.testclient import TestClient


def _open(client: TestClient, users) -> dict:
    r = client.post("/boxes", json={"receiver_id": users["buyer"]}, headers=users["seller_headers"])
    assert r.status_code == 201, r.text
    return r.json()


def _confirmed(client: TestClient, users, duration: str = "7days") -> dict:
    box = _open(client, users)
    client.post(f"/boxes/{box['id']}/duration", json={"payment_duration": duration}, headers=users["buyer_headers"])
    client.post(f"/boxes/{box['id']}/paid", json={}, headers=users["buyer_headers"])
    r = client.post(f"/admin/boxes/{box['id']}/confirm", headers=users["admin_headers"])
    assert r.status_code == 200, r.text
    return r.json()


def test_requires_login(client: TestClient):
    r = client.post("/boxes", json={"receiver_id": "someone"})
    assert r.status_code == 401


def test_invalid_token(client: TestClient):
    r = client.get("/boxes", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


def test_create_box(client: TestClient, users):
    box = _open(client, users)
    assert box["status"] == "pending"
    assert box["phase"] == "pending"
    assert box["sender_id"] == users["seller"]
    assert box["receiver_id"] == users["buyer"]
    assert box["remaining_days"] is None
    assert "cancel" in box["available_actions"]


def test_create_box_validation(client: TestClient, users):
    r = client.post("/boxes", json={}, headers=users["seller_headers"])
    assert r.status_code == 422
    assert r.json().get("code") == "validation_error"

    r = client.post("/boxes", json={"receiver_id": users["seller"]}, headers=users["seller_headers"])
    assert r.status_code == 403
    assert r.json().get("code") == "invalid_actor"


def test_full_flow(client: TestClient, users):
    box = _open(client, users)
    box_id = box["id"]
    buyer, seller, admin = users["buyer_headers"], users["seller_headers"], users["admin_headers"]

    r = client.post(f"/boxes/{box_id}/duration", json={"payment_duration": "3days"}, headers=buyer)
    assert r.status_code == 200
    assert r.json()["payment_duration_days"] == 3
    assert r.json()["phase"] == "duration_selected"

    r = client.post(f"/boxes/{box_id}/paid", json={"bill_image_url": "https://img/bill.png"}, headers=buyer)
    assert r.json()["status"] == "buyer_paid"

    r = client.post(f"/admin/boxes/{box_id}/confirm", headers=admin)
    assert r.json()["status"] == "admin_confirmed"
    assert r.json()["transaction_start_at"] is not None

    r = client.post(f"/boxes/{box_id}/handoff", headers=seller)
    assert r.json()["phase"] == "seller_completed"

    r = client.post(f"/boxes/{box_id}/confirm-receipt", json={"received": True}, headers=buyer)
    assert r.json()["phase"] == "buyer_confirmed"

    r = client.post(
        f"/boxes/{box_id}/payout", json={"bank_account": "0011", "bank_name": "VCB"}, headers=seller
    )
    assert r.json()["phase"] == "seller_requested_payout"

    r = client.post(f"/admin/boxes/{box_id}/complete", headers=admin)
    assert r.status_code == 200
    assert r.json()["status"] == "completed"
    assert r.json()["available_actions"] == []

    r = client.post(f"/boxes/{box_id}/cancel", headers=seller)
    assert r.status_code == 409
    assert r.json()["code"] == "invalid_state"
    assert r.headers.get("X-Box-Id") == box_id


def test_wrong_party_is_forbidden(client: TestClient, users):
    box = _open(client, users)
    r = client.post(
        f"/boxes/{box['id']}/duration", json={"payment_duration": "24h"}, headers=users["seller_headers"]
    )
    assert r.status_code == 403
    assert r.json()["code"] == "invalid_actor"


def test_stranger_cannot_read_box(client: TestClient, users, make_headers):
    box = _open(client, users)
    r = client.get(f"/boxes/{box['id']}", headers=make_headers("stranger"))
    assert r.status_code == 403
    r = client.get(f"/boxes/{box['id']}", headers=users["buyer_headers"])
    assert r.status_code == 200
    assert r.json()["id"] == box["id"]


def test_unknown_box(client: TestClient, users):
    r = client.get("/boxes/nope", headers=users["buyer_headers"])
    assert r.status_code == 404
    assert r.json()["code"] == "not_found"


def test_missing_fields(client: TestClient, users):
    box = _open(client, users)
    box_id = box["id"]
    r = client.post(f"/boxes/{box_id}/paid", headers=users["buyer_headers"])
    assert r.status_code == 422
    assert r.json()["code"] == "missing_field"

    r = client.post(
        f"/boxes/{box_id}/duration", json={"payment_duration": "custom"}, headers=users["buyer_headers"]
    )
    assert r.status_code == 422
    assert r.json()["code"] == "missing_field"

    r = client.post(
        f"/boxes/{box_id}/duration",
        json={"payment_duration": "custom", "custom_days": 10},
        headers=users["buyer_headers"],
    )
    assert r.status_code == 200
    assert r.json()["payment_duration_days"] == 10


def test_buyer_rejects_pending_box(client: TestClient, users):
    box = _open(client, users)
    r = client.post(f"/boxes/{box['id']}/reject", headers=users["buyer_headers"])
    assert r.status_code == 200
    assert r.json()["status"] == "rejected"


def test_seller_rejection_needs_reason(client: TestClient, users):
    box = _open(client, users)
    box_id = box["id"]
    client.post(f"/boxes/{box_id}/duration", json={"payment_duration": "24h"}, headers=users["buyer_headers"])
    client.post(f"/boxes/{box_id}/paid", headers=users["buyer_headers"])
    r = client.post(f"/boxes/{box_id}/reject", json={}, headers=users["seller_headers"])
    assert r.status_code == 422
    r = client.post(
        f"/boxes/{box_id}/reject", json={"reason": "no transfer"}, headers=users["seller_headers"]
    )
    assert r.status_code == 200
    assert r.json()["seller_rejection_reason"] == "no transfer"


def test_refund_flow(client: TestClient, users, api_clock):
    box = _confirmed(client, users)
    box_id = box["id"]
    api_clock.advance(days=1)
    r = client.post(
        f"/boxes/{box_id}/refund",
        json={"reason": "wrong item", "bank_account": "0123", "bank_name": "ACB"},
        headers=users["buyer_headers"],
    )
    assert r.status_code == 200
    assert r.json()["status"] == "refund_requested"
    api_clock.advance(hours=2)
    r = client.post(f"/admin/boxes/{box_id}/refund/approve", headers=users["admin_headers"])
    assert r.status_code == 200
    j = r.json()
    assert j["status"] == "refunded"
    assert j["refund_requested_at"] < j["refund_approved_at"]


def test_refund_needs_bank_details(client: TestClient, users):
    box = _confirmed(client, users)
    r = client.post(
        f"/boxes/{box['id']}/refund", json={"reason": "wrong item"}, headers=users["buyer_headers"]
    )
    assert r.status_code == 422
    assert r.json()["code"] == "missing_field"


def test_countdown_and_escape_valve(client: TestClient, users, api_clock):
    box = _confirmed(client, users, duration="3days")
    box_id = box["id"]
    assert box["remaining_days"] == 3
    start = api_clock()

    api_clock.advance(days=1, hours=2)
    r = client.get(f"/boxes/{box_id}", headers=users["buyer_headers"])
    assert r.json()["remaining_days"] == 2
    assert r.json()["expired"] is False

    client.post(f"/boxes/{box_id}/handoff", headers=users["seller_headers"])
    r = client.post(f"/boxes/{box_id}/confirm-receipt", headers=users["buyer_headers"])
    assert r.status_code == 422

    api_clock.advance(days=2)
    r = client.get(f"/boxes/{box_id}", headers=users["buyer_headers"])
    assert r.json()["expired"] is True
    assert r.json()["remaining_days"] == 0
    ends_at = datetime.fromisoformat(r.json()["window_ends_at"].replace("Z", "+00:00"))
    assert ends_at == start + timedelta(days=3)

    r = client.post(f"/boxes/{box_id}/confirm-receipt", headers=users["buyer_headers"])
    assert r.status_code == 200
    assert r.json()["phase"] == "buyer_confirmed"


def test_no_time_duration_has_no_countdown(client: TestClient, users):
    box = _confirmed(client, users, duration="no_time")
    assert box["payment_duration_days"] == 0
    assert box["remaining_days"] is None
    assert box["expired"] is False


def test_list_boxes(client: TestClient, users):
    first = _open(client, users)
    second = _open(client, users)
    client.post(f"/boxes/{second['id']}/cancel", headers=users["seller_headers"])

    r = client.get("/boxes", headers=users["buyer_headers"])
    ids = [b["id"] for b in r.json()]
    assert set(ids) == {first["id"], second["id"]}

    r = client.get("/boxes", params={"status": "cancelled"}, headers=users["seller_headers"])
    assert [b["id"] for b in r.json()] == [second["id"]]


def test_buyer_reply(client: TestClient, users):
    box = _confirmed(client, users)
    r = client.post(
        f"/boxes/{box['id']}/reply", json={"message": "photo sent"}, headers=users["buyer_headers"]
    )
    assert r.status_code == 200
    assert r.json()["buyer_reply"] == "photo sent"
    r = client.post(
        f"/boxes/{box['id']}/reply", json={"message": "me too"}, headers=users["seller_headers"]
    )
    assert r.status_code == 403


def test_changes_feed(client: TestClient, users, make_headers):
    r = client.get("/boxes/changes", headers=users["buyer_headers"])
    cursor = r.json()["cursor"]

    box = _open(client, users)
    client.post(f"/boxes/{box['id']}/reject", headers=users["buyer_headers"])

    r = client.get("/boxes/changes", params={"after": cursor}, headers=users["buyer_headers"])
    assert r.status_code == 200
    events = r.json()["events"]
    assert [e["type"] for e in events] == ["create", "reject"]
    assert all(e["box_id"] == box["id"] for e in events)
    assert r.json()["cursor"] >= events[-1]["seq"]

    r = client.get("/boxes/changes", params={"after": cursor}, headers=make_headers("outsider"))
    assert r.json()["events"] == []


def test_custom_days_must_be_a_number(client: TestClient, users):
    box = _open(client, users)
    r = client.post(
        f"/boxes/{box['id']}/duration",
        json={"payment_duration": "custom", "custom_days": True},
        headers=users["buyer_headers"],
    )
    assert r.status_code == 422
    assert r.json()["code"] == "validation_error"
    r = client.get(f"/boxes/{box['id']}", headers=users["buyer_headers"])
    assert r.json()["payment_duration"] is None


def test_over_length_inputs(client: TestClient, users, make_headers):
    r = client.post("/boxes", json={"receiver_id": "b" * 65}, headers=users["seller_headers"])
    assert r.status_code == 422
    assert r.json()["code"] == "missing_field"

    box = _confirmed(client, users)
    r = client.post(
        f"/boxes/{box['id']}/refund",
        json={"reason": "wrong item", "bank_account": "1" * 65, "bank_name": "ACB"},
        headers=users["buyer_headers"],
    )
    assert r.status_code == 422
    assert r.json()["code"] == "missing_field"

    r = client.get("/boxes", headers=make_headers("u" * 65))
    assert r.status_code == 401
