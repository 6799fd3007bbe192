"""Tests for the JSON API: cookies, admin gating and status code mapping."""

import pytest
from fastapi.testclient import TestClient

from chorecoin.core import db_client
from chorecoin.interface.sessions import ADMIN_COOKIE, SESSION_COOKIE
from chorecoin.main import app
from chorecoin.services import task_service


@pytest.fixture
def client(patched_db) -> TestClient:
    """Test client backed by the in-memory database (lifespan not started)."""
    return TestClient(app)


def _create_group(client: TestClient) -> dict:
    response = client.post("/api/groups", json={"name": "Maple House", "admin_pin": "1234"})
    assert response.status_code == 201
    return response.json()["data"]["group"]


def _add_member(client: TestClient, name: str) -> dict:
    response = client.post("/api/admin/members", json={"name": name})
    assert response.status_code == 201
    return response.json()["data"]


def _create_task(client: TestClient, **overrides) -> dict:
    payload = {"name": "Dishes", "points": 3, "due_date": "2024-06-10", **overrides}
    response = client.post("/api/admin/tasks", json=payload)
    assert response.status_code == 201
    return response.json()["data"]


def _select(client: TestClient, member_id: str) -> None:
    response = client.post("/api/session/member", json={"member_id": member_id})
    assert response.status_code == 200


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_requests_without_session_are_rejected(client: TestClient) -> None:
    response = client.get("/api/board")

    assert response.status_code == 401
    assert response.json()["detail"] == "Join or create a group first"


def test_tampered_session_cookie_is_rejected(client: TestClient) -> None:
    client.cookies.set(SESSION_COOKIE, "not-a-signed-token")

    response = client.get("/api/group")

    assert response.status_code == 401


def test_create_group_sets_session_and_admin_cookies(client: TestClient) -> None:
    group = _create_group(client)

    assert SESSION_COOKIE in client.cookies
    assert ADMIN_COOKIE in client.cookies
    response = client.get("/api/group")
    assert response.json()["data"]["id"] == group["id"]
    assert "admin_pin" not in response.json()["data"]


def test_create_group_with_bad_pin(client: TestClient) -> None:
    response = client.post("/api/groups", json={"name": "Maple House", "admin_pin": "12"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "ERR_VALIDATION"
    assert SESSION_COOKIE not in client.cookies


def test_claim_and_complete_flow(client: TestClient) -> None:
    _create_group(client)
    alice = _add_member(client, "Alice")
    task = _create_task(client, recurrence={"interval": 1, "unit": "weeks"})
    _select(client, alice["id"])

    claimed = client.post(f"/api/tasks/{task['id']}/claim")
    completed = client.post(f"/api/tasks/{task['id']}/complete")

    assert claimed.status_code == 200
    assert claimed.json()["data"]["claimed_by"] == alice["id"]
    assert completed.status_code == 200
    data = completed.json()["data"]
    assert data["balance"] == 3
    assert data["next_task"]["due_date"] == "2024-06-17"
    assert data["next_task"]["status"] == "available"
    assert data["next_task"]["recurrence_label"] == "weekly"
    assert client.get("/api/balance").json()["data"] == {"member_id": alice["id"], "points": 3}


def test_claim_without_member_is_a_bad_request(client: TestClient) -> None:
    _create_group(client)
    task = _create_task(client)

    response = client.post(f"/api/tasks/{task['id']}/claim")

    assert response.status_code == 400
    assert response.json()["message"] == "Select yourself first"


def test_invalid_state_maps_to_conflict(client: TestClient) -> None:
    _create_group(client)
    alice = _add_member(client, "Alice")
    task = _create_task(client)
    _select(client, alice["id"])
    client.post(f"/api/tasks/{task['id']}/claim")

    response = client.post(f"/api/tasks/{task['id']}/claim")

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_INVALID_STATE"


def test_takeover_through_api(client: TestClient) -> None:
    _create_group(client)
    alice = _add_member(client, "Alice")
    bob = _add_member(client, "Bob")
    client.post(f"/api/admin/members/{alice['id']}/adjust", json={"delta": 10, "note": "head start"})
    task = _create_task(client)
    _select(client, alice["id"])
    client.post(f"/api/tasks/{task['id']}/claim")
    _select(client, bob["id"])

    response = client.post(f"/api/tasks/{task['id']}/claim", json={"claim_from_member_id": alice["id"]})

    assert response.status_code == 200
    assert response.json()["data"]["claimed_by"] == bob["id"]


def test_unknown_task_is_not_found(client: TestClient) -> None:
    _create_group(client)

    response = client.get("/api/tasks/missing")

    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND"


def test_board_groups_tasks(client: TestClient) -> None:
    _create_group(client)
    _create_task(client, name="Dishes", due_date="2024-06-09")
    _create_task(client, name="Vacuum", due_date="2024-06-11")

    response = client.get("/api/board", params={"today": "2024-06-10"})

    buckets = response.json()["data"]["buckets"]
    assert [t["name"] for t in buckets["overdue"]] == ["Dishes"]
    assert [t["name"] for t in buckets["tomorrow"]] == ["Vacuum"]


def test_joined_member_needs_pin_for_admin_routes(client: TestClient) -> None:
    group = _create_group(client)
    member_client = TestClient(app)
    joined = member_client.post("/api/groups/join", json={"code": group["code"].lower()})
    assert joined.status_code == 200
    assert ADMIN_COOKIE not in member_client.cookies

    denied = member_client.post("/api/admin/tasks", json={"name": "Dishes", "points": 3, "due_date": "2024-06-10"})
    wrong_pin = member_client.post("/api/admin/login", json={"pin": "0000"})
    login = member_client.post("/api/admin/login", json={"pin": "1234"})
    allowed = member_client.post("/api/admin/tasks", json={"name": "Dishes", "points": 3, "due_date": "2024-06-10"})

    assert denied.status_code == 403
    assert denied.json()["error_code"] == "ERR_PERMISSION_DENIED"
    assert wrong_pin.status_code == 403
    assert login.status_code == 200
    assert allowed.status_code == 201


def test_admin_cookie_is_bound_to_its_group(client: TestClient) -> None:
    _create_group(client)
    admin_token = client.cookies[ADMIN_COOKIE]
    other_client = TestClient(app)
    other = other_client.post("/api/groups", json={"name": "Next Door", "admin_pin": "9999"})
    assert other.status_code == 201
    other_client.cookies.delete(ADMIN_COOKIE)
    other_client.cookies.set(ADMIN_COOKIE, admin_token)

    response = other_client.get("/api/admin/tasks")

    assert response.status_code == 403


def test_admin_task_validation(client: TestClient) -> None:
    _create_group(client)

    response = client.post("/api/admin/tasks", json={"name": "Dishes", "points": "lots", "due_date": "2024-06-10"})

    assert response.status_code == 400
    assert "whole number" in response.json()["message"]


def test_admin_update_and_delete_task(client: TestClient) -> None:
    _create_group(client)
    task = _create_task(client)

    patched = client.patch(f"/api/admin/tasks/{task['id']}", json={"points": 5, "recurrence": None})
    deleted = client.delete(f"/api/admin/tasks/{task['id']}")

    assert patched.status_code == 200
    assert patched.json()["data"]["points"] == 5
    assert deleted.status_code == 200
    assert client.get(f"/api/tasks/{task['id']}").status_code == 404


def test_admin_logout_drops_admin_rights(client: TestClient) -> None:
    _create_group(client)

    response = client.post("/api/admin/logout")

    assert response.status_code == 200
    assert ADMIN_COOKIE in response.headers["set-cookie"]
    client.cookies.delete(ADMIN_COOKIE)
    assert client.get("/api/admin/tasks").status_code == 403


def test_history_endpoint(client: TestClient) -> None:
    _create_group(client)
    alice = _add_member(client, "Alice")
    client.post(f"/api/admin/members/{alice['id']}/adjust", json={"delta": -2, "note": "broke a mug"})

    response = client.get("/api/history", params={"limit": 1})

    entries = response.json()["data"]
    assert len(entries) == 1
    assert entries[0]["action"] == "points_adjusted"
    assert entries[0]["points"] == -2
    assert entries[0]["note"] == "broke a mug"


def test_store_failure_returns_internal_error(client: TestClient, monkeypatch) -> None:
    _create_group(client)

    async def broken_list_upcoming(**kwargs):
        msg = "disk I/O error"
        raise db_client.DatabaseError(msg)

    monkeypatch.setattr(task_service, "list_upcoming", broken_list_upcoming)
    failing_client = TestClient(app, raise_server_exceptions=False, cookies=client.cookies)

    response = failing_client.get("/api/tasks")

    assert response.status_code == 500
    assert response.json()["error_code"] == "ERR_INTERNAL"
