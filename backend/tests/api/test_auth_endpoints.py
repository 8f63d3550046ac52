"""HTTP-level tests for the ``/api/v1/auth`` blueprint."""

from __future__ import annotations

from datetime import timedelta

import pytest
from freezegun import freeze_time

from authcore.models.user import Role
from authcore.services._shared.errors import INVALID_CREDENTIALS
from tests.factories.user import DEFAULT_PASSWORD, UserFactory
from tests.helpers.utils import bearer

BASE = "/api/v1/auth"
PROBLEM_JSON = "application/problem+json"


def _register(client, username="alice", password="s3cret"):
    return client.post(f"{BASE}/register", json={"username": username, "password": password})


def _login(client, username="alice", password="s3cret"):
    return client.post(f"{BASE}/login", json={"username": username, "password": password})


@pytest.fixture()
def login_as(client, session):
    """Create a committed user with ``role`` and return its token pair."""

    def _do(role: Role) -> dict:
        user = UserFactory(role=role)
        session.commit()
        resp = _login(client, user.username, DEFAULT_PASSWORD)
        assert resp.status_code == 200
        return resp.get_json()["data"]

    return _do


# -------------------------------- Register -------------------------------- #
def test_register_returns_public_user(client, faker):
    username = faker.user_name()
    resp = _register(client, username=username)

    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["username"] == username
    assert data["role"] == "User"
    assert "password_hash" not in data and "password" not in data


def test_register_duplicate_is_conflict(client):
    _register(client)
    resp = _register(client, password="different")

    assert resp.status_code == 409
    assert resp.mimetype == PROBLEM_JSON
    assert resp.get_json()["code"] == "conflict"


def test_register_validation_error(client):
    resp = client.post(f"{BASE}/register", json={"username": "alice"})

    assert resp.status_code == 422
    body = resp.get_json()
    assert body["code"] == "validation_error"
    assert "password" in body["details"]["errors"]


def test_register_rejects_role_in_payload(client):
    resp = client.post(
        f"{BASE}/register", json={"username": "eve", "password": "pw", "role": "SuperAdmin"}
    )
    assert resp.status_code == 422


# --------------------------------- Login ---------------------------------- #
def test_login_returns_token_pair(client):
    user_id = _register(client).get_json()["data"]["id"]
    resp = _login(client)

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["token_type"] == "Bearer"
    assert data["user_id"] == user_id
    assert data["expires_in"] == 15 * 60
    assert data["access_token"] and data["refresh_token"]


def test_login_failures_look_the_same(client):
    _register(client)
    unknown = _login(client, username="mallory")
    wrong = _login(client, password="nope")

    for resp in (unknown, wrong):
        assert resp.status_code == 401
        assert resp.headers["WWW-Authenticate"].startswith("Bearer")
        assert resp.get_json()["detail"] == INVALID_CREDENTIALS
    assert unknown.get_json()["code"] == wrong.get_json()["code"]


# -------------------------------- Refresh --------------------------------- #
def test_refresh_rotates_and_rejects_replay(client):
    _register(client)
    first = _login(client).get_json()["data"]
    body = {"user_id": first["user_id"], "refresh_token": first["refresh_token"]}

    rotated = client.post(f"{BASE}/refresh-token", json=body)
    assert rotated.status_code == 200
    assert rotated.get_json()["data"]["refresh_token"] != first["refresh_token"]

    replay = client.post(f"{BASE}/refresh-token", json=body)
    assert replay.status_code == 401
    assert replay.get_json()["code"] == "unauthorized"


def test_refresh_payload_is_validated(client):
    resp = client.post(f"{BASE}/refresh-token", json={"user_id": "1", "refresh_token": "x"})
    assert resp.status_code == 422


# ------------------------------ Protected ---------------------------------- #
def test_me_requires_bearer_token(client):
    resp = client.get(f"{BASE}/me")
    assert resp.status_code == 401
    assert resp.headers["WWW-Authenticate"].startswith("Bearer")


def test_me_rejects_garbage_token(client):
    resp = client.get(f"{BASE}/me", headers=bearer("not.a.jwt"))
    assert resp.status_code == 401
    assert resp.get_json()["code"] == "invalid_token"


def test_me_returns_profile(client):
    _register(client)
    tokens = _login(client).get_json()["data"]

    resp = client.get(f"{BASE}/me", headers=bearer(tokens["access_token"]))
    assert resp.status_code == 200
    assert resp.get_json()["data"]["username"] == "alice"


def test_authenticated_greeting(client):
    _register(client)
    tokens = _login(client).get_json()["data"]

    resp = client.get(BASE, headers=bearer(tokens["access_token"]))
    assert resp.status_code == 200
    assert resp.get_json()["data"]["message"] == "Hello alice."


def test_logout_invalidates_refresh_token(client):
    _register(client)
    tokens = _login(client).get_json()["data"]

    resp = client.post(f"{BASE}/logout", headers=bearer(tokens["access_token"]))
    assert resp.status_code == 204

    replay = client.post(
        f"{BASE}/refresh-token",
        json={"user_id": tokens["user_id"], "refresh_token": tokens["refresh_token"]},
    )
    assert replay.status_code == 401


def test_access_token_expires(client):
    with freeze_time("2026-03-01 12:00:00") as frozen:
        _register(client)
        tokens = _login(client).get_json()["data"]

        frozen.tick(timedelta(minutes=15) - timedelta(seconds=1))
        assert client.get(f"{BASE}/me", headers=bearer(tokens["access_token"])).status_code == 200

        frozen.tick(timedelta(seconds=1))
        assert client.get(f"{BASE}/me", headers=bearer(tokens["access_token"])).status_code == 401


# ------------------------------ Role gates -------------------------------- #
ROLE_MATRIX = [
    ("", {Role.USER, Role.ADMIN, Role.SUPER_ADMIN}),
    ("/admin-role", {Role.ADMIN}),
    ("/superadmin-role", {Role.SUPER_ADMIN}),
    ("/user-and-admin-role", {Role.USER, Role.ADMIN}),
]


@pytest.mark.parametrize("role", list(Role))
@pytest.mark.parametrize("path, allowed", ROLE_MATRIX)
def test_role_gates(client, login_as, role, path, allowed):
    tokens = login_as(role)
    resp = client.get(f"{BASE}{path}", headers=bearer(tokens["access_token"]))

    if role in allowed:
        assert resp.status_code == 200
    else:
        assert resp.status_code == 403
        assert resp.get_json()["code"] == "forbidden"


def test_role_gate_without_token_is_401(client):
    assert client.get(f"{BASE}/admin-role").status_code == 401


# -------------------------------- Plumbing -------------------------------- #
def test_health(client):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["db"] == "ok"
    assert body["refresh_backend"] == "database"


def test_unknown_route_is_problem_json(client):
    resp = client.get("/api/v1/nowhere")
    assert resp.status_code == 404
    assert resp.mimetype == PROBLEM_JSON


def test_responses_carry_request_id(client):
    assert client.get("/api/v1/health").headers.get("X-Request-ID")
