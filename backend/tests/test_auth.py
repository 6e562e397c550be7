"""Tests for request authentication (bearer JWT and header fallback)."""
import inspect
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from starlette.requests import Request

from backend.core.auth import get_current_user, get_optional_user, require_admin, require_role
from backend.core.config import settings
from backend.core.errors import AuthenticationError
from backend.models.user import UserRole

SECRET = "unit-test-secret"


@pytest.fixture(autouse=True)
def jwt_secret(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_JWT_SECRET", SECRET)
    monkeypatch.setattr(settings, "AUTH_JWT_ALGORITHMS", "HS256")


def _token(secret=SECRET, **claims):
    payload = {"sub": "jwt-user", "email": "jwt@test.com", "role": "startup_owner"}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


def test_bearer_token_creates_user_on_first_sight(client):
    resp = client.get("/api/users/me", headers={"Authorization": f"Bearer {_token()}"})
    assert resp.status_code == 200
    user = resp.json()["data"]["user"]
    assert user["email"] == "jwt@test.com"
    assert user["role"] == "startup_owner"
    assert user["auth_uid"] == "jwt-user"

    again = client.get("/api/users/me", headers={"Authorization": f"Bearer {_token()}"})
    assert again.json()["data"]["user"]["id"] == user["id"]


def test_bad_signature_is_unauthorized(client):
    resp = client.get("/api/users/me", headers={"Authorization": f"Bearer {_token(secret='other')}"})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "unauthorized"


def test_expired_token_is_unauthorized(client):
    expired = _token(exp=datetime.now(timezone.utc) - timedelta(minutes=5))
    resp = client.get("/api/users/me", headers={"Authorization": f"Bearer {expired}"})
    assert resp.status_code == 401
    assert resp.json()["error"]["message"] == "Token expired"


def test_token_without_subject_is_unauthorized(client):
    resp = client.get("/api/users/me", headers={"Authorization": f"Bearer {_token(sub='')}"})
    assert resp.status_code == 401


def test_invalid_token_is_not_treated_as_anonymous(client):
    # A public route still rejects a forged token rather than ignoring it
    resp = client.get("/api/plans", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401


def test_header_fallback(client, headers_for):
    resp = client.get("/api/users/me", headers=headers_for("hdr-user", "startup_owner"))
    assert resp.status_code == 200
    assert resp.json()["data"]["user"]["role"] == "startup_owner"


def test_missing_identity_is_unauthorized(client):
    assert client.get("/api/users/me").status_code == 401


def test_role_guard(client, investor_headers, startup_payload):
    resp = client.post("/api/startups", headers=investor_headers, json=startup_payload)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "forbidden"


def test_admin_key_required_when_configured(client, investor_headers, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_KEY", "admin-secret")
    body = {"name": "Gold", "plan_for": "investor", "allowed_fields": ["startup"], "price": 10}

    denied = client.post("/api/plans", headers=investor_headers, json=body)
    assert denied.status_code == 403

    wrong = client.post("/api/plans", headers={**investor_headers, "X-Admin-Key": "nope"}, json=body)
    assert wrong.status_code == 403

    ok = client.post("/api/plans", headers={**investor_headers, "X-Admin-Key": "admin-secret"}, json=body)
    assert ok.status_code == 201


def test_production_ignores_user_id_header(client, startup, monkeypatch):
    monkeypatch.setattr(settings, "ENV", "production")
    forged = {"X-User-Id": "owner-uid", "X-User-Role": "startup_owner"}

    resp = client.get(f"/api/startups/{startup.id}", headers=forged)
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "unauthorized"


def test_production_still_accepts_bearer_token(client, startup, monkeypatch):
    monkeypatch.setattr(settings, "ENV", "production")
    token = _token(sub="owner-uid", email="owner-uid@test.com")

    resp = client.get(f"/api/startups/{startup.id}", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert resp.json()["data"]["access"] == "full"


def test_header_auth_can_be_switched_off(client, headers_for, monkeypatch):
    monkeypatch.setattr(settings, "HEADER_AUTH_ENABLED", False)
    assert client.get("/api/users/me", headers=headers_for("hdr-user")).status_code == 401


def test_auth_dependencies_are_sync(investor):
    # Plain functions run in the threadpool, off the event loop
    for dependency in (get_optional_user, get_current_user, require_admin, require_role(UserRole.INVESTOR)):
        assert not inspect.iscoroutinefunction(dependency)

    request = Request({"type": "http", "method": "GET", "path": "/", "headers": [(b"x-user-id", b"investor-uid")]})
    user = get_optional_user(request)
    assert user.id == investor.id
    assert request.state.user_id == investor.id

    with pytest.raises(AuthenticationError):
        get_current_user(user=None)
