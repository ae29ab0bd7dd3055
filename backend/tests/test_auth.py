"""
Authentication and authorization.

Verifies:
- Unauthenticated requests return 401
- Sellers are denied admin-only operations (403)
- Session tokens expire, idle out and are revoked on logout
"""

from datetime import timedelta

import pytest

from vendascontrol.extensions import db
from vendascontrol.models import SessionToken
from vendascontrol.services import auth_service, session_service
from vendascontrol.validation import ValidationError


# =============================================================================
# PASSWORDS AND USERS
# =============================================================================


def test_password_hash_roundtrip(app):
    hashed = auth_service.hash_password("segredo1")
    assert hashed != "segredo1"
    assert auth_service.verify_password("segredo1", hashed)
    assert not auth_service.verify_password("errado", hashed)
    assert not auth_service.verify_password("segredo1", "not-a-bcrypt-hash")


def test_short_password_rejected(app):
    with pytest.raises(ValidationError):
        auth_service.create_user("Ana", "ana@test.local", "12345")


def test_duplicate_email_rejected(app, seller_user):
    with pytest.raises(ValueError):
        auth_service.create_user("Outro", "SELLER@test.local", "outra123")


def test_authenticate(app, seller_user):
    assert auth_service.authenticate("seller@test.local", "seller123").id == seller_user.id
    assert auth_service.authenticate("seller@test.local", "wrong") is None

    auth_service.update_user(seller_user.id, is_active=False)
    assert auth_service.authenticate("seller@test.local", "seller123") is None


# =============================================================================
# SESSIONS
# =============================================================================


def test_session_validates_until_revoked(app, seller_user):
    _, token = session_service.create_session(seller_user.id)

    context = session_service.validate_session(token)
    assert context.user.id == seller_user.id

    assert session_service.revoke_session(token)
    assert session_service.validate_session(token) is None
    assert not session_service.revoke_session(token)


def test_idle_session_is_revoked(app, seller_user):
    session, token = session_service.create_session(seller_user.id)
    session.last_used_at = session.last_used_at - timedelta(minutes=app.config["SESSION_IDLE_MINUTES"] + 1)
    db.session.commit()

    assert session_service.validate_session(token) is None
    stored = db.session.get(SessionToken, session.id)
    assert stored.is_revoked
    assert stored.revoked_reason == "Idle timeout"


def test_expired_session(app, seller_user):
    session, token = session_service.create_session(seller_user.id)
    session.expires_at = session.created_at - timedelta(seconds=1)
    db.session.commit()

    assert session_service.validate_session(token) is None


def test_deactivated_user_loses_sessions(app, seller_user):
    _, token = session_service.create_session(seller_user.id)
    auth_service.update_user(seller_user.id, is_active=False)

    assert session_service.validate_session(token) is None


# =============================================================================
# HTTP
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/customers"),
            ("GET", "/api/products"),
            ("GET", "/api/budgets"),
            ("POST", "/api/budgets/sync"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("GET", "/api/service-orders"),
            ("GET", "/api/discards"),
            ("GET", "/api/settings/backup"),
            ("GET", "/api/reports/dashboard"),
            ("GET", "/api/auth/me"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_bad_token(self, client):
        resp = client.get("/api/customers", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401


class TestSellerDeniedAdminOperations:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/users"),
            ("POST", "/api/auth/users"),
            ("POST", "/api/budgets/sync"),
            ("GET", "/api/settings/backup"),
            ("POST", "/api/settings/restore"),
            ("PUT", "/api/settings/company"),
            ("DELETE", "/api/products/some-id"),
        ],
    )
    def test_forbidden(self, client, seller_headers, method, path):
        resp = getattr(client, method.lower())(path, headers=seller_headers, json={})
        assert resp.status_code == 403


def test_login_me_logout(client, seller_user):
    resp = client.post("/api/auth/login", json={"email": "seller@test.local", "password": "seller123"})
    assert resp.status_code == 200
    headers = {"Authorization": f"Bearer {resp.json['token']}"}

    me = client.get("/api/auth/me", headers=headers)
    assert me.json["user"]["role"] == "seller"

    assert client.post("/api/auth/logout", headers=headers).status_code == 200
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_login_failures(client, seller_user):
    assert client.post("/api/auth/login", json={}).status_code == 400
    resp = client.post("/api/auth/login", json={"email": "seller@test.local", "password": "x"})
    assert resp.status_code == 401


def test_admin_manages_users(client, admin_headers):
    resp = client.post("/api/auth/users", headers=admin_headers, json={
        "name": "Carlos", "email": "carlos@test.local", "password": "carlos1", "role": "seller",
    })
    assert resp.status_code == 201
    user_id = resp.json["user"]["id"]

    dup = client.post("/api/auth/users", headers=admin_headers, json={
        "name": "Carlos", "email": "carlos@test.local", "password": "carlos1",
    })
    assert dup.status_code == 409

    resp = client.patch(f"/api/auth/users/{user_id}", headers=admin_headers, json={"role": "admin"})
    assert resp.json["user"]["role"] == "admin"

    listing = client.get("/api/auth/users", headers=admin_headers)
    assert listing.json["count"] == 2
