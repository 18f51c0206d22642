"""Tests for user profiles and admin user management."""

import os
import uuid
from datetime import datetime, timedelta, timezone

from jose import jwt
from sqlmodel import select

from app.models.user import User


def _token_headers(sub, email, secret=None):
    claims = {
        "sub": sub,
        "email": email,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    token = jwt.encode(claims, secret or os.environ["SUPABASE_JWT_SECRET"], algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


class TestAuthentication:
    def test_first_request_provisions_profile(self, client, session):
        user_id = uuid.uuid4()
        headers = _token_headers(str(user_id), "grace.hopper@example.com")

        response = client.get("/api/v1/users/me", headers=headers)
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(user_id)
        assert data["name"] == "grace.hopper"
        assert data["role"] == "user"
        assert data["is_active"] is True
        assert session.exec(select(User).where(User.id == user_id)).first() is not None

    def test_missing_token(self, client):
        response = client.get("/api/v1/users/me")
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Authentication required"}

    def test_bad_signature(self, client):
        headers = _token_headers(str(uuid.uuid4()), "x@example.com", secret="wrong-secret")
        response = client.get("/api/v1/users/me", headers=headers)
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    def test_sub_must_be_uuid(self, client):
        response = client.get("/api/v1/users/me", headers=_token_headers("not-a-uuid", "x@example.com"))
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid sub in token"

    def test_deactivated_account(self, client, make_user, auth_headers):
        user = make_user(is_active=False)
        response = client.get("/api/v1/users/me", headers=auth_headers(user))
        assert response.status_code == 403
        assert response.json()["message"] == "Account is deactivated"


class TestProfile:
    def test_update_name(self, client, customer_headers):
        response = client.patch("/api/v1/users/me", json={"name": "  Ada  "}, headers=customer_headers)
        assert response.status_code == 200
        assert response.json()["name"] == "Ada"

    def test_email_is_not_editable(self, client, customer_headers):
        response = client.patch(
            "/api/v1/users/me", json={"email": "new@example.com"}, headers=customer_headers
        )
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestAdminUsers:
    def test_list_and_filter(self, client, admin, customer, admin_headers):
        users = client.get("/api/v1/users", headers=admin_headers).json()
        assert {u["id"] for u in users} == {str(admin.id), str(customer.id)}

        admins = client.get("/api/v1/users?role=admin", headers=admin_headers).json()
        assert [u["id"] for u in admins] == [str(admin.id)]

    def test_get_unknown_user(self, client, admin_headers):
        response = client.get(f"/api/v1/users/{uuid.uuid4()}", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["message"] == "User not found"

    def test_promote(self, client, customer, admin_headers):
        response = client.patch(
            f"/api/v1/users/{customer.id}/role", json={"role": "admin"}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["role"] == "admin"

    def test_cannot_demote_self(self, client, admin, admin_headers):
        response = client.patch(
            f"/api/v1/users/{admin.id}/role", json={"role": "user"}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["message"] == "You cannot remove your own admin role"

    def test_deactivate_locks_customer_out(self, client, customer, customer_headers, admin_headers):
        response = client.patch(
            f"/api/v1/users/{customer.id}/status", json={"is_active": False}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        assert client.get("/api/v1/cart", headers=customer_headers).status_code == 403

    def test_cannot_deactivate_self(self, client, admin, admin_headers):
        response = client.patch(
            f"/api/v1/users/{admin.id}/status", json={"is_active": False}, headers=admin_headers
        )
        assert response.status_code == 400

    def test_customer_cannot_list(self, client, customer_headers):
        assert client.get("/api/v1/users", headers=customer_headers).status_code == 403
