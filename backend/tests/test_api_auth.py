"""
Authentication and authorization over HTTP.

Verifies:
- Unauthenticated requests return 401
- Employees are denied admin operations (403)
- Login/logout/me round trip and session revocation
"""

import pytest

from conftest import PASSWORD, auth_headers, get_auth_token


# =============================================================================
# UNAUTHENTICATED ACCESS: 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/users"),
            ("GET", "/api/products"),
            ("GET", "/api/sessions"),
            ("POST", "/api/sessions"),
            ("GET", "/api/credit/customers"),
            ("GET", "/api/accounting/expenses"),
            ("GET", "/api/accounting/payroll"),
            ("GET", "/api/config"),
            ("GET", "/api/pos/sales"),
            ("POST", "/api/drawer/open"),
            ("GET", "/api/drawer/alerts"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client):
        resp = client.get("/api/auth/me", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401


# =============================================================================
# EMPLOYEE DENIED ADMIN OPERATIONS: 403
# =============================================================================


class TestEmployeeDeniedAdmin:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/users"),
            ("POST", "/api/products"),
            ("POST", "/api/sessions/1/approve"),
            ("POST", "/api/sessions/1/reopen"),
            ("GET", "/api/accounting/expenses"),
            ("GET", "/api/accounting/summary"),
            ("POST", "/api/accounting/payroll/1/approve"),
            ("PATCH", "/api/config"),
            ("GET", "/api/drawer/logs"),
            ("GET", "/api/drawer/alerts"),
        ],
    )
    def test_forbidden(self, client, employee_headers, method, path):
        resp = getattr(client, method.lower())(path, json={}, headers=employee_headers)
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"


# =============================================================================
# LOGIN / LOGOUT
# =============================================================================


class TestLoginFlow:
    def test_login_returns_token_and_user(self, client, admin_user):
        resp = client.post("/api/auth/login", json={"username": "ADMIN ", "password": PASSWORD})
        assert resp.status_code == 200
        body = resp.get_json()
        assert len(body["token"]) == 64
        assert body["user"]["role"] == "ADMIN"
        assert body["expires_at"].endswith("Z")

    def test_bad_password(self, client, admin_user):
        resp = client.post("/api/auth/login", json={"username": "admin", "password": "wrong-pass1"})
        assert resp.status_code == 401

    def test_missing_fields(self, client):
        resp = client.post("/api/auth/login", json={"username": "admin"})
        assert resp.status_code == 400

    def test_me_and_logout(self, client, employee_user):
        token = get_auth_token(client, "empleado")
        headers = auth_headers(token)

        me = client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200
        assert me.get_json()["user"]["username"] == "empleado"

        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_deactivated_user_loses_session(self, client, admin_headers, employee_user):
        token = get_auth_token(client, "empleado")
        resp = client.put(f"/api/users/{employee_user.id}", json={"is_active": False}, headers=admin_headers)
        assert resp.status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401


# =============================================================================
# USER ADMINISTRATION
# =============================================================================


class TestUsersApi:
    def test_admin_creates_employee(self, client, admin_headers):
        resp = client.post(
            "/api/users",
            json={"username": "Luis", "name": "Luis", "password": "Barman2026", "role": "EMPLOYEE"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["user"]["username"] == "luis"

        dup = client.post(
            "/api/users",
            json={"username": "luis", "name": "Luis 2", "password": "Barman2026"},
            headers=admin_headers,
        )
        assert dup.status_code == 409

    def test_weak_password(self, client, admin_headers):
        resp = client.post(
            "/api/users",
            json={"username": "weak", "name": "Weak", "password": "short"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_last_admin_is_protected(self, client, admin_headers, admin_user):
        resp = client.put(f"/api/users/{admin_user.id}", json={"role": "EMPLOYEE"}, headers=admin_headers)
        assert resp.status_code == 409
        resp = client.delete(f"/api/users/{admin_user.id}", headers=admin_headers)
        assert resp.status_code == 409

    def test_delete_unknown_user(self, client, admin_headers):
        assert client.delete("/api/users/999", headers=admin_headers).status_code == 404
