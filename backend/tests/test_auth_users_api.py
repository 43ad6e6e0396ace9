"""
Authentication and user management tests.

Verifies:
- Registration, login and token-backed profile lookup
- Password changes
- Admin-only account management and default admin protection
"""

import pytest

from stockdesk.services.auth_service import (
    AuthenticationError,
    decode_token,
    hash_password,
    issue_token,
    verify_password,
)
from stockdesk.validation import ValidationError


# =============================================================================
# PASSWORDS AND TOKENS
# =============================================================================


class TestCredentials:
    def test_hash_and_verify(self, app):
        hashed = hash_password("secret1")
        assert hashed != "secret1"
        assert verify_password("secret1", hashed)
        assert not verify_password("secret2", hashed)
        assert not verify_password("secret1", "not-a-bcrypt-hash")

    def test_short_password_rejected(self, app):
        with pytest.raises(ValidationError):
            hash_password("12345")

    def test_token_round_trip(self, cashier_user):
        identity = decode_token(issue_token(cashier_user))
        assert identity.user_id == cashier_user.id
        assert identity.role == "user"
        assert identity.is_admin is False

    def test_expired_token(self, app, cashier_user):
        app.config["JWT_EXPIRES_HOURS"] = -1
        token = issue_token(cashier_user)
        with pytest.raises(AuthenticationError):
            decode_token(token)


# =============================================================================
# AUTH ROUTES
# =============================================================================


class TestAuthRoutes:
    def test_register_then_login(self, client):
        resp = client.post("/api/auth/register", json={
            "username": "newbie", "email": "newbie@company.com", "password": "hunter22",
        })
        assert resp.status_code == 201

        resp = client.post("/api/auth/login", json={"email": "newbie@company.com", "password": "hunter22"})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["user"]["username"] == "newbie"
        assert body["user"]["role"] == "user"
        assert "password_hash" not in body["user"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
        assert me.get_json()["user"]["email"] == "newbie@company.com"

    def test_register_duplicate(self, client, cashier_user):
        resp = client.post("/api/auth/register", json={
            "username": "cashier", "email": "other@company.com", "password": "hunter22",
        })
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Email or username already exists"

    def test_register_short_password(self, client):
        resp = client.post("/api/auth/register", json={
            "username": "x", "email": "x@company.com", "password": "123",
        })
        assert resp.status_code == 400

    def test_login_wrong_password(self, client, cashier_user):
        resp = client.post("/api/auth/login", json={"email": "cashier@company.com", "password": "nope-nope"})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid email or password"

    def test_login_missing_fields(self, client):
        assert client.post("/api/auth/login", json={"email": "a@b.co"}).status_code == 400

    def test_inactive_account_cannot_login(self, client, admin_headers, cashier_user):
        client.put(f"/api/users/{cashier_user.id}/status", json={"status": "inactive"}, headers=admin_headers)
        resp = client.post("/api/auth/login", json={"email": "cashier@company.com", "password": "cashier123"})
        assert resp.status_code == 403

    def test_change_password(self, client, cashier_headers):
        resp = client.put("/api/auth/change-password", json={
            "currentPassword": "cashier123", "newPassword": "better-one",
        }, headers=cashier_headers)
        assert resp.status_code == 200

        resp = client.post("/api/auth/login", json={"email": "cashier@company.com", "password": "better-one"})
        assert resp.status_code == 200

    def test_change_password_wrong_current(self, client, cashier_headers):
        resp = client.put("/api/auth/change-password", json={
            "currentPassword": "wrong-one", "newPassword": "better-one",
        }, headers=cashier_headers)
        assert resp.status_code == 401


# =============================================================================
# USER MANAGEMENT
# =============================================================================


class TestUserManagement:
    def test_list_users_admin_only(self, client, admin_headers, cashier_headers):
        assert client.get("/api/users", headers=cashier_headers).status_code == 403
        body = client.get("/api/users", headers=admin_headers).get_json()
        assert {u["username"] for u in body["users"]} == {"admin", "cashier"}

    def test_user_reads_own_record_only(self, client, admin_user, cashier_user, cashier_headers):
        assert client.get(f"/api/users/{cashier_user.id}", headers=cashier_headers).status_code == 200
        assert client.get(f"/api/users/{admin_user.id}", headers=cashier_headers).status_code == 403

    def test_admin_creates_user(self, client, admin_headers):
        resp = client.post("/api/users", json={
            "username": "clerk", "email": "clerk@company.com", "password": "clerk123", "branch": "North",
        }, headers=admin_headers)
        assert resp.status_code == 201

    def test_update_user(self, client, admin_headers, cashier_user):
        resp = client.put(f"/api/users/{cashier_user.id}", json={"branch": "Uptown"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["branch"] == "Uptown"

    def test_update_rejects_bad_role(self, client, admin_headers, cashier_user):
        resp = client.put(f"/api/users/{cashier_user.id}", json={"role": "owner"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_default_admin_is_protected(self, client, admin_headers, admin_user):
        resp = client.put(f"/api/users/{admin_user.id}", json={"role": "user"}, headers=admin_headers)
        assert resp.status_code == 403
        resp = client.delete(f"/api/users/{admin_user.id}", headers=admin_headers)
        assert resp.status_code == 403
        resp = client.put(f"/api/users/{admin_user.id}/status", json={"status": "inactive"}, headers=admin_headers)
        assert resp.status_code == 403

    def test_delete_user_keeps_their_sales(self, client, admin_headers, cashier_user, cashier_headers,
                                           make_product, checkout_payload):
        product = make_product(quantity=3, selling_price=1.0)
        sale_id = client.post(
            "/api/sales", json=checkout_payload((product.id, 1, 1.0)), headers=cashier_headers,
        ).get_json()["saleId"]

        resp = client.delete(f"/api/users/{cashier_user.id}", headers=admin_headers)
        assert resp.status_code == 200

        sale = client.get(f"/api/sales/{sale_id}", headers=admin_headers).get_json()["sale"]
        assert sale["user_id"] is None
        assert sale["cashier_name"] is None

    def test_admin_resets_password(self, client, admin_headers, cashier_user):
        resp = client.put(
            f"/api/users/{cashier_user.id}/password", json={"newPassword": "reset-123"}, headers=admin_headers,
        )
        assert resp.status_code == 200
        resp = client.post("/api/auth/login", json={"email": "cashier@company.com", "password": "reset-123"})
        assert resp.status_code == 200

    def test_overview(self, client, admin_headers, cashier_user):
        stats = client.get("/api/users/stats/overview", headers=admin_headers).get_json()["stats"]
        assert stats["totalUsers"] == 2
        assert stats["adminUsers"] == 1
        assert stats["regularUsers"] == 1
        assert stats["newThisWeek"] == 2
        assert {"branch": "HQ", "count": 1} in stats["byBranch"]

    def test_activity(self, client, cashier_user, cashier_headers, make_product, checkout_payload):
        product = make_product(quantity=3, selling_price=2.0)
        client.post("/api/sales", json=checkout_payload((product.id, 2, 2.0)), headers=cashier_headers)

        body = client.get(f"/api/users/{cashier_user.id}/activity", headers=cashier_headers).get_json()
        assert body["activity"]["total_sales"] == 1
        assert body["activity"]["total_revenue"] == 4.0
        assert len(body["activity"]["recent_sales"]) == 1


# =============================================================================
# SYSTEM
# =============================================================================


class TestSystem:
    def test_health(self, client):
        body = client.get("/api/health").get_json()
        assert body["success"] is True
        assert body["database"]["status"] == "healthy"

    def test_unknown_route_is_json_404(self, client):
        resp = client.get("/api/nowhere")
        assert resp.status_code == 404
        assert resp.get_json()["success"] is False
