"""
HTTP tests for /auth and /settings.
"""

import asyncio
from unittest.mock import AsyncMock, patch

from crewbase.auth.tokens import TokenCodec
from crewbase.core.errors import StoreError, StoreErrorKind
from crewbase.core.models import Role


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# Login / Register
# =============================================================================


class TestLogin:
    def test_login_returns_token_and_summary(self, client, signup):
        token, user = signup()

        assert token
        assert user["email"] == "alice@example.com"
        assert user["role"] == "Employee"
        assert user["company_name"] == "No Company"
        assert "password_hash" not in user
        assert "token_version" not in user

    def test_missing_fields(self, client):
        response = client.post("/auth/login", json={"email": "alice@example.com"})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Email and password are required."}

    def test_wrong_password_and_unknown_email_look_the_same(self, client, signup):
        signup()

        wrong = client.post("/auth/login", json={"email": "alice@example.com", "password": "nope12"})
        unknown = client.post("/auth/login", json={"email": "who@example.com", "password": "nope12"})

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json() == {"success": False, "error": "Invalid email or password"}


class TestRegister:
    def test_duplicate_email(self, client, signup):
        signup()
        response = client.post(
            "/auth/register",
            json={"name": "A", "email": "alice@example.com", "password": "x" * 8, "role": "Employee"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "User already exists."

    def test_missing_fields(self, client):
        response = client.post("/auth/register", json={"name": "A", "email": "a@example.com"})
        assert response.status_code == 400
        assert response.json()["error"] == "All fields are required."

    def test_unknown_role(self, client):
        response = client.post(
            "/auth/register",
            json={"name": "A", "email": "a@example.com", "password": "secret1", "role": "Owner"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid role"

    def test_admin_role_not_self_service(self, client):
        body = {"name": "Eve", "email": "eve@example.com", "password": "secret1", "role": "Admin"}

        response = client.post("/auth/register", json=body)

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid role"}
        login = client.post("/auth/login", json={"email": "eve@example.com", "password": "secret1"})
        assert login.status_code == 401

    def test_password_over_bcrypt_limit(self, client):
        response = client.post(
            "/auth/register",
            json={"name": "A", "email": "a@example.com", "password": "p" * 80, "role": "Employee"},
        )
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Password must be at most 72 bytes long."}

    def test_limit_counts_utf8_bytes(self, client):
        over = client.post(
            "/auth/register",
            json={"name": "A", "email": "a@example.com", "password": "é" * 37, "role": "Employee"},
        )
        at_limit = client.post(
            "/auth/register",
            json={"name": "B", "email": "b@example.com", "password": "é" * 36, "role": "Employee"},
        )

        assert over.status_code == 400
        assert at_limit.status_code == 201
        login = client.post("/auth/login", json={"email": "b@example.com", "password": "é" * 36})
        assert login.status_code == 200

    def test_login_with_overlong_password(self, client, signup):
        signup()
        response = client.post("/auth/login", json={"email": "alice@example.com", "password": "p" * 80})
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid email or password"

    def test_malformed_body(self, client):
        response = client.post(
            "/auth/register",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["success"] is False


# =============================================================================
# Session Verification
# =============================================================================


class TestSession:
    def test_me(self, client, signup):
        token, user = signup()

        response = client.get("/auth/me", headers=bearer(token))

        assert response.status_code == 200
        assert response.json()["user"]["id"] == user["id"]

    def test_verify_echoes_user(self, client, signup):
        token, user = signup()
        response = client.post("/auth/verify", headers=bearer(token))
        assert response.json() == {"success": True, "user": user}

    def test_no_token(self, client):
        response = client.get("/auth/me")
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Unauthorized: No token provided"}

    def test_non_bearer_scheme(self, client):
        response = client.get("/auth/me", headers={"Authorization": "Basic abc"})
        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized: No token provided"

    def test_garbage_token(self, client):
        response = client.get("/auth/me", headers=bearer("garbage"))
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Invalid or expired token"}

    def test_expired_token(self, client, signup, settings):
        _, user = signup()
        token = TokenCodec(settings.jwt_secret_key, ttl_minutes=-5).issue(user["id"], Role.EMPLOYEE)

        response = client.get("/auth/me", headers=bearer(token))

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid or expired token"

    def test_foreign_signature(self, client, signup):
        _, user = signup()
        token = TokenCodec("someone-elses-secret").issue(user["id"], Role.EMPLOYEE)

        response = client.get("/auth/me", headers=bearer(token))
        assert response.status_code == 401

    def test_deleted_user(self, client, signup, storage):
        token, user = signup()
        asyncio.run(storage.users.delete(user["id"]))

        response = client.get("/auth/me", headers=bearer(token))
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "User not found"}

    def test_store_unavailable(self, client, signup, storage):
        token, _ = signup()

        failing = AsyncMock(side_effect=StoreError(StoreErrorKind.UNAVAILABLE, "timeout"))
        with patch.object(storage.users, "get_by_id", failing):
            response = client.get("/auth/me", headers=bearer(token))

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Internal Server Error."}

    def test_company_name_attached(self, client, admin_token):
        client.post(
            "/companies",
            json={
                "name": "Acme",
                "address": "1 Main St",
                "industry": "Retail",
                "managerName": "Mia",
                "managerEmail": "mia@acme.test",
                "managerPassword": "manager1",
            },
            headers=bearer(admin_token),
        )
        login = client.post("/auth/login", json={"email": "mia@acme.test", "password": "manager1"})

        user = login.json()["user"]
        assert user["role"] == "Manager"
        assert user["company_name"] == "Acme"
        assert user["company_id"].startswith("cmp_")

    def test_logout_without_token(self, client):
        response = client.post("/auth/logout")
        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_session_cookie_when_no_header(self, client, signup):
        token, user = signup()
        client.cookies.set("jwt", token)

        response = client.get("/auth/me")

        assert response.status_code == 200
        assert response.json()["user"]["id"] == user["id"]

    def test_bearer_header_wins_over_cookie(self, client, signup):
        token, user = signup()
        client.cookies.set("jwt", "garbage")

        response = client.get("/auth/me", headers=bearer(token))

        assert response.status_code == 200
        assert response.json()["user"]["id"] == user["id"]

    def test_bad_session_cookie(self, client):
        client.cookies.set("jwt", "garbage")
        response = client.get("/auth/me")
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid or expired token"

    def test_logout_clears_session_cookie(self, client, signup):
        token, _ = signup()
        client.cookies.set("jwt", token)

        response = client.post("/auth/logout")

        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith("jwt=")
        assert "max-age=0" in set_cookie.lower()


# =============================================================================
# Change Password
# =============================================================================


class TestChangePasswordRoute:
    def test_change_password(self, client, signup):
        token, _ = signup(password="hunter22")

        response = client.put(
            "/settings/change-password",
            json={"currentPassword": "hunter22", "newPassword": "hunter33", "confirmPassword": "hunter33"},
            headers=bearer(token),
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Password updated successfully."}

        old = client.post("/auth/login", json={"email": "alice@example.com", "password": "hunter22"})
        new = client.post("/auth/login", json={"email": "alice@example.com", "password": "hunter33"})
        assert old.status_code == 401
        assert new.status_code == 200

        # Sessions from before the change are gone
        assert client.get("/auth/me", headers=bearer(token)).status_code == 401

    def test_wrong_current_password_is_400(self, client, signup):
        token, _ = signup(password="hunter22")

        response = client.put(
            "/settings/change-password",
            json={"currentPassword": "guess123", "newPassword": "hunter33", "confirmPassword": "hunter33"},
            headers=bearer(token),
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Current password is incorrect."}

    def test_requires_session(self, client):
        response = client.put(
            "/settings/change-password",
            json={"currentPassword": "a", "newPassword": "b", "confirmPassword": "b"},
        )
        assert response.status_code == 401

    def test_mismatch(self, client, signup):
        token, _ = signup()
        response = client.put(
            "/settings/change-password",
            json={"currentPassword": "hunter22", "newPassword": "abcdef", "confirmPassword": "abcdeg"},
            headers=bearer(token),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Passwords do not match."

    def test_new_password_over_bcrypt_limit(self, client, signup):
        token, _ = signup()
        response = client.put(
            "/settings/change-password",
            json={"currentPassword": "hunter22", "newPassword": "p" * 80, "confirmPassword": "p" * 80},
            headers=bearer(token),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Password must be at most 72 bytes long."


# =============================================================================
# Forgot / Reset Password
# =============================================================================


class TestResetRoutes:
    def test_forgot_password_unknown_email(self, client, mailer):
        response = client.post("/auth/forgot-password", json={"email": "ghost@x.com"})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "If an account exists with this email, a reset link has been sent",
        }
        assert mailer.sent == []

    def test_forgot_password_known_email_same_body(self, client, signup, mailer):
        signup()

        known = client.post("/auth/forgot-password", json={"email": "alice@example.com"})
        unknown = client.post("/auth/forgot-password", json={"email": "ghost@x.com"})

        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json()
        assert len(mailer.sent) == 1

    def test_forgot_password_missing_email(self, client):
        response = client.post("/auth/forgot-password", json={})
        assert response.status_code == 400
        assert response.json()["error"] == "Email is required."

    def test_forgot_password_mailer_down(self, client, signup, mailer):
        signup()
        mailer.fail = True

        response = client.post("/auth/forgot-password", json={"email": "alice@example.com"})

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Internal Server Error."}

    def test_reset_short_password(self, client):
        response = client.post("/auth/reset-password", json={"token": "abc", "newPassword": "12345"})

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Password must be at least 6 characters long",
        }

    def test_full_reset_handshake(self, client, signup, mailer):
        token, _ = signup()
        client.post("/auth/forgot-password", json={"email": "alice@example.com"})
        reset_token = mailer.last_token

        response = client.post(
            "/auth/reset-password",
            json={"token": reset_token, "newPassword": "brandnew"},
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Password has been reset successfully"}

        again = client.post(
            "/auth/reset-password",
            json={"token": reset_token, "newPassword": "brandnew2"},
        )
        assert again.status_code == 400
        assert again.json()["error"] == "Invalid or expired reset token"

        login = client.post("/auth/login", json={"email": "alice@example.com", "password": "brandnew"})
        assert login.status_code == 200
        assert client.get("/auth/me", headers=bearer(token)).status_code == 401

    def test_reset_password_over_bcrypt_limit(self, client, signup, mailer):
        signup()
        client.post("/auth/forgot-password", json={"email": "alice@example.com"})

        response = client.post(
            "/auth/reset-password",
            json={"token": mailer.last_token, "newPassword": "p" * 80},
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Password must be at most 72 bytes long"}
        # Token is still good for a valid password
        retry = client.post(
            "/auth/reset-password",
            json={"token": mailer.last_token, "newPassword": "brandnew"},
        )
        assert retry.status_code == 200

    def test_reset_missing_fields(self, client):
        response = client.post("/auth/reset-password", json={"newPassword": "brandnew"})
        assert response.status_code == 400
        assert response.json()["error"] == "Token and new password are required."
