"""
Integration tests for the user workflows over HTTP.

Drives the full application with the in-memory credential store and a
recording email sender, passing proof and session tokens back the way
non-browser clients do.
"""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import get_email_sender
from src.api.main import app, build_memory_store
from src.config.settings import Settings, get_settings
from tests.conftest import RecordingEmailSender

API = "/api/v1/users"


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def client(email_sender: RecordingEmailSender) -> Generator[TestClient, None, None]:
    """Application client backed by a fresh in-memory store."""
    settings = Settings(store_backend="memory", bcrypt_cost=4)
    app.state.pool = None
    app.state.credential_store = build_memory_store(settings)
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    yield TestClient(app)
    app.dependency_overrides.clear()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def register(client: TestClient, sender: RecordingEmailSender, email: str, username: str) -> dict:
    response = client.post(f"{API}/register-email", json={"email": email})
    assert response.status_code == 200, response.text
    token = response.json()["data"]["token"]

    response = client.post(
        f"{API}/verify-email", json={"verificationOTP": sender.last_code}, headers=bearer(token)
    )
    assert response.status_code == 200, response.text
    verified = response.json()["data"]["token"]

    response = client.post(
        f"{API}/register",
        json={"username": username, "fullName": "Test User", "password": "secret1"},
        headers=bearer(verified),
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


def login(client: TestClient, identifier: str, password: str = "secret1") -> dict:
    response = client.post(
        f"{API}/login", json={"usernameOrEmail": identifier, "password": password}
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]


class TestRegistrationFlow:
    """Three-step registration through the API."""

    def test_register_then_login(
        self, client: TestClient, email_sender: RecordingEmailSender
    ) -> None:
        """A registered user can log in by username or email."""
        user = register(client, email_sender, "New@Example.com", "NewUser")

        assert user["email"] == "new@example.com"
        assert user["username"] == "newuser"
        assert "password" not in user

        assert login(client, "newuser")["user"]["_id"] == user["_id"]
        assert login(client, "NEW@example.com")["user"]["_id"] == user["_id"]

    def test_register_email_conflict_for_existing_user(
        self, client: TestClient, email_sender: RecordingEmailSender
    ) -> None:
        """Starting registration for a registered email is 409."""
        register(client, email_sender, "dup@example.com", "dup")

        response = client.post(f"{API}/register-email", json={"email": "dup@example.com"})

        assert response.status_code == 409
        assert response.json() == {
            "status": 409,
            "message": "This email is already linked to an user.",
        }

    def test_verify_email_without_token_is_401(self, client: TestClient) -> None:
        """The OTP step cannot be reached without the step-one token."""
        response = client.post(f"{API}/verify-email", json={"verificationOTP": "123456"})
        assert response.status_code == 401


class TestSessionFlow:
    """Login, rotation and logout through the API."""

    def test_refresh_rotation_and_reuse(
        self, client: TestClient, email_sender: RecordingEmailSender
    ) -> None:
        """Rotating returns new tokens; presenting the old refresh token again is 401."""
        register(client, email_sender, "sess@example.com", "sess")
        first = login(client, "sess")

        response = client.post(
            f"{API}/refresh-access-token", json={"refreshToken": first["refreshToken"]}
        )
        assert response.status_code == 200
        second = response.json()["data"]
        assert second["refreshToken"] != first["refreshToken"]

        response = client.post(
            f"{API}/refresh-access-token", json={"refreshToken": first["refreshToken"]}
        )
        assert response.status_code == 401

    def test_current_user_and_logout(
        self, client: TestClient, email_sender: RecordingEmailSender
    ) -> None:
        """The access token authenticates until logout revokes the refresh token."""
        register(client, email_sender, "me@example.com", "me")
        session = login(client, "me")

        response = client.get(f"{API}/current-user", headers=bearer(session["accessToken"]))
        assert response.status_code == 200
        assert response.json()["data"]["username"] == "me"

        response = client.post(f"{API}/logout", headers=bearer(session["accessToken"]))
        assert response.status_code == 200

        response = client.post(
            f"{API}/refresh-access-token", json={"refreshToken": session["refreshToken"]}
        )
        assert response.status_code == 401

    def test_wrong_password_is_401(
        self, client: TestClient, email_sender: RecordingEmailSender
    ) -> None:
        """Bad credentials are rejected."""
        register(client, email_sender, "pw@example.com", "pw")
        response = client.post(
            f"{API}/login", json={"usernameOrEmail": "pw", "password": "wrong"}
        )
        assert response.status_code == 401


class TestPasswordResetFlow:
    """Forgot-password through the API."""

    def test_reset_then_login_with_new_password(
        self, client: TestClient, email_sender: RecordingEmailSender
    ) -> None:
        """After a reset only the new password works."""
        register(client, email_sender, "reset@example.com", "reset")

        response = client.post(
            f"{API}/send-forgot-password-otp", json={"usernameOrEmail": "reset"}
        )
        assert response.status_code == 200
        forgot = response.json()["data"]["token"]

        response = client.post(
            f"{API}/verify-forgot-password-otp",
            json={"forgotPasswordOTP": email_sender.last_code},
            headers=bearer(forgot),
        )
        assert response.status_code == 200
        verified = response.json()["data"]["token"]

        response = client.post(
            f"{API}/forgot-password", json={"newPassword": "newpass1"}, headers=bearer(verified)
        )
        assert response.status_code == 200

        login(client, "reset", "newpass1")
        response = client.post(
            f"{API}/login", json={"usernameOrEmail": "reset", "password": "secret1"}
        )
        assert response.status_code == 401

    def test_unknown_user_is_404(self, client: TestClient) -> None:
        """Reset for a missing user is 404."""
        response = client.post(
            f"{API}/send-forgot-password-otp", json={"usernameOrEmail": "ghost"}
        )
        assert response.status_code == 404


class TestAccountFlow:
    """Email change, profile edits and deletion through the API."""

    def test_update_email(self, client: TestClient, email_sender: RecordingEmailSender) -> None:
        """The new address is confirmed by the code mailed to it."""
        register(client, email_sender, "old@example.com", "mover")
        session = login(client, "mover")
        auth = bearer(session["accessToken"])

        response = client.post(
            f"{API}/update-email",
            json={"newEmail": "moved@example.com", "password": "secret1"},
            headers=auth,
        )
        assert response.status_code == 200
        update_token = response.json()["data"]["updateEmailToken"]
        assert email_sender.sent[-1].email == "moved@example.com"

        response = client.post(
            f"{API}/verify-update-email",
            json={"updateEmailOTP": email_sender.last_code},
            headers={**auth, "updateEmailToken": update_token},
        )
        assert response.status_code == 200
        assert response.json()["data"]["user"]["email"] == "moved@example.com"

    def test_update_profile_and_delete(
        self, client: TestClient, email_sender: RecordingEmailSender
    ) -> None:
        """Profile edits apply; deletion needs the password and removes the user."""
        register(client, email_sender, "edit@example.com", "editor")
        auth = bearer(login(client, "editor")["accessToken"])

        response = client.patch(
            f"{API}/update-profile", json={"bio": "new bio", "username": "Editor2"}, headers=auth
        )
        assert response.status_code == 200
        assert response.json()["data"]["username"] == "editor2"
        assert response.json()["data"]["bio"] == "new bio"

        response = client.request(
            "DELETE", f"{API}/delete-user", json={"password": "wrong"}, headers=auth
        )
        assert response.status_code == 401

        response = client.request(
            "DELETE", f"{API}/delete-user", json={"password": "secret1"}, headers=auth
        )
        assert response.status_code == 200

        response = client.get(f"{API}/current-user", headers=auth)
        assert response.status_code == 401
