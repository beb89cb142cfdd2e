"""
Shared test fixtures and utilities.

Every test gets its own in-memory storage, a recording mailer and a
container wired from them. HTTP tests run against a fresh app whose
get_container dependency is overridden with that container.
"""

from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from crewbase.api.app import create_app
from crewbase.api.dependencies import ServiceContainer, get_container
from crewbase.config import Settings
from crewbase.integrations.email import Mailer, MailerError
from crewbase.storage.local import create_local_storage

TEST_JWT_SECRET = "test-secret-key-for-testing-only"
TEST_FRONTEND_URL = "http://app.test"


class RecordingMailer(Mailer):
    """Mailer that keeps what it was asked to send."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []  # (email, reset_url)
        self.fail = False

    async def send_password_reset(self, email: str, reset_url: str) -> None:
        if self.fail:
            raise MailerError("SES rejected the message")
        self.sent.append((email, reset_url))

    @property
    def last_token(self) -> str:
        _, url = self.sent[-1]
        return url.split("token=", 1)[1]


def make_settings(**overrides) -> Settings:
    values = {
        "jwt_secret_key": TEST_JWT_SECRET,
        "bcrypt_rounds": 4,
        "frontend_url": TEST_FRONTEND_URL,
        "storage_backend": "memory",
        "sentry_dsn": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings_factory():
    return make_settings


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def storage():
    return create_local_storage()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def container(settings, storage, mailer) -> ServiceContainer:
    return ServiceContainer(settings=settings, storage=storage, mailer=mailer)


@pytest.fixture
def app(settings, container):
    app = create_app(settings)
    app.dependency_overrides[get_container] = lambda: container
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def signup(client):
    """
    Register a user through the API and log in.

    Returns (token, user) where user is the summary from the login response.
    """

    def _signup(
        email: str = "alice@example.com",
        password: str = "hunter22",
        role: str = "Employee",
        name: str = "Alice",
    ) -> tuple[str, dict]:
        response = client.post(
            "/auth/register",
            json={"name": name, "email": email, "password": password, "role": role},
        )
        assert response.status_code == 201, response.text
        response = client.post("/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        body = response.json()
        return body["token"], body["user"]

    return _signup


@pytest.fixture
def admin_token(client, container) -> str:
    """
    Log in as an Admin created directly through AuthService.create_admin.

    Public registration never hands out the Admin role.
    """
    asyncio.run(container.auth.create_admin("Root", "root@example.com", "rootpass1"))
    response = client.post("/auth/login", json={"email": "root@example.com", "password": "rootpass1"})
    assert response.status_code == 200, response.text
    return response.json()["token"]
