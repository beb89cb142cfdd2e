"""
Dependency injection setup for FastAPI.

The container wires concrete implementations together: storage backend,
token codec, hasher, mailer and the services built on them. Everything is
created lazily on first access and cached for the life of the container.

Tests build their own container and install it with
`app.dependency_overrides[get_container] = lambda: container`.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from crewbase.config import Settings, get_settings

if TYPE_CHECKING:
    from crewbase.auth.passwords import PasswordHasher
    from crewbase.auth.reset_tokens import ResetTokenGenerator
    from crewbase.auth.service import AuthService, PasswordService
    from crewbase.auth.tokens import TokenCodec
    from crewbase.companies.service import CompanyService
    from crewbase.integrations.email import Mailer
    from crewbase.integrations.oauth import GoogleOAuth
    from crewbase.notifications.service import NotificationService
    from crewbase.storage.base import StorageProvider


class ServiceContainer:
    """
    Container for all service instances.

    storage, mailer and google_oauth may be injected; anything not injected
    is built from settings on first access.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        storage: "StorageProvider | None" = None,
        mailer: "Mailer | None" = None,
        google_oauth: "GoogleOAuth | None" = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._storage = storage
        self._mailer = mailer
        self._google_oauth = google_oauth
        self._codec: "TokenCodec | None" = None
        self._hasher: "PasswordHasher | None" = None
        self._reset_tokens: "ResetTokenGenerator | None" = None
        self._auth: "AuthService | None" = None
        self._passwords: "PasswordService | None" = None
        self._companies: "CompanyService | None" = None
        self._notifications: "NotificationService | None" = None

    # =========================================================================
    # Infrastructure
    # =========================================================================

    @property
    def storage(self) -> "StorageProvider":
        """Get the storage provider for the configured backend."""
        if self._storage is None:
            if self.settings.storage_backend == "dynamodb":
                from crewbase.storage.dynamodb import create_dynamodb_storage
                self._storage = create_dynamodb_storage(self.settings)
            else:
                from crewbase.storage.local import create_local_storage
                self._storage = create_local_storage()
        return self._storage

    @property
    def mailer(self) -> "Mailer":
        if self._mailer is None:
            from crewbase.integrations.email import EmailService
            self._mailer = EmailService(self.settings)
        return self._mailer

    @property
    def google_oauth(self) -> "GoogleOAuth":
        if self._google_oauth is None:
            from crewbase.integrations.oauth import GoogleOAuth
            self._google_oauth = GoogleOAuth(self.settings)
        return self._google_oauth

    @property
    def codec(self) -> "TokenCodec":
        if self._codec is None:
            from crewbase.auth.tokens import TokenCodec
            self._codec = TokenCodec(
                secret=self.settings.jwt_secret_key,
                algorithm=self.settings.jwt_algorithm,
                ttl_minutes=self.settings.jwt_access_token_expire_minutes,
            )
        return self._codec

    @property
    def hasher(self) -> "PasswordHasher":
        if self._hasher is None:
            from crewbase.auth.passwords import PasswordHasher
            self._hasher = PasswordHasher(rounds=self.settings.bcrypt_rounds)
        return self._hasher

    @property
    def reset_tokens(self) -> "ResetTokenGenerator":
        if self._reset_tokens is None:
            from crewbase.auth.reset_tokens import ResetTokenGenerator
            self._reset_tokens = ResetTokenGenerator(
                window=timedelta(minutes=self.settings.password_reset_expire_minutes),
            )
        return self._reset_tokens

    # =========================================================================
    # Services
    # =========================================================================

    @property
    def auth(self) -> "AuthService":
        """Get the auth service instance."""
        if self._auth is None:
            from crewbase.auth.service import AuthService
            self._auth = AuthService(self.storage, self.codec, self.hasher, self.settings)
        return self._auth

    @property
    def passwords(self) -> "PasswordService":
        """Get the password service instance."""
        if self._passwords is None:
            from crewbase.auth.service import PasswordService
            self._passwords = PasswordService(
                storage=self.storage,
                hasher=self.hasher,
                reset_tokens=self.reset_tokens,
                mailer=self.mailer,
                settings=self.settings,
            )
        return self._passwords

    @property
    def companies(self) -> "CompanyService":
        """Get the company service instance."""
        if self._companies is None:
            from crewbase.companies.service import CompanyService
            self._companies = CompanyService(self.storage, self.hasher)
        return self._companies

    @property
    def notifications(self) -> "NotificationService":
        """Get the notification service instance."""
        if self._notifications is None:
            from crewbase.notifications.service import NotificationService
            self._notifications = NotificationService(self.storage)
        return self._notifications


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container
