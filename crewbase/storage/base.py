"""
Storage abstraction layer.

All persistence goes through these interfaces. This allows swapping
implementations (in-memory -> DynamoDB) without changing application code.

Implementations raise crewbase.core.errors.StoreError with an explicit
StoreErrorKind; callers never see engine-specific exceptions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from crewbase.core.models import Company, Notification, UserRecord


# =============================================================================
# Storage Interfaces
# =============================================================================


class CredentialStore(ABC):
    """
    User records, including password hashes and reset-token fields.

    AWS Implementation: DynamoDB
    Local Implementation: In-memory
    """

    @abstractmethod
    async def get_by_id(self, user_id: str) -> UserRecord | None:
        """Get a user by ID."""

    @abstractmethod
    async def get_by_email(self, email: str) -> UserRecord | None:
        """Get a user by exact email."""

    @abstractmethod
    async def create(self, user: UserRecord) -> UserRecord:
        """Insert a user. Raises StoreError(CONFLICT) if the email is taken."""

    @abstractmethod
    async def delete(self, user_id: str) -> bool:
        """Delete a user."""

    @abstractmethod
    async def set_company(self, user_id: str, company_id: str | None) -> bool:
        """Link a user to a company."""

    @abstractmethod
    async def update_password(self, user_id: str, password_hash: str) -> bool:
        """Replace the password hash and bump token_version."""

    @abstractmethod
    async def set_reset_token(self, user_id: str, token: str, expires_at: datetime) -> bool:
        """Open a reset window: store token and expiry in one write."""

    @abstractmethod
    async def consume_reset_token(
        self,
        token: str,
        password_hash: str,
        now: datetime,
    ) -> UserRecord | None:
        """
        Atomically redeem a reset token.

        Matches reset_token == token AND reset_token_expiry > now. On a match
        the password hash is replaced, both reset fields are cleared and
        token_version is bumped in a single conditional write. Returns the
        updated user, or None when nothing matched.
        """


class CompanyStore(ABC):
    """Company documents."""

    @abstractmethod
    async def create(self, company: Company) -> Company:
        """Insert a company. Raises StoreError(CONFLICT) if the name is taken."""

    @abstractmethod
    async def get(self, company_id: str) -> Company | None:
        """Get a company by ID."""

    @abstractmethod
    async def get_by_name(self, name: str) -> Company | None:
        """Get a company by exact name."""

    @abstractmethod
    async def list(self) -> list[Company]:
        """All companies, oldest first."""

    @abstractmethod
    async def update(self, company_id: str, updates: dict[str, Any]) -> Company | None:
        """Partial update; returns the updated company or None if absent."""

    @abstractmethod
    async def delete(self, company_id: str) -> bool:
        """Delete a company."""


class NotificationStore(ABC):
    """Per-user notifications."""

    @abstractmethod
    async def create(self, notification: Notification) -> Notification:
        """Insert a notification."""

    @abstractmethod
    async def get(self, notification_id: str) -> Notification | None:
        """Get a notification by ID."""

    @abstractmethod
    async def list_for_recipient(self, recipient_id: str) -> list[Notification]:
        """Notifications for one user, newest first."""

    @abstractmethod
    async def mark_read(self, notification_id: str) -> bool:
        """Set is_read on a notification."""


# =============================================================================
# Storage Provider (dependency injection container)
# =============================================================================


class StorageProvider(BaseModel):
    """
    Container for all storage backends.

    Initialize once at app startup with appropriate implementations.
    Services receive this and use the interfaces without knowing
    the underlying implementation.
    """

    model_config = {"arbitrary_types_allowed": True}

    users: CredentialStore
    companies: CompanyStore
    notifications: NotificationStore


# =============================================================================
# Collection Names
# =============================================================================


class Collections:
    """Standard collection/table names."""

    USERS = "users"
    COMPANIES = "companies"
    NOTIFICATIONS = "notifications"
