"""
Local storage implementations for development and tests.

In-memory, no external services. Each method finishes its read-modify-write
without awaiting, so on a single event loop every write is atomic.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from crewbase.core.errors import StoreError, StoreErrorKind
from crewbase.core.models import Company, Notification, UserRecord
from crewbase.core.utils import utc_now
from crewbase.storage.base import (
    CompanyStore,
    CredentialStore,
    NotificationStore,
    StorageProvider,
)


# =============================================================================
# In-Memory Credential Store
# =============================================================================


class InMemoryCredentialStore(CredentialStore):
    """In-memory user storage."""

    def __init__(self):
        self._users: dict[str, UserRecord] = {}
        self._by_email: dict[str, str] = {}  # email -> user_id

    async def get_by_id(self, user_id: str) -> UserRecord | None:
        user = self._users.get(user_id)
        return user.model_copy() if user else None

    async def get_by_email(self, email: str) -> UserRecord | None:
        user_id = self._by_email.get(email)
        return await self.get_by_id(user_id) if user_id else None

    async def create(self, user: UserRecord) -> UserRecord:
        if user.email in self._by_email:
            raise StoreError(StoreErrorKind.CONFLICT, "Email already registered")
        self._users[user.id] = user.model_copy()
        self._by_email[user.email] = user.id
        return user.model_copy()

    async def delete(self, user_id: str) -> bool:
        user = self._users.pop(user_id, None)
        if user is None:
            return False
        self._by_email.pop(user.email, None)
        return True

    async def set_company(self, user_id: str, company_id: str | None) -> bool:
        return self._patch(user_id, {"company_id": company_id})

    async def update_password(self, user_id: str, password_hash: str) -> bool:
        user = self._users.get(user_id)
        if user is None:
            return False
        return self._patch(user_id, {
            "password_hash": password_hash,
            "token_version": user.token_version + 1,
        })

    async def set_reset_token(self, user_id: str, token: str, expires_at: datetime) -> bool:
        return self._patch(user_id, {
            "reset_token": token,
            "reset_token_expiry": expires_at,
        })

    async def consume_reset_token(
        self,
        token: str,
        password_hash: str,
        now: datetime,
    ) -> UserRecord | None:
        for user in self._users.values():
            if (
                user.reset_token == token
                and user.reset_token_expiry is not None
                and user.reset_token_expiry > now
            ):
                self._patch(user.id, {
                    "password_hash": password_hash,
                    "reset_token": None,
                    "reset_token_expiry": None,
                    "token_version": user.token_version + 1,
                })
                return self._users[user.id].model_copy()
        return None

    def _patch(self, user_id: str, updates: dict[str, Any]) -> bool:
        user = self._users.get(user_id)
        if user is None:
            return False
        self._users[user_id] = user.model_copy(update={**updates, "updated_at": utc_now()})
        return True


# =============================================================================
# In-Memory Company Store
# =============================================================================


class InMemoryCompanyStore(CompanyStore):
    """In-memory company storage."""

    def __init__(self):
        self._companies: dict[str, Company] = {}

    async def create(self, company: Company) -> Company:
        if any(c.name == company.name for c in self._companies.values()):
            raise StoreError(StoreErrorKind.CONFLICT, "Company name already exists")
        self._companies[company.id] = company.model_copy()
        return company.model_copy()

    async def get(self, company_id: str) -> Company | None:
        company = self._companies.get(company_id)
        return company.model_copy() if company else None

    async def get_by_name(self, name: str) -> Company | None:
        for company in self._companies.values():
            if company.name == name:
                return company.model_copy()
        return None

    async def list(self) -> list[Company]:
        companies = sorted(self._companies.values(), key=lambda c: c.created_at)
        return [c.model_copy() for c in companies]

    async def update(self, company_id: str, updates: dict[str, Any]) -> Company | None:
        company = self._companies.get(company_id)
        if company is None:
            return None
        updated = company.model_copy(update={**updates, "updated_at": utc_now()})
        self._companies[company_id] = updated
        return updated.model_copy()

    async def delete(self, company_id: str) -> bool:
        return self._companies.pop(company_id, None) is not None


# =============================================================================
# In-Memory Notification Store
# =============================================================================


class InMemoryNotificationStore(NotificationStore):
    """In-memory notification storage."""

    def __init__(self):
        self._notifications: dict[str, Notification] = {}

    async def create(self, notification: Notification) -> Notification:
        self._notifications[notification.id] = notification.model_copy()
        return notification.model_copy()

    async def get(self, notification_id: str) -> Notification | None:
        notification = self._notifications.get(notification_id)
        return notification.model_copy() if notification else None

    async def list_for_recipient(self, recipient_id: str) -> list[Notification]:
        mine = [n for n in self._notifications.values() if n.recipient_id == recipient_id]
        mine.sort(key=lambda n: n.created_at, reverse=True)
        return [n.model_copy() for n in mine]

    async def mark_read(self, notification_id: str) -> bool:
        notification = self._notifications.get(notification_id)
        if notification is None:
            return False
        self._notifications[notification_id] = notification.model_copy(update={"is_read": True})
        return True


# =============================================================================
# Factory
# =============================================================================


def create_local_storage() -> StorageProvider:
    """Create a StorageProvider with in-memory implementations."""
    return StorageProvider(
        users=InMemoryCredentialStore(),
        companies=InMemoryCompanyStore(),
        notifications=InMemoryNotificationStore(),
    )
