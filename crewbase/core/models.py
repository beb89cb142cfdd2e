"""
Core data models.

These are the documents the stores persist: users, companies and
notifications. Outward-facing views (UserSummary) strip every secret field.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from crewbase.core.utils import generate_id, utc_now


# =============================================================================
# Enums
# =============================================================================


class Role(str, Enum):
    """Authorization tier attached to every user."""

    ADMIN = "Admin"        # Manages companies
    MANAGER = "Manager"    # Runs one company
    EMPLOYEE = "Employee"  # Regular staff


class NotificationType(str, Enum):
    """What a notification is about."""

    LEAVE_REQUEST = "leave_request"
    LEAVE_APPROVED = "leave_approved"
    LEAVE_REJECTED = "leave_rejected"


# =============================================================================
# Users
# =============================================================================


class UserRecord(BaseModel):
    """
    A user as stored by the credential store.

    reset_token and reset_token_expiry travel together: both set while a
    reset window is open, both None otherwise.
    """

    id: str = Field(default_factory=lambda: generate_id("usr"))
    name: str
    email: str
    password_hash: str
    role: Role
    company_id: str | None = None

    reset_token: str | None = None
    reset_token_expiry: datetime | None = None

    # Bumped on every password change; tokens carry the value they were issued with
    token_version: int = 0

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def _reset_fields_paired(self) -> UserRecord:
        if (self.reset_token is None) != (self.reset_token_expiry is None):
            raise ValueError("reset_token and reset_token_expiry must be set together")
        return self


class UserSummary(BaseModel):
    """User data returned to clients and attached to requests."""

    id: str
    name: str
    email: str
    role: Role
    company_id: str | None = None
    company_name: str = "No Company"
    token_version: int = Field(default=0, exclude=True)

    model_config = {"frozen": True}

    @classmethod
    def from_record(cls, user: UserRecord, company_name: str | None = None) -> UserSummary:
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            company_id=user.company_id,
            company_name=company_name or "No Company",
            token_version=user.token_version,
        )


# =============================================================================
# Companies
# =============================================================================


class Company(BaseModel):
    """A client company managed by admins."""

    id: str = Field(default_factory=lambda: generate_id("cmp"))
    name: str
    address: str
    industry: str
    manager_id: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# Notifications
# =============================================================================


class Notification(BaseModel):
    """An in-app message for one recipient."""

    id: str = Field(default_factory=lambda: generate_id("ntf"))
    recipient_id: str
    sender_id: str | None = None
    type: NotificationType
    message: str
    leave_id: str | None = None
    is_read: bool = False
    created_at: datetime = Field(default_factory=utc_now)
