"""
Core module - data models, error taxonomy and shared helpers.

This module contains:
- models: Users, companies and notifications as stored
- errors: The CrewbaseError taxonomy and StoreError
- utils: Shared utility functions
"""

from crewbase.core.errors import (
    AuthFailed,
    CrewbaseError,
    Forbidden,
    InternalError,
    InvalidOrExpiredToken,
    NotFound,
    StoreError,
    StoreErrorKind,
    Unauthenticated,
    ValidationError,
)
from crewbase.core.models import (
    Company,
    Notification,
    NotificationType,
    Role,
    UserRecord,
    UserSummary,
)

__all__ = [
    # Errors
    "CrewbaseError",
    "ValidationError",
    "Unauthenticated",
    "Forbidden",
    "NotFound",
    "AuthFailed",
    "InvalidOrExpiredToken",
    "InternalError",
    "StoreError",
    "StoreErrorKind",
    # Models
    "Role",
    "NotificationType",
    "UserRecord",
    "UserSummary",
    "Company",
    "Notification",
]
