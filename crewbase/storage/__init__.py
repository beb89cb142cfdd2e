"""
Storage abstractions.

AWS Integration Points:
- CredentialStore   → DynamoDB users table
- CompanyStore      → DynamoDB companies table
- NotificationStore → DynamoDB notifications table

The DynamoDB implementations live in crewbase.storage.dynamodb and are
imported only when STORAGE_BACKEND=dynamodb.
"""

from crewbase.storage.base import (
    Collections,
    CompanyStore,
    CredentialStore,
    NotificationStore,
    StorageProvider,
)
from crewbase.storage.local import create_local_storage

__all__ = [
    "CredentialStore",
    "CompanyStore",
    "NotificationStore",
    "StorageProvider",
    "Collections",
    "create_local_storage",
]
