"""
DynamoDB storage implementations.

Tables (prefixed with AWS_DYNAMODB_TABLE_PREFIX):
    users          pk id; GSIs email-index (email), reset-token-index (reset_token)
    companies      pk id; GSI name-index (name)
    notifications  pk id; GSI recipient-index (recipient_id, created_at)

boto3 is synchronous, so every call runs in the default executor. Botocore
exceptions never leave this module: they are mapped to StoreError kinds.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal
from functools import partial
from typing import Any

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)
from pydantic import ValidationError as ModelValidationError

from crewbase.config import Settings
from crewbase.core.errors import StoreError, StoreErrorKind
from crewbase.core.models import Company, Notification, UserRecord
from crewbase.core.utils import utc_now
from crewbase.storage.base import (
    Collections,
    CompanyStore,
    CredentialStore,
    NotificationStore,
    StorageProvider,
)

logger = logging.getLogger(__name__)

_UNAVAILABLE_CODES = {
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "RequestLimitExceeded",
    "ServiceUnavailable",
    "InternalServerError",
    "ResourceNotFoundException",
}
_CONFLICT_CODES = {
    "ConditionalCheckFailedException",
    "TransactionCanceledException",
}


def classify_error(error: Exception) -> StoreErrorKind:
    """Map a botocore exception to a StoreErrorKind."""
    if isinstance(error, (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError)):
        return StoreErrorKind.UNAVAILABLE
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "")
        if code in _UNAVAILABLE_CODES:
            return StoreErrorKind.UNAVAILABLE
        if code in _CONFLICT_CODES:
            return StoreErrorKind.CONFLICT
    return StoreErrorKind.UNKNOWN


def _is_condition_failure(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


# =============================================================================
# Item conversion
# =============================================================================


def _epoch(value: datetime) -> Decimal:
    return Decimal(str(value.timestamp()))


def _from_epoch(value: Any) -> datetime:
    return datetime.fromtimestamp(float(value), tz=timezone.utc)


def _to_item(model, epoch_fields: tuple[str, ...] = ()) -> dict[str, Any]:
    """Dump a model into a DynamoDB item, dropping None (GSI keys must be absent)."""
    raw = model.model_dump(mode="json")
    item: dict[str, Any] = {}
    for key, value in raw.items():
        if value is None:
            continue
        if key in epoch_fields:
            item[key] = _epoch(getattr(model, key))
        elif isinstance(value, float):
            item[key] = Decimal(str(value))
        else:
            item[key] = value
    return item


def _normalize(item: dict[str, Any], epoch_fields: tuple[str, ...] = ()) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for key, value in item.items():
        if key in epoch_fields:
            data[key] = _from_epoch(value)
        elif isinstance(value, Decimal):
            data[key] = int(value) if value == value.to_integral_value() else float(value)
        else:
            data[key] = value
    return data


def _load(model_cls, item: dict[str, Any] | None, epoch_fields: tuple[str, ...] = ()):
    if item is None:
        return None
    try:
        return model_cls(**_normalize(item, epoch_fields))
    except ModelValidationError as e:
        logger.error(f"Stored {model_cls.__name__} {item.get('id')} failed validation")
        raise StoreError(StoreErrorKind.CORRUPT, f"Invalid {model_cls.__name__} document") from e


# =============================================================================
# Shared table plumbing
# =============================================================================


class _DynamoTable:
    """Runs boto3 table calls off the event loop and maps failures."""

    def __init__(self, table):
        self.table = table

    async def _run(self, operation: str, *, conditional: bool = False, **kwargs) -> Any:
        loop = asyncio.get_running_loop()
        try:
            call = partial(getattr(self.table, operation), **kwargs)
            return await loop.run_in_executor(None, call)
        except ClientError as e:
            if conditional and _is_condition_failure(e):
                return None
            kind = classify_error(e)
            logger.error(f"DynamoDB {operation} on {self.table.name} failed ({kind.value})")
            raise StoreError(kind, "Database request failed") from e
        except BotoCoreError as e:
            kind = classify_error(e)
            logger.error(f"DynamoDB {operation} on {self.table.name} failed ({kind.value})")
            raise StoreError(kind, "Database request failed") from e

    async def _get_item(self, item_id: str) -> dict[str, Any] | None:
        response = await self._run("get_item", Key={"id": item_id})
        return response.get("Item")

    async def _query_one(self, index: str, key: str, value: Any, **extra) -> dict[str, Any] | None:
        response = await self._run(
            "query",
            IndexName=index,
            KeyConditionExpression=Key(key).eq(value),
            **extra,
        )
        items = response.get("Items", [])
        return items[0] if items else None

    async def _put_new(self, item: dict[str, Any]) -> bool:
        response = await self._run(
            "put_item",
            conditional=True,
            Item=item,
            ConditionExpression=Attr("id").not_exists(),
        )
        return response is not None

    async def _delete(self, item_id: str) -> bool:
        response = await self._run(
            "delete_item",
            conditional=True,
            Key={"id": item_id},
            ConditionExpression=Attr("id").exists(),
        )
        return response is not None

    async def _update(
        self,
        item_id: str,
        set_values: dict[str, Any],
        remove: tuple[str, ...] = (),
        increment: str | None = None,
        condition=None,
    ) -> dict[str, Any] | None:
        """
        SET/REMOVE update guarded by a condition; None if the condition fails.

        Placeholders avoid #n/:v, which boto3 uses for condition objects.
        """
        names: dict[str, str] = {}
        values: dict[str, Any] = {}
        sets: list[str] = []
        for i, (field, value) in enumerate(set_values.items()):
            names[f"#f{i}"] = field
            values[f":s{i}"] = value
            sets.append(f"#f{i} = :s{i}")
        if increment:
            names["#inc"] = increment
            values[":zero"] = 0
            values[":one"] = 1
            sets.append("#inc = if_not_exists(#inc, :zero) + :one")

        expression = "SET " + ", ".join(sets)
        if remove:
            removals = []
            for i, field in enumerate(remove):
                names[f"#r{i}"] = field
                removals.append(f"#r{i}")
            expression += " REMOVE " + ", ".join(removals)

        guard = Attr("id").exists()
        if condition is not None:
            guard = guard & condition

        response = await self._run(
            "update_item",
            conditional=True,
            Key={"id": item_id},
            UpdateExpression=expression,
            ConditionExpression=guard,
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
            ReturnValues="ALL_NEW",
        )
        if response is None:
            return None
        return response.get("Attributes")

    async def _scan_all(self) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        kwargs: dict[str, Any] = {}
        while True:
            response = await self._run("scan", **kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key


# =============================================================================
# Credential Store
# =============================================================================


_USER_EPOCH_FIELDS = ("reset_token_expiry",)


class DynamoCredentialStore(_DynamoTable, CredentialStore):
    """Users table."""

    async def get_by_id(self, user_id: str) -> UserRecord | None:
        return _load(UserRecord, await self._get_item(user_id), _USER_EPOCH_FIELDS)

    async def get_by_email(self, email: str) -> UserRecord | None:
        item = await self._query_one("email-index", "email", email, Limit=1)
        if item is None:
            return None
        # GSIs are eventually consistent; re-read the base item
        return await self.get_by_id(item["id"])

    async def create(self, user: UserRecord) -> UserRecord:
        # Uniqueness of email is checked, not enforced; DynamoDB cannot index-constrain it
        if await self.get_by_email(user.email) is not None:
            raise StoreError(StoreErrorKind.CONFLICT, "Email already registered")
        if not await self._put_new(_to_item(user, _USER_EPOCH_FIELDS)):
            raise StoreError(StoreErrorKind.CONFLICT, "User ID already exists")
        return user

    async def delete(self, user_id: str) -> bool:
        return await self._delete(user_id)

    async def set_company(self, user_id: str, company_id: str | None) -> bool:
        now = utc_now().isoformat()
        if company_id is None:
            result = await self._update(user_id, {"updated_at": now}, remove=("company_id",))
        else:
            result = await self._update(user_id, {"company_id": company_id, "updated_at": now})
        return result is not None

    async def update_password(self, user_id: str, password_hash: str) -> bool:
        result = await self._update(
            user_id,
            {"password_hash": password_hash, "updated_at": utc_now().isoformat()},
            increment="token_version",
        )
        return result is not None

    async def set_reset_token(self, user_id: str, token: str, expires_at: datetime) -> bool:
        result = await self._update(
            user_id,
            {
                "reset_token": token,
                "reset_token_expiry": _epoch(expires_at),
                "updated_at": utc_now().isoformat(),
            },
        )
        return result is not None

    async def consume_reset_token(
        self,
        token: str,
        password_hash: str,
        now: datetime,
    ) -> UserRecord | None:
        candidate = await self._query_one("reset-token-index", "reset_token", token, Limit=1)
        if candidate is None:
            return None

        # The condition re-checks token and expiry on the base item, so two
        # concurrent redemptions cannot both succeed.
        attributes = await self._update(
            candidate["id"],
            {"password_hash": password_hash, "updated_at": utc_now().isoformat()},
            remove=("reset_token", "reset_token_expiry"),
            increment="token_version",
            condition=Attr("reset_token").eq(token) & Attr("reset_token_expiry").gt(_epoch(now)),
        )
        return _load(UserRecord, attributes, _USER_EPOCH_FIELDS)


# =============================================================================
# Company Store
# =============================================================================


class DynamoCompanyStore(_DynamoTable, CompanyStore):
    """Companies table."""

    async def create(self, company: Company) -> Company:
        if await self.get_by_name(company.name) is not None:
            raise StoreError(StoreErrorKind.CONFLICT, "Company name already exists")
        if not await self._put_new(_to_item(company)):
            raise StoreError(StoreErrorKind.CONFLICT, "Company ID already exists")
        return company

    async def get(self, company_id: str) -> Company | None:
        return _load(Company, await self._get_item(company_id))

    async def get_by_name(self, name: str) -> Company | None:
        item = await self._query_one("name-index", "name", name, Limit=1)
        return await self.get(item["id"]) if item else None

    async def list(self) -> list[Company]:
        companies = [_load(Company, item) for item in await self._scan_all()]
        return sorted(companies, key=lambda c: c.created_at)

    async def update(self, company_id: str, updates: dict[str, Any]) -> Company | None:
        set_values = {k: v for k, v in updates.items() if v is not None}
        set_values["updated_at"] = utc_now().isoformat()
        # None clears the attribute, as in the in-memory store
        cleared = tuple(k for k, v in updates.items() if v is None)
        return _load(Company, await self._update(company_id, set_values, remove=cleared))

    async def delete(self, company_id: str) -> bool:
        return await self._delete(company_id)


# =============================================================================
# Notification Store
# =============================================================================


class DynamoNotificationStore(_DynamoTable, NotificationStore):
    """Notifications table."""

    async def create(self, notification: Notification) -> Notification:
        await self._put_new(_to_item(notification))
        return notification

    async def get(self, notification_id: str) -> Notification | None:
        return _load(Notification, await self._get_item(notification_id))

    async def list_for_recipient(self, recipient_id: str) -> list[Notification]:
        items: list[dict[str, Any]] = []
        kwargs: dict[str, Any] = {
            "IndexName": "recipient-index",
            "KeyConditionExpression": Key("recipient_id").eq(recipient_id),
            "ScanIndexForward": False,
        }
        while True:
            response = await self._run("query", **kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
        return [_load(Notification, item) for item in items]

    async def mark_read(self, notification_id: str) -> bool:
        return await self._update(notification_id, {"is_read": True}) is not None


# =============================================================================
# Factory / bootstrap
# =============================================================================


TABLE_DEFINITIONS: dict[str, dict[str, Any]] = {
    Collections.USERS: {
        "attributes": {"id": "S", "email": "S", "reset_token": "S"},
        "indexes": {"email-index": ("email", None), "reset-token-index": ("reset_token", None)},
    },
    Collections.COMPANIES: {
        "attributes": {"id": "S", "name": "S"},
        "indexes": {"name-index": ("name", None)},
    },
    Collections.NOTIFICATIONS: {
        "attributes": {"id": "S", "recipient_id": "S", "created_at": "S"},
        "indexes": {"recipient-index": ("recipient_id", "created_at")},
    },
}


def get_dynamodb_resource(settings: Settings):
    """Build a boto3 DynamoDB resource from settings."""
    kwargs: dict[str, Any] = {"region_name": settings.aws_region}
    if settings.use_aws:
        kwargs["aws_access_key_id"] = settings.aws_access_key_id
        kwargs["aws_secret_access_key"] = settings.aws_secret_access_key
    if settings.aws_dynamodb_endpoint_url:
        kwargs["endpoint_url"] = settings.aws_dynamodb_endpoint_url
    return boto3.resource("dynamodb", **kwargs)


def ensure_tables(resource, prefix: str) -> list[str]:
    """Create any missing tables (on-demand billing). Returns names created."""
    existing = {table.name for table in resource.tables.all()}
    created = []
    for collection, definition in TABLE_DEFINITIONS.items():
        name = f"{prefix}{collection}"
        if name in existing:
            continue
        indexes = []
        for index_name, (hash_key, range_key) in definition["indexes"].items():
            schema = [{"AttributeName": hash_key, "KeyType": "HASH"}]
            if range_key:
                schema.append({"AttributeName": range_key, "KeyType": "RANGE"})
            indexes.append({
                "IndexName": index_name,
                "KeySchema": schema,
                "Projection": {"ProjectionType": "ALL"},
            })
        table = resource.create_table(
            TableName=name,
            KeySchema=[{"AttributeName": "id", "KeyType": "HASH"}],
            AttributeDefinitions=[
                {"AttributeName": attr, "AttributeType": kind}
                for attr, kind in definition["attributes"].items()
            ],
            GlobalSecondaryIndexes=indexes,
            BillingMode="PAY_PER_REQUEST",
        )
        table.wait_until_exists()
        logger.info(f"Created DynamoDB table {name}")
        created.append(name)
    return created


def create_dynamodb_storage(settings: Settings, resource=None) -> StorageProvider:
    """Create a StorageProvider backed by DynamoDB tables."""
    resource = resource or get_dynamodb_resource(settings)
    prefix = settings.aws_dynamodb_table_prefix
    return StorageProvider(
        users=DynamoCredentialStore(resource.Table(f"{prefix}{Collections.USERS}")),
        companies=DynamoCompanyStore(resource.Table(f"{prefix}{Collections.COMPANIES}")),
        notifications=DynamoNotificationStore(
            resource.Table(f"{prefix}{Collections.NOTIFICATIONS}")
        ),
    )
