"""
Tests for the in-memory stores.
"""

from datetime import timedelta

import pytest

from crewbase.core.errors import StoreError, StoreErrorKind
from crewbase.core.models import Company, Notification, NotificationType, Role, UserRecord
from crewbase.core.utils import utc_now
from crewbase.storage.local import (
    InMemoryCompanyStore,
    InMemoryCredentialStore,
    InMemoryNotificationStore,
)


def make_user(email="bob@example.com", **kwargs) -> UserRecord:
    return UserRecord(
        name="Bob",
        email=email,
        password_hash="$2b$04$placeholderplaceholderplaceholderplaceholderpla",
        role=Role.EMPLOYEE,
        **kwargs,
    )


# =============================================================================
# Model Tests
# =============================================================================


class TestUserRecord:
    def test_reset_fields_must_be_paired(self):
        with pytest.raises(ValueError):
            make_user(reset_token="abc")
        with pytest.raises(ValueError):
            make_user(reset_token_expiry=utc_now())

    def test_unknown_role_rejected(self):
        with pytest.raises(ValueError):
            UserRecord(name="X", email="x@example.com", password_hash="h", role="Superuser")


# =============================================================================
# Credential Store Tests
# =============================================================================


class TestInMemoryCredentialStore:
    @pytest.mark.asyncio
    async def test_create_and_lookup(self):
        store = InMemoryCredentialStore()
        user = await store.create(make_user())

        assert (await store.get_by_id(user.id)).email == "bob@example.com"
        assert (await store.get_by_email("bob@example.com")).id == user.id
        assert await store.get_by_email("nobody@example.com") is None

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self):
        store = InMemoryCredentialStore()
        await store.create(make_user())

        with pytest.raises(StoreError) as exc_info:
            await store.create(make_user())
        assert exc_info.value.kind == StoreErrorKind.CONFLICT

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self):
        store = InMemoryCredentialStore()
        user = await store.create(make_user())

        fetched = await store.get_by_id(user.id)
        fetched.name = "Mallory"
        assert (await store.get_by_id(user.id)).name == "Bob"

    @pytest.mark.asyncio
    async def test_update_password_bumps_version(self):
        store = InMemoryCredentialStore()
        user = await store.create(make_user())

        assert await store.update_password(user.id, "new-hash")
        updated = await store.get_by_id(user.id)
        assert updated.password_hash == "new-hash"
        assert updated.token_version == 1

    @pytest.mark.asyncio
    async def test_update_password_unknown_user(self):
        assert not await InMemoryCredentialStore().update_password("usr_missing", "h")

    @pytest.mark.asyncio
    async def test_consume_reset_token(self):
        store = InMemoryCredentialStore()
        user = await store.create(make_user())
        expires_at = utc_now() + timedelta(hours=1)
        await store.set_reset_token(user.id, "tok", expires_at)

        consumed = await store.consume_reset_token("tok", "new-hash", utc_now())

        assert consumed.id == user.id
        assert consumed.password_hash == "new-hash"
        assert consumed.reset_token is None
        assert consumed.reset_token_expiry is None
        assert consumed.token_version == 1

    @pytest.mark.asyncio
    async def test_consume_is_single_use(self):
        store = InMemoryCredentialStore()
        user = await store.create(make_user())
        await store.set_reset_token(user.id, "tok", utc_now() + timedelta(hours=1))

        assert await store.consume_reset_token("tok", "h1", utc_now()) is not None
        assert await store.consume_reset_token("tok", "h2", utc_now()) is None
        assert (await store.get_by_id(user.id)).password_hash == "h1"

    @pytest.mark.asyncio
    async def test_consume_respects_expiry_boundary(self):
        store = InMemoryCredentialStore()
        user = await store.create(make_user())
        expires_at = utc_now() + timedelta(hours=1)
        await store.set_reset_token(user.id, "tok", expires_at)

        # At or after expiry: no match, fields untouched
        assert await store.consume_reset_token("tok", "h", expires_at + timedelta(seconds=1)) is None
        assert await store.consume_reset_token("tok", "h", expires_at) is None
        assert (await store.get_by_id(user.id)).reset_token == "tok"

        assert await store.consume_reset_token("tok", "h", expires_at - timedelta(seconds=1))

    @pytest.mark.asyncio
    async def test_new_reset_token_replaces_old(self):
        store = InMemoryCredentialStore()
        user = await store.create(make_user())
        await store.set_reset_token(user.id, "first", utc_now() + timedelta(hours=1))
        await store.set_reset_token(user.id, "second", utc_now() + timedelta(hours=1))

        assert await store.consume_reset_token("first", "h", utc_now()) is None
        assert await store.consume_reset_token("second", "h", utc_now()) is not None

    @pytest.mark.asyncio
    async def test_delete_frees_email(self):
        store = InMemoryCredentialStore()
        user = await store.create(make_user())

        assert await store.delete(user.id)
        assert await store.get_by_email("bob@example.com") is None
        await store.create(make_user())


# =============================================================================
# Company Store Tests
# =============================================================================


class TestInMemoryCompanyStore:
    @pytest.mark.asyncio
    async def test_unique_name(self):
        store = InMemoryCompanyStore()
        await store.create(Company(name="Acme", address="1 Main St", industry="Retail"))

        with pytest.raises(StoreError) as exc_info:
            await store.create(Company(name="Acme", address="2 Main St", industry="Retail"))
        assert exc_info.value.kind == StoreErrorKind.CONFLICT

    @pytest.mark.asyncio
    async def test_partial_update(self):
        store = InMemoryCompanyStore()
        company = await store.create(Company(name="Acme", address="1 Main St", industry="Retail"))

        updated = await store.update(company.id, {"address": "9 Side St"})

        assert updated.address == "9 Side St"
        assert updated.name == "Acme"
        assert await store.update("cmp_missing", {"address": "x"}) is None


# =============================================================================
# Notification Store Tests
# =============================================================================


class TestInMemoryNotificationStore:
    @pytest.mark.asyncio
    async def test_list_newest_first(self):
        store = InMemoryNotificationStore()
        now = utc_now()
        for offset in (2, 0, 1):
            await store.create(Notification(
                recipient_id="usr_1",
                type=NotificationType.LEAVE_REQUEST,
                message=f"m{offset}",
                created_at=now - timedelta(minutes=offset),
            ))
        await store.create(Notification(
            recipient_id="usr_2",
            type=NotificationType.LEAVE_APPROVED,
            message="other",
        ))

        listed = await store.list_for_recipient("usr_1")
        assert [n.message for n in listed] == ["m0", "m1", "m2"]
