"""
Company management.

Creating a company also creates its Manager account; the two are linked both
ways (company.manager_id, user.company_id). Deleting a company removes that
manager account too.
"""

from __future__ import annotations

import logging
from typing import Any

from crewbase.auth.passwords import PasswordHasher, exceeds_limit, too_long_message
from crewbase.core.errors import NotFound, StoreError, StoreErrorKind, ValidationError
from crewbase.core.models import Company, Role, UserRecord, UserSummary
from crewbase.storage.base import StorageProvider

logger = logging.getLogger(__name__)


class CompanyService:
    """Admin-side company CRUD."""

    def __init__(self, storage: StorageProvider, hasher: PasswordHasher):
        self.storage = storage
        self.hasher = hasher

    async def create(
        self,
        name: str | None,
        address: str | None,
        industry: str | None,
        manager_name: str | None,
        manager_email: str | None,
        manager_password: str | None,
    ) -> tuple[Company, UserSummary]:
        """Create a company together with its manager account."""
        if not all((name, address, industry, manager_name, manager_email, manager_password)):
            raise ValidationError("All fields are required.")
        if exceeds_limit(manager_password):
            raise ValidationError(too_long_message())

        if await self.storage.companies.get_by_name(name) is not None:
            raise ValidationError("Company name already exists.")
        if await self.storage.users.get_by_email(manager_email) is not None:
            raise ValidationError("Manager email already in use.")

        manager = UserRecord(
            name=manager_name,
            email=manager_email,
            password_hash=await self.hasher.hash(manager_password),
            role=Role.MANAGER,
        )
        try:
            manager = await self.storage.users.create(manager)
        except StoreError as e:
            if e.kind == StoreErrorKind.CONFLICT:
                raise ValidationError("Manager email already in use.") from e
            raise

        company = Company(name=name, address=address, industry=industry, manager_id=manager.id)
        try:
            company = await self.storage.companies.create(company)
        except StoreError as e:
            # Don't leave an orphaned manager behind
            await self.storage.users.delete(manager.id)
            if e.kind == StoreErrorKind.CONFLICT:
                raise ValidationError("Company name already exists.") from e
            raise

        await self.storage.users.set_company(manager.id, company.id)
        manager = manager.model_copy(update={"company_id": company.id})

        logger.info(f"Created company {company.id} with manager {manager.id}")
        return company, UserSummary.from_record(manager, company.name)

    async def list(self) -> list[Company]:
        return await self.storage.companies.list()

    async def get(self, company_id: str) -> Company:
        company = await self.storage.companies.get(company_id)
        if company is None:
            raise NotFound("Company not found")
        return company

    async def update(
        self,
        company_id: str,
        name: str | None = None,
        address: str | None = None,
        industry: str | None = None,
        manager_email: str | None = None,
    ) -> Company:
        """
        Partial update. Only the fields given are changed.

        managerEmail reassigns the company to an existing user; the previous
        manager keeps their account but is no longer linked to the company.
        """
        company = await self.get(company_id)

        updates: dict[str, Any] = {}
        if name and name != company.name:
            existing = await self.storage.companies.get_by_name(name)
            if existing is not None and existing.id != company_id:
                raise ValidationError("Company name already exists.")
            updates["name"] = name
        if address:
            updates["address"] = address
        if industry:
            updates["industry"] = industry

        new_manager = None
        if manager_email:
            new_manager = await self.storage.users.get_by_email(manager_email)
            if new_manager is None:
                raise ValidationError("Manager not found")
            updates["manager_id"] = new_manager.id

        updated = await self.storage.companies.update(company_id, updates)
        if updated is None:
            raise NotFound("Company not found")

        if new_manager is not None and new_manager.id != company.manager_id:
            await self.storage.users.set_company(new_manager.id, company_id)
            if company.manager_id:
                await self.storage.users.set_company(company.manager_id, None)

        logger.info(f"Updated company {company_id}: {sorted(updates)}")
        return updated

    async def delete(self, company_id: str) -> None:
        """Delete a company and its manager account."""
        company = await self.get(company_id)

        if company.manager_id:
            await self.storage.users.delete(company.manager_id)
        if not await self.storage.companies.delete(company_id):
            raise NotFound("Company not found")

        logger.info(f"Deleted company {company_id}")
