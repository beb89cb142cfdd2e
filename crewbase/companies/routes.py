# =============================================================================
# Company API Routes (Admin only)
# =============================================================================
#
#   POST   /companies       - Create company and its manager
#   GET    /companies       - List companies
#   GET    /companies/{id}  - Get one company
#   PUT    /companies/{id}  - Partial update
#   DELETE /companies/{id}  - Delete company and its manager
#
# =============================================================================

from __future__ import annotations

from fastapi import APIRouter, Depends

from crewbase.api.dependencies import ServiceContainer, get_container
from crewbase.auth.policies import require_admin
from crewbase.auth.routes import CamelModel

router = APIRouter(
    prefix="/companies",
    tags=["companies"],
    dependencies=[Depends(require_admin)],
)


class CreateCompanyRequest(CamelModel):
    name: str | None = None
    address: str | None = None
    industry: str | None = None
    manager_name: str | None = None
    manager_email: str | None = None
    manager_password: str | None = None


class UpdateCompanyRequest(CamelModel):
    name: str | None = None
    address: str | None = None
    industry: str | None = None
    manager_email: str | None = None


@router.post("", status_code=201)
async def create_company(
    data: CreateCompanyRequest,
    container: ServiceContainer = Depends(get_container),
):
    company, manager = await container.companies.create(
        name=data.name,
        address=data.address,
        industry=data.industry,
        manager_name=data.manager_name,
        manager_email=data.manager_email,
        manager_password=data.manager_password,
    )
    return {
        "success": True,
        "message": "Company created successfully, and manager assigned.",
        "company": company.model_dump(mode="json"),
        "manager": manager.model_dump(),
    }


@router.get("")
async def list_companies(container: ServiceContainer = Depends(get_container)):
    companies = await container.companies.list()
    return {"success": True, "companies": [c.model_dump(mode="json") for c in companies]}


@router.get("/{company_id}")
async def get_company(company_id: str, container: ServiceContainer = Depends(get_container)):
    company = await container.companies.get(company_id)
    return {"success": True, "company": company.model_dump(mode="json")}


@router.put("/{company_id}")
async def update_company(
    company_id: str,
    data: UpdateCompanyRequest,
    container: ServiceContainer = Depends(get_container),
):
    company = await container.companies.update(
        company_id,
        name=data.name,
        address=data.address,
        industry=data.industry,
        manager_email=data.manager_email,
    )
    return {
        "success": True,
        "message": "Company updated successfully",
        "company": company.model_dump(mode="json"),
    }


@router.delete("/{company_id}")
async def delete_company(company_id: str, container: ServiceContainer = Depends(get_container)):
    await container.companies.delete(company_id)
    return {"success": True, "message": "Company deleted successfully"}
