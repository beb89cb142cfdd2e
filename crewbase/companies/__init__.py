"""Company management (Admin only)."""

from crewbase.companies.service import CompanyService

__all__ = ["CompanyService"]
