from goodcall.catalog.api import companies_router, sale_statuses_router, technologies_router
from goodcall.catalog.models import Company, SaleStatus, Technology
from goodcall.catalog.service import ReferenceDataService, company_service, sale_status_service, technology_service

__all__ = [
    "companies_router",
    "technologies_router",
    "sale_statuses_router",
    "Company",
    "Technology",
    "SaleStatus",
    "ReferenceDataService",
    "company_service",
    "technology_service",
    "sale_status_service",
]
