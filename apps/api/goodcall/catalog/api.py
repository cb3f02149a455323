from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from goodcall.catalog.schemas import (
    CompanyCreate,
    CompanyRead,
    CompanyUpdate,
    SaleStatusCreate,
    SaleStatusRead,
    SaleStatusUpdate,
    TechnologyCreate,
    TechnologyRead,
    TechnologyUpdate,
)
from goodcall.catalog.service import company_service, sale_status_service, technology_service
from goodcall.core.auth import AuthUser, get_current_user
from goodcall.core.database import get_db
from goodcall.core.rbac import Capability, require_capabilities


companies_router = APIRouter(prefix="/companies", tags=["companies"])
technologies_router = APIRouter(prefix="/technologies", tags=["technologies"])
sale_statuses_router = APIRouter(prefix="/sale-statuses", tags=["sale-statuses"])


@companies_router.get("", response_model=list[CompanyRead])
def list_companies(
    active_only: bool = Query(default=False),
    db: Session = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
) -> list[CompanyRead]:
    return [CompanyRead.model_validate(row) for row in company_service.list_items(db, active_only=active_only)]


@companies_router.get("/deleted", response_model=list[CompanyRead])
def list_deleted_companies(
    db: Session = Depends(get_db),
    _: AuthUser = Depends(require_capabilities(Capability.RECORDS_RESTORE)),
) -> list[CompanyRead]:
    return [CompanyRead.model_validate(row) for row in company_service.list_deleted(db)]


@companies_router.post("", response_model=CompanyRead, status_code=status.HTTP_201_CREATED)
def create_company(
    payload: CompanyCreate,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.CATALOG_MANAGE)),
) -> CompanyRead:
    return CompanyRead.model_validate(company_service.create(db, user, payload))


@companies_router.get("/{company_id}", response_model=CompanyRead)
def get_company(
    company_id: uuid.UUID,
    db: Session = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
) -> CompanyRead:
    return CompanyRead.model_validate(company_service.get(db, company_id))


@companies_router.patch("/{company_id}", response_model=CompanyRead)
def update_company(
    company_id: uuid.UUID,
    payload: CompanyUpdate,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.CATALOG_MANAGE)),
) -> CompanyRead:
    return CompanyRead.model_validate(company_service.update(db, user, company_id, payload))


@companies_router.delete("/{company_id}", status_code=status.HTTP_200_OK, response_model=None)
def delete_company(
    company_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.CATALOG_MANAGE)),
) -> dict[str, str]:
    company_service.delete(db, user, company_id)
    return {"status": "deleted"}


@companies_router.post("/{company_id}/restore", response_model=CompanyRead)
def restore_company(
    company_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.RECORDS_RESTORE)),
) -> CompanyRead:
    return CompanyRead.model_validate(company_service.restore(db, user, company_id))


@technologies_router.get("", response_model=list[TechnologyRead])
def list_technologies(
    active_only: bool = Query(default=False),
    db: Session = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
) -> list[TechnologyRead]:
    return [TechnologyRead.model_validate(row) for row in technology_service.list_items(db, active_only=active_only)]


@technologies_router.get("/deleted", response_model=list[TechnologyRead])
def list_deleted_technologies(
    db: Session = Depends(get_db),
    _: AuthUser = Depends(require_capabilities(Capability.RECORDS_RESTORE)),
) -> list[TechnologyRead]:
    return [TechnologyRead.model_validate(row) for row in technology_service.list_deleted(db)]


@technologies_router.post("", response_model=TechnologyRead, status_code=status.HTTP_201_CREATED)
def create_technology(
    payload: TechnologyCreate,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.CATALOG_MANAGE)),
) -> TechnologyRead:
    return TechnologyRead.model_validate(technology_service.create(db, user, payload))


@technologies_router.get("/{technology_id}", response_model=TechnologyRead)
def get_technology(
    technology_id: uuid.UUID,
    db: Session = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
) -> TechnologyRead:
    return TechnologyRead.model_validate(technology_service.get(db, technology_id))


@technologies_router.patch("/{technology_id}", response_model=TechnologyRead)
def update_technology(
    technology_id: uuid.UUID,
    payload: TechnologyUpdate,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.CATALOG_MANAGE)),
) -> TechnologyRead:
    return TechnologyRead.model_validate(technology_service.update(db, user, technology_id, payload))


@technologies_router.delete("/{technology_id}", status_code=status.HTTP_200_OK, response_model=None)
def delete_technology(
    technology_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.CATALOG_MANAGE)),
) -> dict[str, str]:
    technology_service.delete(db, user, technology_id)
    return {"status": "deleted"}


@technologies_router.post("/{technology_id}/restore", response_model=TechnologyRead)
def restore_technology(
    technology_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.RECORDS_RESTORE)),
) -> TechnologyRead:
    return TechnologyRead.model_validate(technology_service.restore(db, user, technology_id))


@sale_statuses_router.get("", response_model=list[SaleStatusRead])
def list_sale_statuses(
    active_only: bool = Query(default=False),
    db: Session = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
) -> list[SaleStatusRead]:
    return [SaleStatusRead.model_validate(row) for row in sale_status_service.list_items(db, active_only=active_only)]


@sale_statuses_router.get("/deleted", response_model=list[SaleStatusRead])
def list_deleted_sale_statuses(
    db: Session = Depends(get_db),
    _: AuthUser = Depends(require_capabilities(Capability.RECORDS_RESTORE)),
) -> list[SaleStatusRead]:
    return [SaleStatusRead.model_validate(row) for row in sale_status_service.list_deleted(db)]


@sale_statuses_router.post("", response_model=SaleStatusRead, status_code=status.HTTP_201_CREATED)
def create_sale_status(
    payload: SaleStatusCreate,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.CATALOG_MANAGE)),
) -> SaleStatusRead:
    return SaleStatusRead.model_validate(sale_status_service.create(db, user, payload))


@sale_statuses_router.get("/{sale_status_id}", response_model=SaleStatusRead)
def get_sale_status(
    sale_status_id: uuid.UUID,
    db: Session = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
) -> SaleStatusRead:
    return SaleStatusRead.model_validate(sale_status_service.get(db, sale_status_id))


@sale_statuses_router.patch("/{sale_status_id}", response_model=SaleStatusRead)
def update_sale_status(
    sale_status_id: uuid.UUID,
    payload: SaleStatusUpdate,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.CATALOG_MANAGE)),
) -> SaleStatusRead:
    return SaleStatusRead.model_validate(sale_status_service.update(db, user, sale_status_id, payload))


@sale_statuses_router.delete("/{sale_status_id}", status_code=status.HTTP_200_OK, response_model=None)
def delete_sale_status(
    sale_status_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.CATALOG_MANAGE)),
) -> dict[str, str]:
    sale_status_service.delete(db, user, sale_status_id)
    return {"status": "deleted"}


@sale_statuses_router.post("/{sale_status_id}/restore", response_model=SaleStatusRead)
def restore_sale_status(
    sale_status_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.RECORDS_RESTORE)),
) -> SaleStatusRead:
    return SaleStatusRead.model_validate(sale_status_service.restore(db, user, sale_status_id))
