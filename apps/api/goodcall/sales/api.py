from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from goodcall.core.auth import AuthUser, get_current_user
from goodcall.core.database import get_db
from goodcall.core.rbac import Capability, require_capabilities
from goodcall.sales.schemas import SaleCreate, SalePage, SaleRead, SaleUpdate
from goodcall.sales.service import DEFAULT_PAGE_SIZE, sale_service


router = APIRouter(prefix="/sales", tags=["sales"])


@router.get("", response_model=SalePage)
def list_sales(
    asesor_id: uuid.UUID | None = Query(default=None),
    company_id: uuid.UUID | None = Query(default=None),
    sale_status_id: uuid.UUID | None = Query(default=None),
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=500),
    db: Session = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
) -> SalePage:
    return sale_service.list_sales(
        db,
        user,
        asesor_id=asesor_id,
        company_id=company_id,
        sale_status_id=sale_status_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )


@router.get("/deleted", response_model=list[SaleRead])
def list_deleted_sales(
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.RECORDS_RESTORE)),
) -> list[SaleRead]:
    return [SaleRead.model_validate(row) for row in sale_service.list_deleted(db, user)]


@router.post("", response_model=SaleRead, status_code=status.HTTP_201_CREATED)
def create_sale(
    payload: SaleCreate,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.SALES_WRITE)),
) -> SaleRead:
    return SaleRead.model_validate(sale_service.create_sale(db, user, payload))


@router.get("/{sale_id}", response_model=SaleRead)
def get_sale(
    sale_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
) -> SaleRead:
    return SaleRead.model_validate(sale_service.get_sale(db, user, sale_id))


@router.patch("/{sale_id}", response_model=SaleRead)
def update_sale(
    sale_id: uuid.UUID,
    payload: SaleUpdate,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.SALES_WRITE)),
) -> SaleRead:
    return SaleRead.model_validate(sale_service.update_sale(db, user, sale_id, payload))


@router.delete("/{sale_id}", status_code=status.HTTP_200_OK, response_model=None)
def delete_sale(
    sale_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.SALES_DELETE)),
) -> dict[str, str]:
    sale_service.delete_sale(db, user, sale_id)
    return {"status": "deleted"}


@router.post("/{sale_id}/restore", response_model=SaleRead)
def restore_sale(
    sale_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.RECORDS_RESTORE)),
) -> SaleRead:
    return SaleRead.model_validate(sale_service.restore_sale(db, user, sale_id))
