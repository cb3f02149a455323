from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from goodcall.audit.schemas import AuditLogPage
from goodcall.audit.service import list_audit_logs
from goodcall.core.auth import AuthUser
from goodcall.core.database import get_db
from goodcall.core.rbac import Capability, require_capabilities


router = APIRouter(prefix="/logs", tags=["logs"])


@router.get("", response_model=AuditLogPage)
def list_logs(
    user_id: str | None = Query(default=None),
    action: str | None = Query(default=None),
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
    _: AuthUser = Depends(require_capabilities(Capability.AUDIT_READ)),
) -> AuditLogPage:
    return list_audit_logs(
        db,
        user_id=user_id,
        action=action,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
