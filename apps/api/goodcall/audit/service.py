from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from goodcall.audit.models import AuditLog
from goodcall.audit.schemas import AuditLogPage, AuditLogRead
from goodcall.context import get_client_ip, get_correlation_id, get_user_agent


def write_audit_log(
    db: Session,
    actor_id: str | None,
    action: str,
    entity_type: str,
    entity_id: str | None,
    description: str | None = None,
    old_values: dict[str, Any] | None = None,
    new_values: dict[str, Any] | None = None,
) -> AuditLog:
    event = AuditLog(
        user_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        description=description,
        old_values=old_values,
        new_values=new_values,
        ip_address=get_client_ip(),
        user_agent=get_user_agent(),
        correlation_id=get_correlation_id(),
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    return event


def list_audit_logs(
    db: Session,
    *,
    user_id: str | None = None,
    action: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    page: int = 1,
    limit: int = 50,
) -> AuditLogPage:
    stmt = select(AuditLog)
    count_stmt = select(func.count(AuditLog.id))
    filters = []
    if user_id is not None:
        filters.append(AuditLog.user_id == user_id)
    if action is not None:
        filters.append(AuditLog.action == action)
    if start_date is not None:
        filters.append(AuditLog.created_at >= start_date)
    if end_date is not None:
        filters.append(AuditLog.created_at <= end_date)
    if filters:
        stmt = stmt.where(*filters)
        count_stmt = count_stmt.where(*filters)

    total = db.scalar(count_stmt) or 0
    rows = db.scalars(
        stmt.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset((page - 1) * limit).limit(limit)
    ).all()
    return AuditLogPage(
        data=[AuditLogRead.model_validate(row) for row in rows],
        total=total,
        page=page,
        limit=limit,
    )
