from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from goodcall.core.auth import AuthUser, get_current_user
from goodcall.core.database import get_db
from goodcall.core.rbac import Capability, require_capabilities
from goodcall.notifications.schemas import MarkAllReadResult, NotificationCreate, NotificationRead, UnreadCount
from goodcall.notifications.service import notification_service


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationRead])
def list_notifications(
    unread_only: bool = Query(default=False),
    db: Session = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
) -> list[NotificationRead]:
    rows = notification_service.list_for_user(db, user.user_id, unread_only=unread_only)
    return [NotificationRead.model_validate(row) for row in rows]


@router.get("/unread-count", response_model=UnreadCount)
def unread_count(db: Session = Depends(get_db), user: AuthUser = Depends(get_current_user)) -> UnreadCount:
    return UnreadCount(count=notification_service.unread_count(db, user.user_id))


@router.post("", response_model=NotificationRead, status_code=status.HTTP_201_CREATED)
def create_notification(
    payload: NotificationCreate,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.USERS_MANAGE)),
) -> NotificationRead:
    return NotificationRead.model_validate(notification_service.create_notification(db, user.sub, payload))


@router.patch("/read-all", response_model=MarkAllReadResult)
def mark_all_read(db: Session = Depends(get_db), user: AuthUser = Depends(get_current_user)) -> MarkAllReadResult:
    return MarkAllReadResult(updated=notification_service.mark_all_read(db, user.user_id))


@router.get("/{notification_id}", response_model=NotificationRead)
def get_notification(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
) -> NotificationRead:
    return NotificationRead.model_validate(notification_service.get(db, user.user_id, notification_id))


@router.patch("/{notification_id}/read", response_model=NotificationRead)
def mark_read(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
) -> NotificationRead:
    return NotificationRead.model_validate(notification_service.mark_read(db, user.user_id, notification_id))


@router.delete("/{notification_id}", status_code=status.HTTP_200_OK, response_model=None)
def delete_notification(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
) -> dict[str, str]:
    notification_service.delete(db, user.user_id, notification_id)
    return {"status": "deleted"}
