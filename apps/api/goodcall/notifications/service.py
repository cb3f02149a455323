from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from fastapi import HTTPException, status
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from goodcall.core.database import utcnow
from goodcall.core.soft_delete import find_active
from goodcall.events import build_envelope, publish
from goodcall.notifications.models import Notification
from goodcall.notifications.schemas import NotificationCreate, NotificationRead
from goodcall.users.models import User


logger = logging.getLogger("goodcall.notifications")


@dataclass(slots=True)
class NotificationService:
    def _get_owned(self, session: Session, user_id: uuid.UUID, notification_id: uuid.UUID) -> Notification:
        notification = session.scalar(
            select(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
        )
        if notification is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="notification not found")
        return notification

    def create_notification(self, session: Session, actor_id: str | None, dto: NotificationCreate) -> Notification:
        if find_active(session, User, dto.user_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user not found")

        notification = Notification(**dto.model_dump(mode="python"))
        session.add(notification)
        session.commit()
        session.refresh(notification)

        logger.info("notification.created", extra={"user_id": str(dto.user_id), "entity_id": str(notification.id)})
        publish(
            build_envelope(
                "notification.created",
                actor_id,
                {
                    "user_id": str(notification.user_id),
                    "data": NotificationRead.model_validate(notification).model_dump(mode="json"),
                },
            )
        )
        return notification

    def list_for_user(self, session: Session, user_id: uuid.UUID, *, unread_only: bool = False) -> list[Notification]:
        stmt = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        return list(session.scalars(stmt.order_by(Notification.created_at.desc())).all())

    def unread_count(self, session: Session, user_id: uuid.UUID) -> int:
        stmt = select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
        return session.scalar(stmt) or 0

    def get(self, session: Session, user_id: uuid.UUID, notification_id: uuid.UUID) -> Notification:
        return self._get_owned(session, user_id, notification_id)

    def mark_read(self, session: Session, user_id: uuid.UUID, notification_id: uuid.UUID) -> Notification:
        notification = self._get_owned(session, user_id, notification_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utcnow()
            session.commit()
            session.refresh(notification)
        return notification

    def mark_all_read(self, session: Session, user_id: uuid.UUID) -> int:
        result = session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        session.commit()
        return result.rowcount or 0

    def delete(self, session: Session, user_id: uuid.UUID, notification_id: uuid.UUID) -> None:
        notification = self._get_owned(session, user_id, notification_id)
        session.delete(notification)
        session.commit()


notification_service = NotificationService()
