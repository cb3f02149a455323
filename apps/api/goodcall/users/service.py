from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import Select, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from goodcall.audit.service import write_audit_log
from goodcall.core.auth import AuthUser
from goodcall.core.database import utcnow
from goodcall.core.passwords import hash_password
from goodcall.core.soft_delete import find_active, including_deleted, restore
from goodcall.events import build_envelope, publish
from goodcall.users.models import User
from goodcall.users.schemas import UserCreate, UserRead, UserUpdate


logger = logging.getLogger("goodcall.users")


def _snapshot(user: User) -> dict[str, Any]:
    return UserRead.model_validate(user).model_dump(mode="json")


@dataclass(slots=True)
class UserService:
    def _get_or_404(self, session: Session, user_id: uuid.UUID) -> User:
        user = find_active(session, User, user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user not found")
        return user

    def _ensure_unique(
        self,
        session: Session,
        *,
        username: str | None,
        email: str | None,
        exclude_id: uuid.UUID | None = None,
    ) -> None:
        conditions = []
        if username is not None:
            conditions.append(User.username == username)
        if email is not None:
            conditions.append(User.email == email)
        if not conditions:
            return

        # unique constraints span soft-deleted rows as well
        stmt = including_deleted(select(User.id).where(or_(*conditions)))
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        if session.scalar(stmt.limit(1)) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="username or email already exists")

    def _ensure_coordinator(self, session: Session, coordinator_id: uuid.UUID | None) -> None:
        if coordinator_id is not None and find_active(session, User, coordinator_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="coordinator not found")

    def _commit(self, session: Session) -> None:
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="username or email already exists")

    def _publish(self, action: str, actor: AuthUser | None, user: User) -> None:
        publish(
            build_envelope(
                f"user.{action}",
                actor.sub if actor else None,
                {"action": action, "data": _snapshot(user)},
            )
        )

    def list_users(
        self,
        session: Session,
        *,
        role: str | None = None,
        is_active: bool | None = None,
        coordinator_id: uuid.UUID | None = None,
    ) -> list[User]:
        stmt: Select[tuple[User]] = select(User)
        if role is not None:
            stmt = stmt.where(User.role == role)
        if is_active is not None:
            stmt = stmt.where(User.is_active.is_(is_active))
        if coordinator_id is not None:
            stmt = stmt.where(User.coordinator_id == coordinator_id)
        return list(session.scalars(stmt.order_by(User.created_at.desc(), User.username.asc())).all())

    def get_user(self, session: Session, user_id: uuid.UUID) -> User:
        return self._get_or_404(session, user_id)

    def list_team(self, session: Session, coordinator_id: uuid.UUID) -> list[User]:
        self._get_or_404(session, coordinator_id)
        stmt = select(User).where(User.coordinator_id == coordinator_id).order_by(User.username.asc())
        return list(session.scalars(stmt).all())

    def list_deleted(self, session: Session) -> list[User]:
        # naming deleted_at in the filter opts this query out of the default exclusion
        stmt = select(User).where(User.deleted_at.is_not(None)).order_by(User.deleted_at.desc())
        return list(session.scalars(stmt).all())

    def create_user(self, session: Session, actor: AuthUser | None, dto: UserCreate) -> User:
        self._ensure_unique(session, username=dto.username, email=dto.email)
        self._ensure_coordinator(session, dto.coordinator_id)

        payload = dto.model_dump(mode="python", exclude={"password"})
        payload["role"] = dto.role.value
        user = User(**payload, password_hash=hash_password(dto.password))
        session.add(user)
        self._commit(session)
        session.refresh(user)

        write_audit_log(
            session,
            actor.sub if actor else None,
            "user.created",
            "User",
            str(user.id),
            description=f"Created user {user.username}",
            new_values=_snapshot(user),
        )
        logger.info("user.created", extra={"user_id": str(user.id), "username": user.username})
        self._publish("created", actor, user)
        return user

    def update_user(self, session: Session, actor: AuthUser, user_id: uuid.UUID, dto: UserUpdate) -> User:
        user = self._get_or_404(session, user_id)
        changes = dto.model_dump(mode="python", exclude_unset=True)

        self._ensure_unique(
            session,
            username=changes.get("username"),
            email=changes.get("email"),
            exclude_id=user.id,
        )
        if "coordinator_id" in changes:
            if changes["coordinator_id"] == user.id:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="user cannot coordinate themself")
            self._ensure_coordinator(session, changes["coordinator_id"])

        before = _snapshot(user)
        password = changes.pop("password", None)
        if password is not None:
            user.password_hash = hash_password(password)
        if changes.get("role") is not None:
            changes["role"] = changes["role"].value

        locked = changes.pop("is_locked", None)
        if locked is True and not user.is_locked:
            user.is_locked = True
            user.locked_at = utcnow()
        elif locked is False:
            user.is_locked = False
            user.locked_at = None
            user.failed_login_attempts = 0

        for field, value in changes.items():
            if field in {"username", "email", "first_name", "last_name", "role", "is_active", "must_change_password"} and value is None:
                continue
            setattr(user, field, value)

        self._commit(session)
        session.refresh(user)

        write_audit_log(
            session,
            actor.sub,
            "user.updated",
            "User",
            str(user.id),
            description=f"Updated user {user.username}",
            old_values=before,
            new_values=_snapshot(user),
        )
        self._publish("updated", actor, user)
        return user

    def delete_user(self, session: Session, actor: AuthUser, user_id: uuid.UUID) -> None:
        if actor.sub == str(user_id):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="user cannot delete themself")
        user = self._get_or_404(session, user_id)
        snapshot = _snapshot(user)

        session.delete(user)
        session.commit()
        session.refresh(user)

        write_audit_log(
            session,
            actor.sub,
            "user.deleted",
            "User",
            str(user_id),
            description=f"Deleted user {user.username}",
            old_values=snapshot,
        )
        logger.info("user.deleted", extra={"user_id": str(user_id)})
        self._publish("deleted", actor, user)

    def restore_user(self, session: Session, actor: AuthUser, user_id: uuid.UUID) -> User:
        user = restore(session, User, user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user not found")
        session.commit()
        session.refresh(user)

        write_audit_log(session, actor.sub, "user.restored", "User", str(user.id), description=f"Restored user {user.username}")
        self._publish("restored", actor, user)
        return user


user_service = UserService()
