from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from goodcall.core.auth import AuthUser
from goodcall.core.database import get_db
from goodcall.core.rbac import Capability, UserRole, require_capabilities
from goodcall.users.schemas import UserCreate, UserRead, UserUpdate
from goodcall.users.service import user_service


router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserRead])
def list_users(
    role: UserRole | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    coordinator_id: uuid.UUID | None = Query(default=None),
    db: Session = Depends(get_db),
    _: AuthUser = Depends(require_capabilities(Capability.USERS_READ)),
) -> list[UserRead]:
    rows = user_service.list_users(
        db,
        role=role.value if role else None,
        is_active=is_active,
        coordinator_id=coordinator_id,
    )
    return [UserRead.model_validate(row) for row in rows]


@router.get("/deleted", response_model=list[UserRead])
def list_deleted_users(
    db: Session = Depends(get_db),
    _: AuthUser = Depends(require_capabilities(Capability.RECORDS_RESTORE)),
) -> list[UserRead]:
    return [UserRead.model_validate(row) for row in user_service.list_deleted(db)]


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.USERS_MANAGE)),
) -> UserRead:
    return UserRead.model_validate(user_service.create_user(db, user, payload))


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    _: AuthUser = Depends(require_capabilities(Capability.USERS_READ)),
) -> UserRead:
    return UserRead.model_validate(user_service.get_user(db, user_id))


@router.get("/{user_id}/team", response_model=list[UserRead])
def list_team(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    _: AuthUser = Depends(require_capabilities(Capability.USERS_READ)),
) -> list[UserRead]:
    return [UserRead.model_validate(row) for row in user_service.list_team(db, user_id)]


@router.patch("/{user_id}", response_model=UserRead)
def update_user(
    user_id: uuid.UUID,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.USERS_MANAGE)),
) -> UserRead:
    return UserRead.model_validate(user_service.update_user(db, user, user_id, payload))


@router.delete("/{user_id}", status_code=status.HTTP_200_OK, response_model=None)
def delete_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.USERS_MANAGE)),
) -> dict[str, str]:
    user_service.delete_user(db, user, user_id)
    return {"status": "deleted"}


@router.post("/{user_id}/restore", response_model=UserRead)
def restore_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.RECORDS_RESTORE)),
) -> UserRead:
    return UserRead.model_validate(user_service.restore_user(db, user, user_id))
