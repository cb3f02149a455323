from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from goodcall.core.auth import AuthUser, get_current_user
from goodcall.core.database import get_db
from goodcall.core.rbac import Capability, require_capabilities
from goodcall.goals.schemas import GoalCreate, GoalRead, GoalType, GoalUpdate
from goodcall.goals.service import goal_service


router = APIRouter(prefix="/goals", tags=["goals"])


@router.get("", response_model=list[GoalRead])
def list_goals(
    year: int | None = Query(default=None, ge=2000, le=2100),
    month: int | None = Query(default=None, ge=1, le=12),
    user_id: uuid.UUID | None = Query(default=None),
    goal_type: GoalType | None = Query(default=None),
    db: Session = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
) -> list[GoalRead]:
    return goal_service.list_goals(db, year=year, month=month, user_id=user_id, goal_type=goal_type)


@router.post("", response_model=GoalRead, status_code=status.HTTP_201_CREATED)
def create_goal(
    payload: GoalCreate,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.GOALS_MANAGE)),
) -> GoalRead:
    return goal_service.create_goal(db, user, payload)


@router.get("/{goal_id}", response_model=GoalRead)
def get_goal(
    goal_id: uuid.UUID,
    db: Session = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
) -> GoalRead:
    return goal_service.get_goal(db, goal_id)


@router.patch("/{goal_id}", response_model=GoalRead)
def update_goal(
    goal_id: uuid.UUID,
    payload: GoalUpdate,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.GOALS_MANAGE)),
) -> GoalRead:
    return goal_service.update_goal(db, user, goal_id, payload)


@router.delete("/{goal_id}", status_code=status.HTTP_200_OK, response_model=None)
def delete_goal(
    goal_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_capabilities(Capability.GOALS_MANAGE)),
) -> dict[str, str]:
    goal_service.delete_goal(db, user, goal_id)
    return {"status": "deleted"}
