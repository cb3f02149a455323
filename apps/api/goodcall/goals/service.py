"""Monthly sales goals.

``current_sales`` is never stored: every read counts the non-deleted sales in the goal's
calendar month (UTC, ``[first instant, first instant of next month)``) for the goal's scope.
An asesor goal counts that asesor's sales, a coordinador goal counts the sales of every
non-deleted user whose ``coordinator_id`` is the target, and a global goal counts everything.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from goodcall.audit.service import write_audit_log
from goodcall.core.auth import AuthUser
from goodcall.core.soft_delete import find_active
from goodcall.events import build_envelope, publish
from goodcall.goals.models import Goal
from goodcall.goals.schemas import GoalCreate, GoalRead, GoalUpdate
from goodcall.otel import get_tracer
from goodcall.sales.models import Sale
from goodcall.users.models import User
from goodcall.users.schemas import UserSummary


logger = logging.getLogger("goodcall.goals")
tracer = get_tracer("goodcall.goals")


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, end


def calculate_current_sales(
    session: Session,
    goal_type: str,
    target_user_id: uuid.UUID | None,
    year: int,
    month: int,
) -> int:
    with tracer.start_as_current_span("goals.calculate_current_sales") as span:
        span.set_attribute("goal.type", goal_type)
        span.set_attribute("goal.period", f"{year:04d}-{month:02d}")

        start, end = month_bounds(year, month)
        stmt = select(func.count(Sale.id)).where(Sale.sale_date >= start, Sale.sale_date < end)

        if goal_type == "asesor" and target_user_id is not None:
            stmt = stmt.where(Sale.asesor_id == target_user_id)
        elif goal_type == "coordinador" and target_user_id is not None:
            team_ids = list(session.scalars(select(User.id).where(User.coordinator_id == target_user_id)).all())
            if not team_ids:
                return 0
            stmt = stmt.where(Sale.asesor_id.in_(team_ids))

        return session.scalar(stmt) or 0


def _to_read(session: Session, goal: Goal) -> GoalRead:
    current = calculate_current_sales(session, goal.goal_type, goal.target_user_id, goal.year, goal.month)
    progress = round(current * 100.0 / goal.target_sales, 2) if goal.target_sales > 0 else 0.0
    return GoalRead.model_validate(
        {
            "id": goal.id,
            "goal_type": goal.goal_type,
            "target_user_id": goal.target_user_id,
            "year": goal.year,
            "month": goal.month,
            "target_sales": goal.target_sales,
            "current_sales": current,
            "progress": progress,
            "created_at": goal.created_at,
            "updated_at": goal.updated_at,
            "target_user": UserSummary.model_validate(goal.target_user) if goal.target_user else None,
        }
    )


@dataclass(slots=True)
class GoalService:
    def _get_or_404(self, session: Session, goal_id: uuid.UUID) -> Goal:
        goal = find_active(session, Goal, goal_id)
        if goal is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="goal not found")
        return goal

    def _publish(self, action: str, actor: AuthUser, data: dict) -> None:
        publish(build_envelope(f"goal.{action}", actor.sub, {"action": action, "data": data}))

    def list_goals(
        self,
        session: Session,
        *,
        year: int | None = None,
        month: int | None = None,
        user_id: uuid.UUID | None = None,
        goal_type: str | None = None,
    ) -> list[GoalRead]:
        stmt = select(Goal)
        if year is not None:
            stmt = stmt.where(Goal.year == year)
        if month is not None:
            stmt = stmt.where(Goal.month == month)
        if user_id is not None:
            stmt = stmt.where(Goal.target_user_id == user_id)
        if goal_type is not None:
            stmt = stmt.where(Goal.goal_type == goal_type)

        rows = session.scalars(stmt.order_by(Goal.year.desc(), Goal.month.desc(), Goal.goal_type.asc())).all()
        return [_to_read(session, row) for row in rows]

    def get_goal(self, session: Session, goal_id: uuid.UUID) -> GoalRead:
        return _to_read(session, self._get_or_404(session, goal_id))

    def create_goal(self, session: Session, actor: AuthUser, dto: GoalCreate) -> GoalRead:
        if dto.target_user_id is not None and find_active(session, User, dto.target_user_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="target user not found")

        # NULL targets never collide in the unique index, so global goals are checked here
        target_clause = Goal.target_user_id.is_(None) if dto.target_user_id is None else Goal.target_user_id == dto.target_user_id
        existing = session.scalar(
            select(Goal.id).where(
                Goal.goal_type == dto.goal_type,
                target_clause,
                Goal.year == dto.year,
                Goal.month == dto.month,
            )
        )
        if existing is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="goal already exists for this period")

        goal = Goal(**dto.model_dump(mode="python"), created_by_id=actor.user_id)
        session.add(goal)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="goal already exists for this period")
        session.refresh(goal)

        read = _to_read(session, goal)
        write_audit_log(
            session,
            actor.sub,
            "goal.created",
            "Goal",
            str(goal.id),
            description=f"Created {dto.goal_type} goal for {dto.year}-{dto.month:02d}",
            new_values=dto.model_dump(mode="json"),
        )
        self._publish("created", actor, read.model_dump(mode="json"))
        return read

    def update_goal(self, session: Session, actor: AuthUser, goal_id: uuid.UUID, dto: GoalUpdate) -> GoalRead:
        goal = self._get_or_404(session, goal_id)
        previous = goal.target_sales
        goal.target_sales = dto.target_sales
        session.commit()
        session.refresh(goal)

        read = _to_read(session, goal)
        write_audit_log(
            session,
            actor.sub,
            "goal.updated",
            "Goal",
            str(goal.id),
            old_values={"target_sales": previous},
            new_values={"target_sales": dto.target_sales},
        )
        self._publish("updated", actor, read.model_dump(mode="json"))
        return read

    def delete_goal(self, session: Session, actor: AuthUser, goal_id: uuid.UUID) -> None:
        goal = self._get_or_404(session, goal_id)
        session.delete(goal)
        session.commit()

        write_audit_log(session, actor.sub, "goal.deleted", "Goal", str(goal_id))
        logger.info("goal.deleted", extra={"entity_id": str(goal_id)})
        self._publish("deleted", actor, {"id": str(goal_id)})


goal_service = GoalService()
