from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

from fastapi import HTTPException, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from goodcall.audit.service import write_audit_log
from goodcall.catalog.models import Company, SaleStatus, Technology
from goodcall.core.auth import AuthUser
from goodcall.core.soft_delete import find_active, including_deleted, restore


_REQUIRED_FIELDS = {"name", "display_order", "is_active", "is_final"}


@dataclass(slots=True)
class ReferenceDataService:
    """CRUD over one kind of reference data (companies, technologies, sale statuses)."""

    model: type[Any]
    label: str

    def _get_or_404(self, session: Session, item_id: uuid.UUID) -> Any:
        item = find_active(session, self.model, item_id)
        if item is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{self.label} not found")
        return item

    def _ensure_unique_name(self, session: Session, name: str, exclude_id: uuid.UUID | None = None) -> None:
        stmt = including_deleted(select(self.model.id).where(self.model.name == name))
        if exclude_id is not None:
            stmt = stmt.where(self.model.id != exclude_id)
        if session.scalar(stmt.limit(1)) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"{self.label} already exists")

    def _commit(self, session: Session) -> None:
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"{self.label} already exists")

    def list_items(self, session: Session, *, active_only: bool = False) -> list[Any]:
        stmt = select(self.model)
        if active_only:
            stmt = stmt.where(self.model.is_active.is_(True))
        return list(session.scalars(stmt.order_by(self.model.display_order.asc(), self.model.name.asc())).all())

    def list_deleted(self, session: Session) -> list[Any]:
        stmt = select(self.model).where(self.model.deleted_at.is_not(None))
        return list(session.scalars(stmt.order_by(self.model.deleted_at.desc())).all())

    def get(self, session: Session, item_id: uuid.UUID) -> Any:
        return self._get_or_404(session, item_id)

    def create(self, session: Session, actor: AuthUser, dto: BaseModel) -> Any:
        payload = dto.model_dump(mode="python")
        self._ensure_unique_name(session, payload["name"])

        item = self.model(**payload)
        session.add(item)
        self._commit(session)
        session.refresh(item)

        write_audit_log(
            session,
            actor.sub,
            f"{self.label}.created",
            self.model.__name__,
            str(item.id),
            description=f"Created {self.label} {item.name}",
            new_values=dto.model_dump(mode="json"),
        )
        return item

    def update(self, session: Session, actor: AuthUser, item_id: uuid.UUID, dto: BaseModel) -> Any:
        item = self._get_or_404(session, item_id)
        changes = {
            field: value
            for field, value in dto.model_dump(mode="python", exclude_unset=True).items()
            if not (field in _REQUIRED_FIELDS and value is None)
        }
        if "name" in changes and changes["name"] != item.name:
            self._ensure_unique_name(session, changes["name"], exclude_id=item.id)

        for field, value in changes.items():
            setattr(item, field, value)
        self._commit(session)
        session.refresh(item)

        write_audit_log(
            session,
            actor.sub,
            f"{self.label}.updated",
            self.model.__name__,
            str(item.id),
            description=f"Updated {self.label} {item.name}",
            new_values=dto.model_dump(mode="json", exclude_unset=True),
        )
        return item

    def delete(self, session: Session, actor: AuthUser, item_id: uuid.UUID) -> None:
        item = self._get_or_404(session, item_id)
        name = item.name
        session.delete(item)
        session.commit()
        write_audit_log(
            session,
            actor.sub,
            f"{self.label}.deleted",
            self.model.__name__,
            str(item_id),
            description=f"Deleted {self.label} {name}",
        )

    def restore(self, session: Session, actor: AuthUser, item_id: uuid.UUID) -> Any:
        item = restore(session, self.model, item_id)
        if item is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{self.label} not found")
        session.commit()
        session.refresh(item)
        write_audit_log(
            session,
            actor.sub,
            f"{self.label}.restored",
            self.model.__name__,
            str(item.id),
            description=f"Restored {self.label} {item.name}",
        )
        return item


company_service = ReferenceDataService(model=Company, label="company")
technology_service = ReferenceDataService(model=Technology, label="technology")
sale_status_service = ReferenceDataService(model=SaleStatus, label="sale_status")
