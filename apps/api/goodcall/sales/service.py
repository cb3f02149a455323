from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from goodcall.audit.service import write_audit_log
from goodcall.catalog.models import Company, SaleStatus, Technology
from goodcall.core.auth import AuthUser
from goodcall.core.database import as_utc, utcnow
from goodcall.core.rbac import Capability, has_capability
from goodcall.core.soft_delete import find_active, restore
from goodcall.events import build_envelope, publish
from goodcall.notifications.schemas import NotificationCreate
from goodcall.notifications.service import notification_service
from goodcall.sales.models import Sale
from goodcall.sales.schemas import SaleCreate, SalePage, SaleRead, SaleUpdate
from goodcall.users.models import User


logger = logging.getLogger("goodcall.sales")

DEFAULT_PAGE_SIZE = 100

_REFERENCES: dict[str, tuple[type[Any], str]] = {
    "company_id": (Company, "company"),
    "company_sold_id": (Company, "company"),
    "technology_id": (Technology, "technology"),
    "sale_status_id": (SaleStatus, "sale status"),
    "asesor_id": (User, "asesor"),
    "cerrador_id": (User, "cerrador"),
    "fidelizador_id": (User, "fidelizador"),
}
_REQUIRED_FIELDS = {"client_name", "client_dni", "products", "company_id", "asesor_id", "sale_date"}


def _snapshot(sale: Sale) -> dict[str, Any]:
    return SaleRead.model_validate(sale).model_dump(mode="json")


@dataclass(slots=True)
class SaleService:
    def _scoped(self, stmt: Select[Any], actor: AuthUser) -> Select[Any]:
        if has_capability(actor, Capability.SALES_READ_ALL):
            return stmt
        return stmt.where(Sale.asesor_id == actor.user_id)

    def _get_or_404(self, session: Session, actor: AuthUser, sale_id: uuid.UUID) -> Sale:
        sale = find_active(session, Sale, sale_id)
        if sale is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="sale not found")
        if not has_capability(actor, Capability.SALES_READ_ALL) and sale.asesor_id != actor.user_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="sale not found")
        return sale

    def _ensure_references(self, session: Session, values: dict[str, Any]) -> None:
        for field, (model, label) in _REFERENCES.items():
            ident = values.get(field)
            if ident is not None and find_active(session, model, ident) is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")

    def _ensure_own(self, actor: AuthUser, asesor_id: uuid.UUID) -> None:
        if asesor_id != actor.user_id and not has_capability(actor, Capability.SALES_READ_ALL):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="cannot manage sales of another asesor")

    def _publish(self, action: str, actor: AuthUser, sale: Sale) -> None:
        publish(build_envelope(f"sale.{action}", actor.sub, {"action": action, "data": _snapshot(sale)}))

    def list_sales(
        self,
        session: Session,
        actor: AuthUser,
        *,
        asesor_id: uuid.UUID | None = None,
        company_id: uuid.UUID | None = None,
        sale_status_id: uuid.UUID | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> SalePage:
        filters = []
        if asesor_id is not None:
            filters.append(Sale.asesor_id == asesor_id)
        if company_id is not None:
            filters.append(Sale.company_id == company_id)
        if sale_status_id is not None:
            filters.append(Sale.sale_status_id == sale_status_id)
        if start_date is not None:
            filters.append(Sale.sale_date >= as_utc(start_date))
        if end_date is not None:
            filters.append(Sale.sale_date <= as_utc(end_date))

        stmt = self._scoped(select(Sale).where(*filters), actor)
        count_stmt = self._scoped(select(func.count(Sale.id)).where(*filters), actor)

        total = session.scalar(count_stmt) or 0
        rows = session.scalars(
            stmt.order_by(Sale.sale_date.desc(), Sale.created_at.desc()).offset((page - 1) * limit).limit(limit)
        ).all()
        return SalePage(data=[SaleRead.model_validate(row) for row in rows], total=total, page=page, limit=limit)

    def list_deleted(self, session: Session, actor: AuthUser) -> list[Sale]:
        stmt = self._scoped(select(Sale).where(Sale.deleted_at.is_not(None)), actor)
        return list(session.scalars(stmt.order_by(Sale.deleted_at.desc())).all())

    def get_sale(self, session: Session, actor: AuthUser, sale_id: uuid.UUID) -> Sale:
        return self._get_or_404(session, actor, sale_id)

    def create_sale(self, session: Session, actor: AuthUser, dto: SaleCreate) -> Sale:
        values = dto.model_dump(mode="python")
        values["asesor_id"] = values.get("asesor_id") or actor.user_id
        self._ensure_own(actor, values["asesor_id"])
        self._ensure_references(session, values)
        values["sale_date"] = as_utc(values["sale_date"]) if values.get("sale_date") else utcnow()

        sale = Sale(**values)
        session.add(sale)
        session.commit()
        session.refresh(sale)

        write_audit_log(
            session,
            actor.sub,
            "sale.created",
            "Sale",
            str(sale.id),
            description=f"Created sale for {sale.client_name}",
            new_values=_snapshot(sale),
        )
        logger.info("sale.created", extra={"user_id": actor.sub, "entity_id": str(sale.id)})
        self._publish("created", actor, sale)

        if sale.asesor_id != actor.user_id:
            notification_service.create_notification(
                session,
                actor.sub,
                NotificationCreate(
                    user_id=sale.asesor_id,
                    type="sale",
                    title="Nueva venta registrada",
                    message=f"Se ha registrado una venta a tu nombre para {sale.client_name}",
                    related_entity_type="Sale",
                    related_entity_id=str(sale.id),
                    action_url=f"/sales/{sale.id}",
                ),
            )
        return sale

    def update_sale(self, session: Session, actor: AuthUser, sale_id: uuid.UUID, dto: SaleUpdate) -> Sale:
        sale = self._get_or_404(session, actor, sale_id)
        changes = {
            field: value
            for field, value in dto.model_dump(mode="python", exclude_unset=True).items()
            if not (field in _REQUIRED_FIELDS and value is None)
        }
        if "asesor_id" in changes:
            self._ensure_own(actor, changes["asesor_id"])
        self._ensure_references(session, changes)
        if "sale_date" in changes:
            changes["sale_date"] = as_utc(changes["sale_date"])

        before = _snapshot(sale)
        for field, value in changes.items():
            setattr(sale, field, value)
        session.commit()
        session.refresh(sale)

        write_audit_log(
            session,
            actor.sub,
            "sale.updated",
            "Sale",
            str(sale.id),
            description=f"Updated sale for {sale.client_name}",
            old_values=before,
            new_values=_snapshot(sale),
        )
        self._publish("updated", actor, sale)
        return sale

    def delete_sale(self, session: Session, actor: AuthUser, sale_id: uuid.UUID) -> None:
        sale = self._get_or_404(session, actor, sale_id)
        session.delete(sale)
        session.commit()
        session.refresh(sale)

        write_audit_log(session, actor.sub, "sale.deleted", "Sale", str(sale_id), description=f"Deleted sale for {sale.client_name}")
        self._publish("deleted", actor, sale)

    def restore_sale(self, session: Session, actor: AuthUser, sale_id: uuid.UUID) -> Sale:
        sale = restore(session, Sale, sale_id)
        if sale is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="sale not found")
        session.commit()
        session.refresh(sale)

        write_audit_log(session, actor.sub, "sale.restored", "Sale", str(sale.id), description=f"Restored sale for {sale.client_name}")
        self._publish("restored", actor, sale)
        return sale


sale_service = SaleService()
