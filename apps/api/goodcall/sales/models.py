from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from goodcall.catalog.models import Company, SaleStatus, Technology
from goodcall.core.database import Base, utcnow
from goodcall.core.soft_delete import SoftDeleteMixin
from goodcall.users.models import User


class Sale(SoftDeleteMixin, Base):
    __tablename__ = "sales"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    client_dni: Mapped[str] = mapped_column(String(32), nullable=False)
    client_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    client_address: Mapped[str | None] = mapped_column(String(512), nullable=True)
    extra_info: Mapped[str | None] = mapped_column(Text, nullable=True)
    products: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    asesor_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    company_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("companies.id"), nullable=False)
    company_sold_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), ForeignKey("companies.id"), nullable=True)
    technology_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), ForeignKey("technologies.id"), nullable=True)
    sale_status_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), ForeignKey("sale_statuses.id"), nullable=True)
    cerrador_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    fidelizador_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    sale_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    asesor: Mapped[User] = relationship(User, foreign_keys=[asesor_id])
    cerrador: Mapped[User | None] = relationship(User, foreign_keys=[cerrador_id])
    fidelizador: Mapped[User | None] = relationship(User, foreign_keys=[fidelizador_id])
    company: Mapped[Company] = relationship(Company, foreign_keys=[company_id])
    company_sold: Mapped[Company | None] = relationship(Company, foreign_keys=[company_sold_id])
    technology: Mapped[Technology | None] = relationship(Technology)
    sale_status: Mapped[SaleStatus | None] = relationship(SaleStatus)

    __table_args__ = (
        Index("ix_sales_asesor_date", "asesor_id", "sale_date"),
        Index("ix_sales_company", "company_id"),
        Index("ix_sales_status", "sale_status_id"),
    )
