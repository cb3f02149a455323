from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from goodcall.users.schemas import UserSummary


class CatalogRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str


class SaleStatusRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    color: str | None
    is_final: bool


class SaleCreate(BaseModel):
    client_name: str = Field(min_length=1, max_length=255)
    client_dni: str = Field(min_length=1, max_length=32)
    client_phone: str | None = Field(default=None, max_length=32)
    client_address: str | None = Field(default=None, max_length=512)
    extra_info: str | None = None
    products: list[str] = Field(default_factory=list)
    company_id: UUID
    company_sold_id: UUID | None = None
    technology_id: UUID | None = None
    sale_status_id: UUID | None = None
    asesor_id: UUID | None = None
    cerrador_id: UUID | None = None
    fidelizador_id: UUID | None = None
    sale_date: datetime | None = None


class SaleUpdate(BaseModel):
    client_name: str | None = Field(default=None, min_length=1, max_length=255)
    client_dni: str | None = Field(default=None, min_length=1, max_length=32)
    client_phone: str | None = Field(default=None, max_length=32)
    client_address: str | None = Field(default=None, max_length=512)
    extra_info: str | None = None
    products: list[str] | None = None
    company_id: UUID | None = None
    company_sold_id: UUID | None = None
    technology_id: UUID | None = None
    sale_status_id: UUID | None = None
    asesor_id: UUID | None = None
    cerrador_id: UUID | None = None
    fidelizador_id: UUID | None = None
    sale_date: datetime | None = None


class SaleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    client_name: str
    client_dni: str
    client_phone: str | None
    client_address: str | None
    extra_info: str | None
    products: list[str]
    asesor_id: UUID
    company_id: UUID
    company_sold_id: UUID | None
    technology_id: UUID | None
    sale_status_id: UUID | None
    cerrador_id: UUID | None
    fidelizador_id: UUID | None
    sale_date: datetime
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None
    asesor: UserSummary | None = None
    cerrador: UserSummary | None = None
    fidelizador: UserSummary | None = None
    company: CatalogRef | None = None
    company_sold: CatalogRef | None = None
    technology: CatalogRef | None = None
    sale_status: SaleStatusRef | None = None


class SalePage(BaseModel):
    data: list[SaleRead]
    total: int
    page: int
    limit: int
