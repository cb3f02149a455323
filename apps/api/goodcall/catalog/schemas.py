from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class CompanyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    code: str | None = Field(default=None, max_length=32)
    display_order: int = 0
    is_active: bool = True


class CompanyUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=128)
    code: str | None = Field(default=None, max_length=32)
    display_order: int | None = None
    is_active: bool | None = None


class CompanyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    code: str | None
    display_order: int
    is_active: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None


class TechnologyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    code: str | None = Field(default=None, max_length=32)
    display_order: int = 0
    is_active: bool = True


class TechnologyUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=128)
    code: str | None = Field(default=None, max_length=32)
    display_order: int | None = None
    is_active: bool | None = None


class TechnologyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    code: str | None
    display_order: int
    is_active: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None


class SaleStatusCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    code: str | None = Field(default=None, max_length=32)
    color: str | None = Field(default=None, pattern=HEX_COLOR_PATTERN)
    is_final: bool = False
    display_order: int = 0
    is_active: bool = True


class SaleStatusUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=128)
    code: str | None = Field(default=None, max_length=32)
    color: str | None = Field(default=None, pattern=HEX_COLOR_PATTERN)
    is_final: bool | None = None
    display_order: int | None = None
    is_active: bool | None = None


class SaleStatusRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    code: str | None
    color: str | None
    is_final: bool
    display_order: int
    is_active: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None
