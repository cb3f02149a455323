from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from goodcall.core.rbac import UserRole


class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=64)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    first_name: str = Field(min_length=1, max_length=128)
    last_name: str = Field(min_length=1, max_length=128)
    role: UserRole = UserRole.ASESOR
    coordinator_id: UUID | None = None
    is_active: bool = True
    must_change_password: bool = False


class UserUpdate(BaseModel):
    username: str | None = Field(default=None, min_length=3, max_length=64)
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=8, max_length=128)
    first_name: str | None = Field(default=None, min_length=1, max_length=128)
    last_name: str | None = Field(default=None, min_length=1, max_length=128)
    role: UserRole | None = None
    coordinator_id: UUID | None = None
    is_active: bool | None = None
    is_locked: bool | None = None
    must_change_password: bool | None = None


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    first_name: str
    last_name: str
    role: str


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
    is_locked: bool
    failed_login_attempts: int
    locked_at: datetime | None
    must_change_password: bool
    two_factor_enabled: bool
    last_login_at: datetime | None
    coordinator_id: UUID | None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None
