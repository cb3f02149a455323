from __future__ import annotations

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from goodcall.users.schemas import UserRead


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=8, max_length=128)
    two_factor_code: str | None = Field(default=None, min_length=6, max_length=8)


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: Literal["bearer"] = "bearer"


class LoginResponse(TokenPair):
    user: UserRead


class TwoFactorChallenge(BaseModel):
    two_factor_required: Literal[True] = True
    user_id: UUID


class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=1)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=8, max_length=128)


class TwoFactorSetup(BaseModel):
    secret: str
    otpauth_url: str


class TwoFactorEnableRequest(BaseModel):
    secret: str = Field(min_length=16, max_length=64)
    token: str = Field(min_length=6, max_length=8)


class TwoFactorDisableRequest(BaseModel):
    token: str = Field(min_length=6, max_length=8)
