from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from goodcall.auth.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    TokenPair,
    TwoFactorChallenge,
    TwoFactorDisableRequest,
    TwoFactorEnableRequest,
    TwoFactorSetup,
)
from goodcall.auth.service import auth_service
from goodcall.core.auth import AuthUser, get_current_user
from goodcall.core.database import get_db
from goodcall.users.schemas import UserRead


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse | TwoFactorChallenge)
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> LoginResponse | TwoFactorChallenge:
    return auth_service.login(db, payload)


@router.post("/refresh", response_model=TokenPair)
def refresh(payload: RefreshRequest, db: Session = Depends(get_db)) -> TokenPair:
    return auth_service.refresh(db, payload.refresh_token)


@router.get("/me", response_model=UserRead)
def me(db: Session = Depends(get_db), user: AuthUser = Depends(get_current_user)) -> UserRead:
    return UserRead.model_validate(auth_service.me(db, user))


@router.post("/change-password", response_model=UserRead)
def change_password(
    payload: ChangePasswordRequest,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
) -> UserRead:
    return UserRead.model_validate(auth_service.change_password(db, user, payload))


@router.post("/2fa/generate", response_model=TwoFactorSetup)
def generate_two_factor(db: Session = Depends(get_db), user: AuthUser = Depends(get_current_user)) -> TwoFactorSetup:
    return auth_service.generate_two_factor(db, user)


@router.post("/2fa/enable", response_model=UserRead)
def enable_two_factor(
    payload: TwoFactorEnableRequest,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
) -> UserRead:
    return UserRead.model_validate(auth_service.enable_two_factor(db, user, payload))


@router.post("/2fa/disable", response_model=UserRead)
def disable_two_factor(
    payload: TwoFactorDisableRequest,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
) -> UserRead:
    return UserRead.model_validate(auth_service.disable_two_factor(db, user, payload))
