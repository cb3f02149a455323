"""Credential checks, account lockout and token issuance.

Lockout is a per-user counter: every failed password (or second-factor) check increments
``failed_login_attempts`` and the account flips to locked once it reaches
``max_login_attempts``. Locked accounts stay locked until an administrator clears the flag
through the user update endpoint. A successful login resets the counter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import pyotp
from fastapi import HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from goodcall.audit.service import write_audit_log
from goodcall.auth.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    TokenPair,
    TwoFactorChallenge,
    TwoFactorDisableRequest,
    TwoFactorEnableRequest,
    TwoFactorSetup,
)
from goodcall.core.auth import REFRESH_TOKEN_TYPE, AuthUser, create_access_token, create_refresh_token, decode_token
from goodcall.core.config import get_settings
from goodcall.core.crypto import decrypt_secret, encrypt_secret
from goodcall.core.database import utcnow
from goodcall.core.passwords import hash_password, verify_password
from goodcall.core.soft_delete import find_active
from goodcall.metrics import observe_account_lockout, observe_login_attempt
from goodcall.otel import get_tracer
from goodcall.users.models import User
from goodcall.users.schemas import UserRead


logger = logging.getLogger("goodcall.auth")
tracer = get_tracer("goodcall.auth")


def _invalid_credentials() -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")


def _issue_tokens(user: User) -> TokenPair:
    subject = str(user.id)
    return TokenPair(
        access_token=create_access_token(subject, user.username, user.role),
        refresh_token=create_refresh_token(subject, user.username, user.role),
    )


@dataclass(slots=True)
class AuthService:
    def _current(self, session: Session, actor: AuthUser) -> User:
        user = find_active(session, User, actor.user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User no longer exists")
        return user

    def _register_failure(self, session: Session, user: User, reason: str) -> None:
        settings = get_settings()
        # counted in the database so concurrent failures never overwrite each other
        session.execute(
            update(User)
            .where(User.id == user.id)
            .values(failed_login_attempts=User.failed_login_attempts + 1)
            .execution_options(synchronize_session=False)
        )
        locked = session.execute(
            update(User)
            .where(
                User.id == user.id,
                User.is_locked.is_(False),
                User.failed_login_attempts >= settings.max_login_attempts,
            )
            .values(is_locked=True, locked_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        locked_now = locked.rowcount == 1
        session.commit()
        session.refresh(user)

        observe_login_attempt(reason)
        logger.info(
            "auth.login_failed",
            extra={"user_id": str(user.id), "failed_attempts": user.failed_login_attempts},
        )
        if locked_now:
            observe_account_lockout()
            logger.warning("auth.account_locked", extra={"user_id": str(user.id), "username": user.username})
            write_audit_log(
                session,
                str(user.id),
                "auth.account_locked",
                "User",
                str(user.id),
                description=f"Account locked after {user.failed_login_attempts} failed attempts",
            )

    def _verify_second_factor(self, user: User, code: str) -> bool:
        if not user.two_factor_secret:
            return False
        secret = decrypt_secret(user.two_factor_secret)
        if secret is None:
            return False
        return pyotp.TOTP(secret).verify(code, valid_window=1)

    def login(self, session: Session, dto: LoginRequest) -> LoginResponse | TwoFactorChallenge:
        with tracer.start_as_current_span("auth.login"):
            user = session.scalar(select(User).where(User.username == dto.username))
            if user is None:
                observe_login_attempt("unknown_user")
                logger.info("auth.login_failed", extra={"username": dto.username})
                raise _invalid_credentials()

            if not user.is_active:
                observe_login_attempt("disabled")
                raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account disabled")

            if user.is_locked:
                observe_login_attempt("locked")
                raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account locked")

            if not verify_password(dto.password, user.password_hash):
                self._register_failure(session, user, "bad_password")
                raise _invalid_credentials()

            if user.two_factor_enabled:
                if not dto.two_factor_code:
                    observe_login_attempt("two_factor_required")
                    return TwoFactorChallenge(user_id=user.id)
                if not self._verify_second_factor(user, dto.two_factor_code):
                    self._register_failure(session, user, "bad_two_factor")
                    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid two-factor code")

            user.failed_login_attempts = 0
            user.last_login_at = utcnow()
            session.commit()
            session.refresh(user)

            observe_login_attempt("success")
            logger.info("auth.login_succeeded", extra={"user_id": str(user.id), "username": user.username})
            write_audit_log(session, str(user.id), "auth.login", "User", str(user.id), description="Logged in")

            tokens = _issue_tokens(user)
            return LoginResponse(user=UserRead.model_validate(user), **tokens.model_dump())

    def refresh(self, session: Session, refresh_token: str) -> TokenPair:
        claims = decode_token(refresh_token, REFRESH_TOKEN_TYPE)
        user = find_active(session, User, claims.user_id)
        if user is None or not user.is_active or user.is_locked:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token no longer valid")
        return _issue_tokens(user)

    def me(self, session: Session, actor: AuthUser) -> User:
        return self._current(session, actor)

    def change_password(self, session: Session, actor: AuthUser, dto: ChangePasswordRequest) -> User:
        user = self._current(session, actor)
        if not verify_password(dto.current_password, user.password_hash):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
        if dto.new_password == dto.current_password:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="New password must differ from the current one")

        user.password_hash = hash_password(dto.new_password)
        user.must_change_password = False
        session.commit()
        session.refresh(user)
        write_audit_log(session, actor.sub, "auth.password_changed", "User", actor.sub, description="Password changed")
        return user

    def generate_two_factor(self, session: Session, actor: AuthUser) -> TwoFactorSetup:
        user = self._current(session, actor)
        secret = pyotp.random_base32()
        otpauth_url = pyotp.TOTP(secret).provisioning_uri(name=user.email, issuer_name=get_settings().two_factor_issuer)
        return TwoFactorSetup(secret=secret, otpauth_url=otpauth_url)

    def enable_two_factor(self, session: Session, actor: AuthUser, dto: TwoFactorEnableRequest) -> User:
        user = self._current(session, actor)
        if not pyotp.TOTP(dto.secret).verify(dto.token, valid_window=1):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid two-factor code")

        user.two_factor_secret = encrypt_secret(dto.secret)
        user.two_factor_enabled = True
        session.commit()
        session.refresh(user)
        write_audit_log(session, actor.sub, "auth.2fa_enabled", "User", actor.sub, description="Two-factor enabled")
        return user

    def disable_two_factor(self, session: Session, actor: AuthUser, dto: TwoFactorDisableRequest) -> User:
        user = self._current(session, actor)
        if not user.two_factor_enabled:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Two-factor is not enabled")
        if not self._verify_second_factor(user, dto.token):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid two-factor code")

        user.two_factor_secret = None
        user.two_factor_enabled = False
        session.commit()
        session.refresh(user)
        write_audit_log(session, actor.sub, "auth.2fa_disabled", "User", actor.sub, description="Two-factor disabled")
        return user


auth_service = AuthService()
