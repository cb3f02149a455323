from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends, HTTPException, status
from jose import JWTError, jwt
from sqlalchemy.orm import Session
from starlette.requests import Request

from goodcall.core.config import get_settings
from goodcall.core.database import get_db
from goodcall.core.soft_delete import find_active


ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


@dataclass
class AuthUser:
    sub: str
    username: str
    role: str

    @property
    def user_id(self) -> uuid.UUID:
        return uuid.UUID(self.sub)


def _unauthorized(message: str = "Invalid or missing token") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _encode(subject: str, username: str, role: str, token_type: str, expires_delta: timedelta) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "sub": subject,
        "username": username,
        "role": role,
        "type": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(subject: str, username: str, role: str) -> str:
    minutes = get_settings().access_token_expires_minutes
    return _encode(subject, username, role, ACCESS_TOKEN_TYPE, timedelta(minutes=minutes))


def create_refresh_token(subject: str, username: str, role: str) -> str:
    days = get_settings().refresh_token_expires_days
    return _encode(subject, username, role, REFRESH_TOKEN_TYPE, timedelta(days=days))


def decode_token(token: str, expected_type: str) -> AuthUser:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise _unauthorized() from exc

    if payload.get("type") != expected_type:
        raise _unauthorized("Wrong token type")

    subject = payload.get("sub")
    username = payload.get("username")
    role = payload.get("role")
    if not subject or not username or not role:
        raise _unauthorized()
    try:
        uuid.UUID(str(subject))
    except ValueError as exc:
        raise _unauthorized() from exc
    return AuthUser(sub=str(subject), username=str(username), role=str(role))


def get_current_user(request: Request, session: Session = Depends(get_db)) -> AuthUser:
    auth_header = request.headers.get("authorization", "")
    token = auth_header[len("Bearer ") :] if auth_header.startswith("Bearer ") else ""
    if not token:
        raise _unauthorized()

    claims = decode_token(token, ACCESS_TOKEN_TYPE)

    # users package imports this module through its routers
    from goodcall.users.models import User

    # the token only names the account; a deleted user or a changed role is read from the row
    account = find_active(session, User, claims.user_id)
    if account is None:
        raise _unauthorized("User no longer exists")
    user = AuthUser(sub=str(account.id), username=account.username, role=account.role)

    context = getattr(request.state, "context", None)
    if context is not None:
        context.user_id = user.sub
    return user
