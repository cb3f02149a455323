from __future__ import annotations

from collections.abc import Callable
from enum import Enum

from fastapi import Depends, HTTPException, status

from goodcall.core.auth import AuthUser, get_current_user


class UserRole(str, Enum):
    DEVELOPER = "developer"
    GERENCIA = "gerencia"
    COORDINADOR = "coordinador"
    ASESOR = "asesor"
    CERRADOR = "cerrador"
    FIDELIZADOR = "fidelizador"


class Capability(str, Enum):
    USERS_READ = "users.read"
    USERS_MANAGE = "users.manage"
    SALES_READ_ALL = "sales.read_all"
    SALES_WRITE = "sales.write"
    SALES_DELETE = "sales.delete"
    CATALOG_MANAGE = "catalog.manage"
    GOALS_MANAGE = "goals.manage"
    AUDIT_READ = "audit.read"
    RECORDS_RESTORE = "records.restore"
    METRICS_READ = "system.metrics.read"


_ALL_CAPABILITIES = frozenset(Capability)

ROLE_CAPABILITIES: dict[UserRole, frozenset[Capability]] = {
    UserRole.DEVELOPER: _ALL_CAPABILITIES,
    UserRole.GERENCIA: _ALL_CAPABILITIES,
    UserRole.COORDINADOR: frozenset({Capability.USERS_READ, Capability.SALES_READ_ALL, Capability.SALES_WRITE}),
    UserRole.ASESOR: frozenset({Capability.SALES_WRITE}),
    UserRole.CERRADOR: frozenset({Capability.SALES_WRITE}),
    UserRole.FIDELIZADOR: frozenset({Capability.SALES_WRITE}),
}


def capabilities_for(role: str) -> frozenset[Capability]:
    try:
        return ROLE_CAPABILITIES[UserRole(role)]
    except ValueError:
        return frozenset()


def has_capability(user: AuthUser, capability: Capability) -> bool:
    return capability in capabilities_for(user.role)


def require_capabilities(*capabilities: Capability) -> Callable[[AuthUser], AuthUser]:
    async def checker(user: AuthUser = Depends(get_current_user)) -> AuthUser:
        granted = capabilities_for(user.role)
        missing = [capability.value for capability in capabilities if capability not in granted]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permissions: {', '.join(missing)}",
            )
        return user

    return checker
