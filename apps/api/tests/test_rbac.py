from __future__ import annotations

import pytest

from goodcall.core.auth import AuthUser, create_access_token, decode_token
from goodcall.core.rbac import Capability, UserRole, capabilities_for, has_capability


def _actor(role: str) -> AuthUser:
    return AuthUser(sub="5f0c6d2e-8a51-4c9b-9d3e-6a1f2b3c4d5e", username="someone", role=role)


@pytest.mark.parametrize("role", [UserRole.DEVELOPER, UserRole.GERENCIA])
def test_management_roles_hold_every_capability(role: UserRole) -> None:
    assert capabilities_for(role.value) == frozenset(Capability)


def test_coordinador_reads_team_data_but_cannot_manage() -> None:
    coordinator = _actor("coordinador")
    assert has_capability(coordinator, Capability.USERS_READ)
    assert has_capability(coordinator, Capability.SALES_READ_ALL)
    assert not has_capability(coordinator, Capability.USERS_MANAGE)
    assert not has_capability(coordinator, Capability.SALES_DELETE)
    assert not has_capability(coordinator, Capability.GOALS_MANAGE)


@pytest.mark.parametrize("role", ["asesor", "cerrador", "fidelizador"])
def test_field_roles_only_write_sales(role: str) -> None:
    assert capabilities_for(role) == frozenset({Capability.SALES_WRITE})


def test_unknown_role_has_nothing() -> None:
    assert capabilities_for("superadmin") == frozenset()
    assert not has_capability(_actor("superadmin"), Capability.SALES_WRITE)


def test_access_token_round_trip_keeps_identity() -> None:
    token = create_access_token("5f0c6d2e-8a51-4c9b-9d3e-6a1f2b3c4d5e", "ana", "asesor")
    claims = decode_token(token, "access")
    assert claims.username == "ana"
    assert claims.role == "asesor"
    assert str(claims.user_id) == "5f0c6d2e-8a51-4c9b-9d3e-6a1f2b3c4d5e"
