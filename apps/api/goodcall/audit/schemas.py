from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class AuditLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str | None
    action: str
    entity_type: str
    entity_id: str | None
    description: str | None
    old_values: dict[str, Any] | None
    new_values: dict[str, Any] | None
    ip_address: str | None
    user_agent: str | None
    correlation_id: str | None
    created_at: datetime


class AuditLogPage(BaseModel):
    data: list[AuditLogRead]
    total: int
    page: int
    limit: int
