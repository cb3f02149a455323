from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


NotificationType = Literal["info", "success", "warning", "error", "sale", "goal", "system"]


class NotificationCreate(BaseModel):
    user_id: UUID
    type: NotificationType = "info"
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1)
    related_entity_type: str | None = Field(default=None, max_length=64)
    related_entity_id: str | None = Field(default=None, max_length=64)
    action_url: str | None = Field(default=None, max_length=512)


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    type: str
    title: str
    message: str
    is_read: bool
    read_at: datetime | None
    related_entity_type: str | None
    related_entity_id: str | None
    action_url: str | None
    created_at: datetime


class UnreadCount(BaseModel):
    count: int


class MarkAllReadResult(BaseModel):
    updated: int
