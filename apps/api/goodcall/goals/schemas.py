from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from goodcall.users.schemas import UserSummary


GoalType = Literal["global", "coordinador", "asesor"]


class GoalCreate(BaseModel):
    goal_type: GoalType
    target_user_id: UUID | None = None
    year: int = Field(ge=2000, le=2100)
    month: int = Field(ge=1, le=12)
    target_sales: int = Field(ge=0)

    @model_validator(mode="after")
    def check_target(self) -> GoalCreate:
        if self.goal_type == "global" and self.target_user_id is not None:
            raise ValueError("global goals cannot target a user")
        if self.goal_type != "global" and self.target_user_id is None:
            raise ValueError(f"{self.goal_type} goals require target_user_id")
        return self


class GoalUpdate(BaseModel):
    target_sales: int = Field(ge=0)


class GoalRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    goal_type: str
    target_user_id: UUID | None
    year: int
    month: int
    target_sales: int
    current_sales: int
    progress: float
    created_at: datetime
    updated_at: datetime
    target_user: UserSummary | None = None
