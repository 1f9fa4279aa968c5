"""Activity and automation schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from ..models.activity import ActivityType


class ActivityCreate(BaseModel):
    type: ActivityType
    title: str
    description: str | None = None
    due_date: datetime | None = None
    deal_id: uuid.UUID | None = None
    lead_id: uuid.UUID | None = None
    assigned_to_id: uuid.UUID | None = None


class ActivityUpdate(BaseModel):
    type: ActivityType | None = None
    title: str | None = None
    description: str | None = None
    due_date: datetime | None = None
    completed_at: datetime | None = None
    assigned_to_id: uuid.UUID | None = None


class ActivityListParams(BaseModel):
    type: ActivityType | None = None
    deal_id: uuid.UUID | None = None
    lead_id: uuid.UUID | None = None
    assigned_to_id: uuid.UUID | None = None
    created_by_id: uuid.UUID | None = None
    completed: bool | None = None
    due_from: datetime | None = None
    due_to: datetime | None = None
    search: str | None = None
    sort_by: str = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)


class ActivityResponse(BaseModel):
    id: uuid.UUID
    type: str
    title: str
    description: str | None = None
    due_date: datetime | None = None
    completed_at: datetime | None = None
    deal_id: uuid.UUID | None = None
    lead_id: uuid.UUID | None = None
    created_by_id: uuid.UUID | None = None
    assigned_to_id: uuid.UUID | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class AutomationCreate(BaseModel):
    name: str
    trigger: str
    config: dict | None = None
    is_active: bool = True


class AutomationResponse(AutomationCreate):
    id: uuid.UUID

    model_config = {"from_attributes": True}
