"""Lead and contact schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from .common import MemberSummary


class LeadCreate(BaseModel):
    phone: str
    name: str | None = None
    email: str | None = None
    status: str = "NEW"
    temperature: Literal["COLD", "WARM", "HOT"] | None = None
    source: str | None = None
    notes: str | None = None
    assigned_to_id: uuid.UUID | None = None


class LeadUpdate(BaseModel):
    phone: str | None = None
    name: str | None = None
    email: str | None = None
    status: str | None = None
    temperature: Literal["COLD", "WARM", "HOT"] | None = None
    source: str | None = None
    notes: str | None = None


class LeadAssign(BaseModel):
    assigned_to_id: uuid.UUID | None = None


class LeadListParams(BaseModel):
    search: str | None = None
    status: str | None = None
    temperature: str | None = None
    source: str | None = None
    assigned_to_id: uuid.UUID | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    sort_by: str = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)


class LeadResponse(BaseModel):
    id: uuid.UUID
    name: str | None = None
    phone: str
    email: str | None = None
    status: str
    temperature: str | None = None
    source: str | None = None
    notes: str | None = None
    assigned_to: MemberSummary | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ContactCreate(BaseModel):
    name: str
    email: str | None = None
    phone: str | None = None
    company_name: str | None = None


class ContactResponse(ContactCreate):
    id: uuid.UUID

    model_config = {"from_attributes": True}
