"""Deal schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

from .common import MemberSummary
from .pipeline import PipelineSummary, StageResponse


class DealCreate(BaseModel):
    lead_id: uuid.UUID
    title: str | None = None
    pipeline_id: uuid.UUID | None = None
    stage_id: uuid.UUID | None = None
    value: float | None = Field(default=None, ge=0)
    probability: int | None = Field(default=None, ge=0, le=100)
    notes: str | None = None
    assigned_to_id: uuid.UUID | None = None
    contact_id: uuid.UUID | None = None
    expected_close_date: date | None = None


class DealUpdate(BaseModel):
    title: str | None = None
    value: float | None = Field(default=None, ge=0)
    probability: int | None = Field(default=None, ge=0, le=100)
    notes: str | None = None
    contact_id: uuid.UUID | None = None
    expected_close_date: date | None = None


class DealMove(BaseModel):
    stage_id: uuid.UUID
    lost_reason_id: uuid.UUID | None = None
    notes: str | None = None


class DealAssign(BaseModel):
    assigned_to_id: uuid.UUID | None = None


class DealListParams(BaseModel):
    search: str | None = None
    lead_id: uuid.UUID | None = None
    pipeline_id: uuid.UUID | None = None
    stage_id: uuid.UUID | None = None
    assigned_to_id: uuid.UUID | None = None
    min_value: float | None = Field(default=None, ge=0)
    max_value: float | None = Field(default=None, ge=0)
    created_from: datetime | None = None
    created_to: datetime | None = None
    closed_from: datetime | None = None
    closed_to: datetime | None = None
    sort_by: str = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)


class LeadSummary(BaseModel):
    id: uuid.UUID
    name: str | None = None
    phone: str
    email: str | None = None

    model_config = {"from_attributes": True}


class LostReasonResponse(BaseModel):
    id: uuid.UUID
    name: str
    position: int

    model_config = {"from_attributes": True}


class LostReasonCreate(BaseModel):
    name: str
    position: int | None = None


class DealResponse(BaseModel):
    id: uuid.UUID
    title: str
    value: float
    probability: int
    notes: str | None = None
    lead_id: uuid.UUID
    contact_id: uuid.UUID | None = None
    pipeline_id: uuid.UUID | None = None
    stage_id: uuid.UUID | None = None
    assigned_to_id: uuid.UUID | None = None
    lost_reason_id: uuid.UUID | None = None
    expected_close_date: date | None = None
    stage_entered_at: datetime | None = None
    closed_at: datetime | None = None
    last_activity_at: datetime | None = None
    created_at: datetime
    lead: LeadSummary
    assigned_to: MemberSummary | None = None
    pipeline: PipelineSummary | None = None
    stage: StageResponse | None = None
    lost_reason: LostReasonResponse | None = None

    model_config = {"from_attributes": True}


class DealEventResponse(BaseModel):
    id: uuid.UUID
    deal_id: uuid.UUID
    type: str
    payload: dict
    member_id: uuid.UUID | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class BoardColumn(StageResponse):
    deals: list[DealResponse]


class BoardResponse(BaseModel):
    pipeline: PipelineSummary
    stages: list[BoardColumn]


class StageBucket(BaseModel):
    stage_id: uuid.UUID | None = None
    count: int
    value: float


class DealStats(BaseModel):
    total: int
    recent_deals: int
    total_value: float
    won_value: float
    avg_deal_value: float
    by_stage: list[StageBucket]


class CountValue(BaseModel):
    count: int
    value: float = 0.0


class DealForecast(BaseModel):
    open_deals: CountValue
    monthly_forecast: CountValue
    quarterly_forecast: CountValue
    won_this_month: CountValue
    lost_this_month: CountValue
    win_rate: int
