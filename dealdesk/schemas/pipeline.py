"""Pipeline and stage schemas."""

from __future__ import annotations

import uuid

from pydantic import BaseModel

from ..models.pipeline import PipelineVisibility


class StageCreate(BaseModel):
    name: str
    color: str | None = None
    position: int | None = None
    is_won: bool = False
    is_lost: bool = False


class StageUpdate(BaseModel):
    name: str | None = None
    color: str | None = None
    position: int | None = None
    is_won: bool | None = None
    is_lost: bool | None = None


class StageResponse(BaseModel):
    id: uuid.UUID
    pipeline_id: uuid.UUID
    name: str
    color: str
    position: int
    is_won: bool
    is_lost: bool

    model_config = {"from_attributes": True}


class StageWithCount(StageResponse):
    deal_count: int = 0


class PipelineCreate(BaseModel):
    name: str
    is_default: bool = False
    visibility: PipelineVisibility = PipelineVisibility.PUBLIC
    position: int | None = None
    stages: list[StageCreate] | None = None


class PipelineUpdate(BaseModel):
    name: str | None = None
    is_default: bool | None = None
    visibility: PipelineVisibility | None = None
    position: int | None = None


class PipelineResponse(BaseModel):
    id: uuid.UUID
    name: str
    is_default: bool
    visibility: str
    position: int
    stages: list[StageResponse]

    model_config = {"from_attributes": True}


class PipelineListItem(PipelineResponse):
    stages: list[StageWithCount]


class ReorderRequest(BaseModel):
    stage_ids: list[uuid.UUID]


class PipelineMemberAdd(BaseModel):
    member_id: uuid.UUID


class PipelineSummary(BaseModel):
    id: uuid.UUID
    name: str

    model_config = {"from_attributes": True}
