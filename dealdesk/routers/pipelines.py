"""Pipeline and stage endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.common import Deleted
from ..schemas.pipeline import (
    PipelineCreate,
    PipelineListItem,
    PipelineMemberAdd,
    PipelineResponse,
    PipelineUpdate,
    ReorderRequest,
    StageCreate,
    StageResponse,
    StageUpdate,
    StageWithCount,
)
from ..services import pipeline_svc
from ..services.limit_svc import ResourceKind
from ..tenant.context import TenantContext
from ..tenant.guards import ADMINS, MANAGERS, guarded, require_limit, require_roles

router = APIRouter(prefix="/api")


@router.get("/pipelines", response_model=list[PipelineListItem])
async def list_pipelines(
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    pipelines = await pipeline_svc.list_pipelines(db, ctx)
    counts = await pipeline_svc.count_deals_by_stage(db, ctx.organization_id)
    return [
        PipelineListItem(
            **PipelineResponse.model_validate(p).model_dump(exclude={"stages"}),
            stages=[
                StageWithCount(
                    **StageResponse.model_validate(s).model_dump(),
                    deal_count=counts.get(s.id, 0),
                )
                for s in p.stages
            ],
        )
        for p in pipelines
    ]


@router.post("/pipelines", response_model=PipelineResponse, status_code=201)
async def create_pipeline(
    data: PipelineCreate,
    ctx: TenantContext = Depends(
        guarded(require_roles(*MANAGERS), require_limit(ResourceKind.PIPELINES))
    ),
    db: AsyncSession = Depends(get_db),
):
    stages = [s.model_dump() for s in data.stages] if data.stages else None
    return await pipeline_svc.create_pipeline(
        db,
        ctx.organization_id,
        data.name,
        is_default=data.is_default,
        visibility=data.visibility,
        position=data.position,
        stages=stages,
    )


@router.get("/pipelines/default", response_model=PipelineResponse)
async def get_default_pipeline(
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await pipeline_svc.get_default_pipeline(db, ctx.organization_id)


@router.get("/pipelines/{pipeline_id}", response_model=PipelineResponse)
async def get_pipeline(
    pipeline_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await pipeline_svc.get_pipeline(db, ctx.organization_id, pipeline_id)


@router.patch("/pipelines/{pipeline_id}", response_model=PipelineResponse)
async def update_pipeline(
    pipeline_id: uuid.UUID,
    data: PipelineUpdate,
    ctx: TenantContext = Depends(guarded(require_roles(*MANAGERS))),
    db: AsyncSession = Depends(get_db),
):
    return await pipeline_svc.update_pipeline(
        db, ctx.organization_id, pipeline_id, **data.model_dump(exclude_unset=True)
    )


@router.delete("/pipelines/{pipeline_id}", response_model=Deleted)
async def delete_pipeline(
    pipeline_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded(require_roles(*ADMINS))),
    db: AsyncSession = Depends(get_db),
):
    await pipeline_svc.delete_pipeline(db, ctx.organization_id, pipeline_id)
    return Deleted()


@router.post("/pipelines/{pipeline_id}/stages", response_model=StageResponse, status_code=201)
async def create_stage(
    pipeline_id: uuid.UUID,
    data: StageCreate,
    ctx: TenantContext = Depends(guarded(require_roles(*MANAGERS))),
    db: AsyncSession = Depends(get_db),
):
    return await pipeline_svc.create_stage(db, ctx.organization_id, pipeline_id, **data.model_dump())


@router.put("/pipelines/{pipeline_id}/stages/reorder", response_model=list[StageResponse])
async def reorder_stages(
    pipeline_id: uuid.UUID,
    data: ReorderRequest,
    ctx: TenantContext = Depends(guarded(require_roles(*MANAGERS))),
    db: AsyncSession = Depends(get_db),
):
    return await pipeline_svc.reorder_stages(db, ctx.organization_id, pipeline_id, data.stage_ids)


@router.patch("/pipelines/{pipeline_id}/stages/{stage_id}", response_model=StageResponse)
async def update_stage(
    pipeline_id: uuid.UUID,
    stage_id: uuid.UUID,
    data: StageUpdate,
    ctx: TenantContext = Depends(guarded(require_roles(*MANAGERS))),
    db: AsyncSession = Depends(get_db),
):
    return await pipeline_svc.update_stage(
        db, ctx.organization_id, pipeline_id, stage_id, **data.model_dump(exclude_unset=True)
    )


@router.delete("/pipelines/{pipeline_id}/stages/{stage_id}", response_model=Deleted)
async def delete_stage(
    pipeline_id: uuid.UUID,
    stage_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded(require_roles(*ADMINS))),
    db: AsyncSession = Depends(get_db),
):
    await pipeline_svc.delete_stage(db, ctx.organization_id, pipeline_id, stage_id)
    return Deleted()


@router.post("/pipelines/{pipeline_id}/members", status_code=201)
async def add_pipeline_member(
    pipeline_id: uuid.UUID,
    data: PipelineMemberAdd,
    ctx: TenantContext = Depends(guarded(require_roles(*ADMINS))),
    db: AsyncSession = Depends(get_db),
):
    grant = await pipeline_svc.add_pipeline_member(
        db, ctx.organization_id, pipeline_id, data.member_id
    )
    return {"pipeline_id": str(grant.pipeline_id), "member_id": str(grant.member_id)}


@router.delete("/pipelines/{pipeline_id}/members/{member_id}", response_model=Deleted)
async def remove_pipeline_member(
    pipeline_id: uuid.UUID,
    member_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded(require_roles(*ADMINS))),
    db: AsyncSession = Depends(get_db),
):
    await pipeline_svc.remove_pipeline_member(db, ctx.organization_id, pipeline_id, member_id)
    return Deleted()
