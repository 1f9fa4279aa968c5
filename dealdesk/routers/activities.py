"""Activity, lost reason and automation endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.activity import (
    ActivityCreate,
    ActivityListParams,
    ActivityResponse,
    ActivityUpdate,
    AutomationCreate,
    AutomationResponse,
)
from ..schemas.common import Deleted, Page, PageMeta
from ..schemas.deal import LostReasonCreate, LostReasonResponse
from ..services import activity_svc, automation_svc, lost_reason_svc
from ..services.limit_svc import ResourceKind
from ..tenant.context import TenantContext
from ..tenant.guards import ADMINS, guarded, require_feature, require_limit, require_roles

router = APIRouter(prefix="/api")


@router.get("/activities", response_model=Page[ActivityResponse])
async def list_activities(
    params: ActivityListParams = Depends(),
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    filters = activity_svc.ActivityFilters(**params.model_dump())
    items, total = await activity_svc.list_activities(db, ctx.organization_id, filters)
    return Page[ActivityResponse](
        data=[ActivityResponse.model_validate(a) for a in items],
        meta=PageMeta.build(total, params.page, params.limit, len(items)),
    )


@router.post("/activities", response_model=ActivityResponse, status_code=201)
async def create_activity(
    data: ActivityCreate,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await activity_svc.create_activity(
        db, ctx.organization_id, actor_id=ctx.member_id, **data.model_dump()
    )


@router.get("/activities/pending", response_model=list[ActivityResponse])
async def pending_activities(
    mine: bool = False,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await activity_svc.list_pending(
        db, ctx.organization_id, member_id=ctx.member_id if mine else None
    )


@router.get("/activities/deal/{deal_id}", response_model=list[ActivityResponse])
async def activities_by_deal(
    deal_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await activity_svc.list_by_deal(db, ctx.organization_id, deal_id)


@router.get("/activities/{activity_id}", response_model=ActivityResponse)
async def get_activity(
    activity_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await activity_svc.get_activity(db, ctx.organization_id, activity_id)


@router.patch("/activities/{activity_id}", response_model=ActivityResponse)
async def update_activity(
    activity_id: uuid.UUID,
    data: ActivityUpdate,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await activity_svc.update_activity(
        db, ctx.organization_id, activity_id, **data.model_dump(exclude_unset=True)
    )


@router.post("/activities/{activity_id}/complete", response_model=ActivityResponse)
async def complete_activity(
    activity_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await activity_svc.complete_activity(db, ctx.organization_id, activity_id)


@router.delete("/activities/{activity_id}", response_model=Deleted)
async def delete_activity(
    activity_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    await activity_svc.delete_activity(db, ctx.organization_id, activity_id)
    return Deleted()


# ── Lost reasons ───────────────────────────────────────────────────────────

@router.get("/lost-reasons", response_model=list[LostReasonResponse])
async def list_lost_reasons(
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await lost_reason_svc.list_lost_reasons(db, ctx.organization_id)


@router.post("/lost-reasons", response_model=LostReasonResponse, status_code=201)
async def create_lost_reason(
    data: LostReasonCreate,
    ctx: TenantContext = Depends(guarded(require_roles(*ADMINS))),
    db: AsyncSession = Depends(get_db),
):
    return await lost_reason_svc.create_lost_reason(
        db, ctx.organization_id, data.name, position=data.position
    )


@router.delete("/lost-reasons/{reason_id}", response_model=Deleted)
async def delete_lost_reason(
    reason_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded(require_roles(*ADMINS))),
    db: AsyncSession = Depends(get_db),
):
    await lost_reason_svc.delete_lost_reason(db, ctx.organization_id, reason_id)
    return Deleted()


# ── Automations ────────────────────────────────────────────────────────────

@router.get("/automations", response_model=list[AutomationResponse])
async def list_automations(
    ctx: TenantContext = Depends(guarded(require_feature("automation"))),
    db: AsyncSession = Depends(get_db),
):
    return await automation_svc.list_automations(db, ctx.organization_id)


@router.post("/automations", response_model=AutomationResponse, status_code=201)
async def create_automation(
    data: AutomationCreate,
    ctx: TenantContext = Depends(
        guarded(
            require_roles(*ADMINS),
            require_feature("automation"),
            require_limit(ResourceKind.AUTOMATIONS),
        )
    ),
    db: AsyncSession = Depends(get_db),
):
    return await automation_svc.create_automation(db, ctx.organization_id, **data.model_dump())


@router.delete("/automations/{automation_id}", response_model=Deleted)
async def delete_automation(
    automation_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded(require_roles(*ADMINS), require_feature("automation"))),
    db: AsyncSession = Depends(get_db),
):
    await automation_svc.delete_automation(db, ctx.organization_id, automation_id)
    return Deleted()
