"""Deal endpoints - lifecycle, line items and projections."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.common import Deleted, Page, PageMeta
from ..schemas.deal import (
    BoardColumn,
    BoardResponse,
    DealAssign,
    DealCreate,
    DealEventResponse,
    DealForecast,
    DealListParams,
    DealMove,
    DealResponse,
    DealStats,
    DealUpdate,
)
from ..schemas.pipeline import PipelineSummary, StageResponse
from ..schemas.product import DealProductAdd, DealProductResponse, DealProductUpdate
from ..services import deal_svc, product_svc
from ..tenant.context import TenantContext
from ..tenant.guards import MANAGERS, guarded, require_roles

router = APIRouter(prefix="/api")


@router.get("/deals", response_model=Page[DealResponse])
async def list_deals(
    params: DealListParams = Depends(),
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    filters = deal_svc.DealFilters(**params.model_dump())
    deals, total = await deal_svc.list_deals(db, ctx.organization_id, filters)
    return Page[DealResponse](
        data=[DealResponse.model_validate(d) for d in deals],
        meta=PageMeta.build(total, params.page, params.limit, len(deals)),
    )


@router.post("/deals", response_model=DealResponse, status_code=201)
async def create_deal(
    data: DealCreate,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await deal_svc.create_deal(
        db, ctx.organization_id, actor_id=ctx.member_id, **data.model_dump()
    )


@router.get("/deals/stats", response_model=DealStats)
async def deal_stats(
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await deal_svc.get_stats(db, ctx.organization_id)


@router.get("/deals/forecast", response_model=DealForecast)
async def deal_forecast(
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await deal_svc.get_forecast(db, ctx.organization_id)


@router.get("/deals/lead/{lead_id}", response_model=list[DealResponse])
async def deals_by_lead(
    lead_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await deal_svc.list_by_lead(db, ctx.organization_id, lead_id)


@router.get("/deals/board/{pipeline_id}", response_model=BoardResponse)
async def deal_board(
    pipeline_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    pipeline, columns = await deal_svc.get_board(db, ctx.organization_id, pipeline_id)
    return BoardResponse(
        pipeline=PipelineSummary.model_validate(pipeline),
        stages=[
            BoardColumn(
                **StageResponse.model_validate(stage).model_dump(),
                deals=[DealResponse.model_validate(d) for d in deals],
            )
            for stage, deals in columns
        ],
    )


@router.get("/deals/{deal_id}", response_model=DealResponse)
async def get_deal(
    deal_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await deal_svc.get_deal(db, ctx.organization_id, deal_id)


@router.patch("/deals/{deal_id}", response_model=DealResponse)
async def update_deal(
    deal_id: uuid.UUID,
    data: DealUpdate,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await deal_svc.update_deal(
        db, ctx.organization_id, deal_id, **data.model_dump(exclude_unset=True)
    )


@router.delete("/deals/{deal_id}", response_model=Deleted)
async def delete_deal(
    deal_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    await deal_svc.delete_deal(db, ctx.organization_id, deal_id)
    return Deleted()


@router.post("/deals/{deal_id}/move", response_model=DealResponse)
async def move_deal(
    deal_id: uuid.UUID,
    data: DealMove,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await deal_svc.move_deal(
        db,
        ctx.organization_id,
        deal_id,
        data.stage_id,
        lost_reason_id=data.lost_reason_id,
        notes=data.notes,
        actor_id=ctx.member_id,
    )


@router.post("/deals/{deal_id}/assign", response_model=DealResponse)
async def assign_deal(
    deal_id: uuid.UUID,
    data: DealAssign,
    ctx: TenantContext = Depends(guarded(require_roles(*MANAGERS))),
    db: AsyncSession = Depends(get_db),
):
    return await deal_svc.assign_deal(
        db, ctx.organization_id, deal_id, data.assigned_to_id, actor_id=ctx.member_id
    )


@router.get("/deals/{deal_id}/history", response_model=list[DealEventResponse])
async def deal_history(
    deal_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await deal_svc.get_history(db, ctx.organization_id, deal_id)


# ── Line items ─────────────────────────────────────────────────────────────

@router.get("/deals/{deal_id}/products", response_model=list[DealProductResponse])
async def list_deal_products(
    deal_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await product_svc.list_deal_products(db, ctx.organization_id, deal_id)


@router.post("/deals/{deal_id}/products", response_model=DealProductResponse, status_code=201)
async def add_deal_product(
    deal_id: uuid.UUID,
    data: DealProductAdd,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await product_svc.add_deal_product(
        db, ctx.organization_id, deal_id, actor_id=ctx.member_id, **data.model_dump()
    )


@router.patch("/deals/{deal_id}/products/{line_id}", response_model=DealProductResponse)
async def update_deal_product(
    deal_id: uuid.UUID,
    line_id: uuid.UUID,
    data: DealProductUpdate,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await product_svc.update_deal_product(
        db, ctx.organization_id, deal_id, line_id, **data.model_dump()
    )


@router.delete("/deals/{deal_id}/products/{line_id}")
async def remove_deal_product(
    deal_id: uuid.UUID,
    line_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    value = await product_svc.remove_deal_product(db, ctx.organization_id, deal_id, line_id)
    return {"deleted": True, "deal_value": value}
