"""Organizations, plans and usage."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.organization import Role
from ..schemas.common import Deleted
from ..schemas.organization import (
    ChangePlanRequest,
    MembershipResponse,
    OrganizationCreate,
    OrganizationResponse,
    OrganizationStats,
    OrganizationUpdate,
    PlanResponse,
    UsageRow,
)
from ..security.tokens import TokenClaims
from ..services import limit_svc, organization_svc, plan_svc
from ..tenant.context import TenantContext
from ..tenant.deps import get_token_claims
from ..tenant.guards import ADMINS, guarded, require_roles

router = APIRouter(prefix="/api")


@router.get("/plans", response_model=list[PlanResponse])
async def list_plans(db: AsyncSession = Depends(get_db)):
    return await plan_svc.list_plans(db)


@router.get("/organizations", response_model=list[MembershipResponse])
async def list_my_organizations(
    claims: TokenClaims = Depends(get_token_claims),
    db: AsyncSession = Depends(get_db),
):
    rows = await organization_svc.list_for_user(db, claims.user_id)
    return [
        MembershipResponse(**OrganizationResponse.model_validate(org).model_dump(), role=role)
        for org, role in rows
    ]


@router.post("/organizations", response_model=OrganizationResponse, status_code=201)
async def create_organization(
    data: OrganizationCreate,
    claims: TokenClaims = Depends(get_token_claims),
    db: AsyncSession = Depends(get_db),
):
    return await organization_svc.create_organization(db, claims.user_id, data.name, slug=data.slug)


@router.get("/organizations/current", response_model=OrganizationResponse)
async def get_current(
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await organization_svc.get_organization(db, ctx.organization_id)


@router.patch("/organizations/current", response_model=OrganizationResponse)
async def update_current(
    data: OrganizationUpdate,
    ctx: TenantContext = Depends(guarded(require_roles(*ADMINS))),
    db: AsyncSession = Depends(get_db),
):
    return await organization_svc.update_organization(
        db, ctx.organization_id, **data.model_dump(exclude_unset=True)
    )


@router.delete("/organizations/current", response_model=Deleted)
async def delete_current(
    ctx: TenantContext = Depends(guarded(require_roles(Role.OWNER))),
    db: AsyncSession = Depends(get_db),
):
    await organization_svc.delete_organization(db, ctx.organization_id)
    return Deleted()


@router.put("/organizations/current/plan", response_model=OrganizationResponse)
async def change_plan(
    data: ChangePlanRequest,
    ctx: TenantContext = Depends(guarded(require_roles(Role.OWNER))),
    db: AsyncSession = Depends(get_db),
):
    return await organization_svc.change_plan(db, ctx.organization_id, data.plan)


@router.get("/organizations/current/stats", response_model=OrganizationStats)
async def get_stats(
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await organization_svc.get_stats(db, ctx.organization_id)


@router.get("/organizations/current/usage", response_model=dict[str, UsageRow])
async def get_usage(
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await limit_svc.get_usage(db, ctx.organization_id)
