"""Lead and contact endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.common import Deleted, Page, PageMeta
from ..schemas.lead import (
    ContactCreate,
    ContactResponse,
    LeadAssign,
    LeadCreate,
    LeadListParams,
    LeadResponse,
    LeadUpdate,
)
from ..services import contact_svc, lead_svc
from ..tenant.context import TenantContext
from ..tenant.guards import MANAGERS, guarded, require_roles

router = APIRouter(prefix="/api")


@router.get("/leads", response_model=Page[LeadResponse])
async def list_leads(
    params: LeadListParams = Depends(),
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    leads, total = await lead_svc.list_leads(
        db, ctx.organization_id, lead_svc.LeadFilters(**params.model_dump())
    )
    return Page[LeadResponse](
        data=[LeadResponse.model_validate(lead) for lead in leads],
        meta=PageMeta.build(total, params.page, params.limit, len(leads)),
    )


@router.post("/leads", response_model=LeadResponse, status_code=201)
async def create_lead(
    data: LeadCreate,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await lead_svc.create_lead(db, ctx.organization_id, **data.model_dump())


@router.get("/leads/{lead_id}", response_model=LeadResponse)
async def get_lead(
    lead_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await lead_svc.get_lead(db, ctx.organization_id, lead_id)


@router.patch("/leads/{lead_id}", response_model=LeadResponse)
async def update_lead(
    lead_id: uuid.UUID,
    data: LeadUpdate,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await lead_svc.update_lead(
        db, ctx.organization_id, lead_id, **data.model_dump(exclude_unset=True)
    )


@router.post("/leads/{lead_id}/assign", response_model=LeadResponse)
async def assign_lead(
    lead_id: uuid.UUID,
    data: LeadAssign,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await lead_svc.assign_lead(db, ctx.organization_id, lead_id, data.assigned_to_id)


@router.delete("/leads/{lead_id}", response_model=Deleted)
async def delete_lead(
    lead_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded(require_roles(*MANAGERS))),
    db: AsyncSession = Depends(get_db),
):
    await lead_svc.delete_lead(db, ctx.organization_id, lead_id)
    return Deleted()


# ── Contacts ───────────────────────────────────────────────────────────────

@router.get("/contacts", response_model=list[ContactResponse])
async def list_contacts(
    search: str | None = None,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await contact_svc.list_contacts(db, ctx.organization_id, search=search)


@router.post("/contacts", response_model=ContactResponse, status_code=201)
async def create_contact(
    data: ContactCreate,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await contact_svc.create_contact(db, ctx.organization_id, **data.model_dump())


@router.get("/contacts/{contact_id}", response_model=ContactResponse)
async def get_contact(
    contact_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await contact_svc.get_contact(db, ctx.organization_id, contact_id)


@router.delete("/contacts/{contact_id}", response_model=Deleted)
async def delete_contact(
    contact_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    await contact_svc.delete_contact(db, ctx.organization_id, contact_id)
    return Deleted()
