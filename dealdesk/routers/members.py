"""Organization members and invites."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.organization import Role
from ..schemas.common import Deleted
from ..schemas.organization import (
    InviteCreate,
    InviteIssued,
    InviteResponse,
    MemberResponse,
    MemberRoleUpdate,
)
from ..services import member_svc
from ..tenant.context import TenantContext
from ..tenant.guards import ADMINS, guarded, require_roles

router = APIRouter(prefix="/api")


@router.get("/members", response_model=list[MemberResponse])
async def list_members(
    role: Role | None = None,
    search: str | None = None,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await member_svc.list_members(
        db, ctx.organization_id, role=role.value if role else None, search=search
    )


@router.get("/members/{member_id}", response_model=MemberResponse)
async def get_member(
    member_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await member_svc.get_member(db, ctx.organization_id, member_id)


@router.patch("/members/{member_id}/role", response_model=MemberResponse)
async def update_member_role(
    member_id: uuid.UUID,
    data: MemberRoleUpdate,
    ctx: TenantContext = Depends(guarded(require_roles(*ADMINS))),
    db: AsyncSession = Depends(get_db),
):
    return await member_svc.update_member_role(db, ctx, member_id, data.role)


@router.delete("/members/{member_id}", response_model=Deleted)
async def remove_member(
    member_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded(require_roles(*ADMINS))),
    db: AsyncSession = Depends(get_db),
):
    await member_svc.remove_member(db, ctx, member_id)
    return Deleted()


@router.post("/invites", response_model=InviteIssued, status_code=201)
async def invite_user(
    data: InviteCreate,
    ctx: TenantContext = Depends(guarded(require_roles(*ADMINS))),
    db: AsyncSession = Depends(get_db),
):
    invite, token = await member_svc.invite_user(db, ctx, data.email, data.role)
    return InviteIssued(**InviteResponse.model_validate(invite).model_dump(), token=token)


@router.get("/invites", response_model=list[InviteResponse])
async def list_invites(
    ctx: TenantContext = Depends(guarded(require_roles(*ADMINS))),
    db: AsyncSession = Depends(get_db),
):
    return await member_svc.list_invites(db, ctx.organization_id)


@router.delete("/invites/{invite_id}", response_model=Deleted)
async def cancel_invite(
    invite_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded(require_roles(*ADMINS))),
    db: AsyncSession = Depends(get_db),
):
    await member_svc.cancel_invite(db, ctx.organization_id, invite_id)
    return Deleted()


@router.post("/invites/{invite_id}/resend", response_model=InviteIssued)
async def resend_invite(
    invite_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded(require_roles(*ADMINS))),
    db: AsyncSession = Depends(get_db),
):
    invite, token = await member_svc.resend_invite(db, ctx.organization_id, invite_id)
    return InviteIssued(**InviteResponse.model_validate(invite).model_dump(), token=token)
