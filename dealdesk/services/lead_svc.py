"""Lead service."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..errors import ConflictError, NotFoundError
from ..models.lead import Lead
from ..models.organization import OrganizationMember
from . import member_svc

SORTABLE_FIELDS = {
    "created_at": Lead.created_at,
    "updated_at": Lead.updated_at,
    "name": Lead.name,
    "temperature": Lead.temperature,
    "status": Lead.status,
}


@dataclass
class LeadFilters:
    search: str | None = None
    status: str | None = None
    temperature: str | None = None
    source: str | None = None
    assigned_to_id: uuid.UUID | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    sort_by: str = "created_at"
    sort_order: str = "desc"
    page: int = 1
    limit: int = 20


async def _check_duplicates(
    db: AsyncSession,
    organization_id: uuid.UUID,
    phone: str | None,
    email: str | None,
    exclude_id: uuid.UUID | None = None,
) -> None:
    for column, value, label in ((Lead.phone, phone, "phone"), (Lead.email, email, "email")):
        if not value:
            continue
        stmt = select(Lead.id).where(Lead.organization_id == organization_id, column == value)
        if exclude_id is not None:
            stmt = stmt.where(Lead.id != exclude_id)
        if (await db.execute(stmt)).scalar_one_or_none():
            raise ConflictError(f"A lead with this {label} already exists")


async def get_lead(db: AsyncSession, organization_id: uuid.UUID, lead_id: uuid.UUID) -> Lead:
    stmt = (
        select(Lead)
        .where(Lead.id == lead_id, Lead.organization_id == organization_id)
        .options(selectinload(Lead.assigned_to).selectinload(OrganizationMember.user))
        .execution_options(populate_existing=True)
    )
    lead = (await db.execute(stmt)).scalar_one_or_none()
    if not lead:
        raise NotFoundError("Lead not found")
    return lead


async def create_lead(
    db: AsyncSession, organization_id: uuid.UUID, phone: str, **kwargs
) -> Lead:
    await _check_duplicates(db, organization_id, phone, kwargs.get("email"))
    if kwargs.get("assigned_to_id") is not None:
        await member_svc.get_active_member(db, organization_id, kwargs["assigned_to_id"])

    lead = Lead(organization_id=organization_id, phone=phone, **kwargs)
    db.add(lead)
    await db.commit()
    return await get_lead(db, organization_id, lead.id)


async def list_leads(
    db: AsyncSession, organization_id: uuid.UUID, filters: LeadFilters | None = None
) -> tuple[list[Lead], int]:
    f = filters or LeadFilters()
    stmt = select(Lead).where(Lead.organization_id == organization_id)
    if f.search:
        pattern = f"%{f.search.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Lead.name).like(pattern),
                func.lower(Lead.phone).like(pattern),
                func.lower(Lead.email).like(pattern),
            )
        )
    if f.status:
        stmt = stmt.where(Lead.status == f.status)
    if f.temperature:
        stmt = stmt.where(Lead.temperature == f.temperature)
    if f.source:
        stmt = stmt.where(Lead.source == f.source)
    if f.assigned_to_id:
        stmt = stmt.where(Lead.assigned_to_id == f.assigned_to_id)
    if f.created_from:
        stmt = stmt.where(Lead.created_at >= f.created_from)
    if f.created_to:
        stmt = stmt.where(Lead.created_at <= f.created_to)

    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()

    column = SORTABLE_FIELDS.get(f.sort_by)
    if column is None:
        order = Lead.created_at.desc()
    else:
        order = column.asc() if f.sort_order == "asc" else column.desc()

    page = max(f.page, 1)
    stmt = (
        stmt.options(selectinload(Lead.assigned_to).selectinload(OrganizationMember.user))
        .order_by(order, Lead.id)
        .offset((page - 1) * f.limit)
        .limit(f.limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all()), total


async def update_lead(
    db: AsyncSession, organization_id: uuid.UUID, lead_id: uuid.UUID, **kwargs
) -> Lead:
    lead = await get_lead(db, organization_id, lead_id)
    await _check_duplicates(
        db,
        organization_id,
        kwargs.get("phone") if kwargs.get("phone") != lead.phone else None,
        kwargs.get("email") if kwargs.get("email") != lead.email else None,
        exclude_id=lead.id,
    )
    if kwargs.get("assigned_to_id") is not None:
        await member_svc.get_active_member(db, organization_id, kwargs["assigned_to_id"])

    for key, value in kwargs.items():
        if value is None and key in ("phone", "status"):
            continue
        setattr(lead, key, value)
    await db.commit()
    return await get_lead(db, organization_id, lead_id)


async def assign_lead(
    db: AsyncSession, organization_id: uuid.UUID, lead_id: uuid.UUID, assigned_to_id: uuid.UUID | None
) -> Lead:
    lead = await get_lead(db, organization_id, lead_id)
    if assigned_to_id is not None:
        await member_svc.get_active_member(db, organization_id, assigned_to_id)
    lead.assigned_to_id = assigned_to_id
    await db.commit()
    return await get_lead(db, organization_id, lead_id)


async def delete_lead(db: AsyncSession, organization_id: uuid.UUID, lead_id: uuid.UUID) -> None:
    """Delete a lead together with its deals."""
    lead = await get_lead(db, organization_id, lead_id)
    await db.delete(lead)
    await db.commit()
