"""Activity service - calls, meetings and tasks on deals and leads."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..errors import BadRequestError, NotFoundError
from ..models.activity import Activity, ActivityType
from ..models.base import utcnow
from ..models.deal import Deal
from ..models.lead import Lead
from ..schemas.events import ActivityAddedPayload
from . import deal_events, member_svc

SORTABLE_FIELDS = {
    "created_at": Activity.created_at,
    "due_date": Activity.due_date,
    "completed_at": Activity.completed_at,
    "type": Activity.type,
    "title": Activity.title,
}


@dataclass
class ActivityFilters:
    type: str | None = None
    deal_id: uuid.UUID | None = None
    lead_id: uuid.UUID | None = None
    assigned_to_id: uuid.UUID | None = None
    created_by_id: uuid.UUID | None = None
    completed: bool | None = None
    due_from: datetime | None = None
    due_to: datetime | None = None
    search: str | None = None
    sort_by: str = "created_at"
    sort_order: str = "desc"
    page: int = 1
    limit: int = 20


def _with_joins(stmt: Select) -> Select:
    return stmt.options(selectinload(Activity.deal), selectinload(Activity.lead))


async def get_activity(
    db: AsyncSession, organization_id: uuid.UUID, activity_id: uuid.UUID
) -> Activity:
    stmt = _with_joins(
        select(Activity).where(
            Activity.id == activity_id, Activity.organization_id == organization_id
        )
    ).execution_options(populate_existing=True)
    activity = (await db.execute(stmt)).scalar_one_or_none()
    if not activity:
        raise NotFoundError("Activity not found")
    return activity


async def create_activity(
    db: AsyncSession,
    organization_id: uuid.UUID,
    type: ActivityType | str,
    title: str,
    description: str | None = None,
    due_date: datetime | None = None,
    deal_id: uuid.UUID | None = None,
    lead_id: uuid.UUID | None = None,
    assigned_to_id: uuid.UUID | None = None,
    actor_id: uuid.UUID | None = None,
) -> Activity:
    """Log an activity.

    On a deal this also bumps ``last_activity_at`` and records ACTIVITY_ADDED
    in the same commit.
    """
    if deal_id is None and lead_id is None:
        raise BadRequestError("deal_id or lead_id is required")

    deal = None
    if deal_id is not None:
        stmt = select(Deal).where(Deal.id == deal_id, Deal.organization_id == organization_id)
        deal = (await db.execute(stmt)).scalar_one_or_none()
        if not deal:
            raise NotFoundError("Deal not found")
    if lead_id is not None:
        stmt = select(Lead.id).where(Lead.id == lead_id, Lead.organization_id == organization_id)
        if not (await db.execute(stmt)).scalar_one_or_none():
            raise NotFoundError("Lead not found")
    if assigned_to_id is not None:
        await member_svc.get_active_member(db, organization_id, assigned_to_id)

    activity = Activity(
        organization_id=organization_id,
        type=ActivityType(type).value,
        title=title,
        description=description,
        due_date=due_date,
        deal_id=deal_id,
        lead_id=lead_id,
        created_by_id=actor_id,
        assigned_to_id=assigned_to_id,
    )
    db.add(activity)
    await db.flush()

    if deal is not None:
        deal.last_activity_at = utcnow()
        deal_events.append_event(
            db,
            deal.id,
            ActivityAddedPayload(
                activity_id=activity.id, activity_type=activity.type, title=activity.title
            ),
            actor_id,
        )
    await db.commit()
    return await get_activity(db, organization_id, activity.id)


async def list_activities(
    db: AsyncSession, organization_id: uuid.UUID, filters: ActivityFilters | None = None
) -> tuple[list[Activity], int]:
    f = filters or ActivityFilters()
    stmt = select(Activity).where(Activity.organization_id == organization_id)
    if f.type:
        stmt = stmt.where(Activity.type == f.type)
    if f.deal_id:
        stmt = stmt.where(Activity.deal_id == f.deal_id)
    if f.lead_id:
        stmt = stmt.where(Activity.lead_id == f.lead_id)
    if f.assigned_to_id:
        stmt = stmt.where(Activity.assigned_to_id == f.assigned_to_id)
    if f.created_by_id:
        stmt = stmt.where(Activity.created_by_id == f.created_by_id)
    if f.completed is not None:
        done = Activity.completed_at.is_not(None)
        stmt = stmt.where(done if f.completed else Activity.completed_at.is_(None))
    if f.due_from:
        stmt = stmt.where(Activity.due_date >= f.due_from)
    if f.due_to:
        stmt = stmt.where(Activity.due_date <= f.due_to)
    if f.search:
        pattern = f"%{f.search.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Activity.title).like(pattern),
                func.lower(Activity.description).like(pattern),
            )
        )

    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()

    column = SORTABLE_FIELDS.get(f.sort_by)
    if column is None:
        order = Activity.created_at.desc()
    else:
        order = column.asc() if f.sort_order == "asc" else column.desc()

    page = max(f.page, 1)
    stmt = _with_joins(stmt).order_by(order, Activity.id).offset((page - 1) * f.limit).limit(f.limit)
    result = await db.execute(stmt)
    return list(result.scalars().all()), total


async def list_pending(
    db: AsyncSession, organization_id: uuid.UUID, member_id: uuid.UUID | None = None
) -> list[Activity]:
    """Open activities due within the next 7 days (overdue ones included)."""
    stmt = select(Activity).where(
        Activity.organization_id == organization_id,
        Activity.completed_at.is_(None),
        Activity.due_date <= utcnow() + timedelta(days=7),
    )
    if member_id is not None:
        stmt = stmt.where(
            or_(Activity.assigned_to_id == member_id, Activity.created_by_id == member_id)
        )
    result = await db.execute(_with_joins(stmt).order_by(Activity.due_date))
    return list(result.scalars().all())


async def list_by_deal(
    db: AsyncSession, organization_id: uuid.UUID, deal_id: uuid.UUID
) -> list[Activity]:
    stmt = select(Deal.id).where(Deal.id == deal_id, Deal.organization_id == organization_id)
    if not (await db.execute(stmt)).scalar_one_or_none():
        raise NotFoundError("Deal not found")

    stmt = _with_joins(
        select(Activity).where(Activity.deal_id == deal_id).order_by(Activity.created_at.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def update_activity(
    db: AsyncSession, organization_id: uuid.UUID, activity_id: uuid.UUID, **kwargs
) -> Activity:
    activity = await get_activity(db, organization_id, activity_id)
    if kwargs.get("assigned_to_id") is not None:
        await member_svc.get_active_member(db, organization_id, kwargs["assigned_to_id"])
    if kwargs.get("type") is not None:
        kwargs["type"] = ActivityType(kwargs["type"]).value

    for key in ("type", "title"):
        if kwargs.get(key) is not None:
            setattr(activity, key, kwargs[key])
    for key in ("description", "due_date", "completed_at", "assigned_to_id"):
        if key in kwargs:
            setattr(activity, key, kwargs[key])
    await db.commit()
    return await get_activity(db, organization_id, activity_id)


async def complete_activity(
    db: AsyncSession, organization_id: uuid.UUID, activity_id: uuid.UUID
) -> Activity:
    activity = await get_activity(db, organization_id, activity_id)
    activity.completed_at = utcnow()
    await db.commit()
    return await get_activity(db, organization_id, activity_id)


async def delete_activity(
    db: AsyncSession, organization_id: uuid.UUID, activity_id: uuid.UUID
) -> None:
    activity = await get_activity(db, organization_id, activity_id)
    await db.delete(activity)
    await db.commit()
