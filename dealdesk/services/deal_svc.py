"""Deal engine - creation, stage moves, assignment and pipeline projections."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..errors import BadRequestError, NotFoundError
from ..models.base import utcnow
from ..models.contact import Contact
from ..models.deal import Deal, DealEvent, LostReason
from ..models.lead import Lead
from ..models.organization import OrganizationMember
from ..models.pipeline import Pipeline, Stage
from ..models.product import DealProduct
from ..schemas.events import (
    AssignedPayload,
    CreatedPayload,
    LostPayload,
    StageChangedPayload,
    WonPayload,
)
from . import deal_events, limit_svc, member_svc, pipeline_svc

log = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "created_at": Deal.created_at,
    "updated_at": Deal.updated_at,
    "value": Deal.value,
    "closed_at": Deal.closed_at,
}


@dataclass
class DealFilters:
    search: str | None = None
    lead_id: uuid.UUID | None = None
    pipeline_id: uuid.UUID | None = None
    stage_id: uuid.UUID | None = None
    assigned_to_id: uuid.UUID | None = None
    min_value: float | None = None
    max_value: float | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    closed_from: datetime | None = None
    closed_to: datetime | None = None
    sort_by: str = "created_at"
    sort_order: str = "desc"
    page: int = 1
    limit: int = 20


def _with_display_joins(stmt: Select) -> Select:
    return stmt.options(
        selectinload(Deal.lead),
        selectinload(Deal.assigned_to).selectinload(OrganizationMember.user),
        selectinload(Deal.pipeline).selectinload(Pipeline.stages),
        selectinload(Deal.stage),
        selectinload(Deal.lost_reason),
    )


async def get_deal(db: AsyncSession, organization_id: uuid.UUID, deal_id: uuid.UUID) -> Deal:
    stmt = _with_display_joins(
        select(Deal).where(Deal.id == deal_id, Deal.organization_id == organization_id)
    ).execution_options(populate_existing=True)
    deal = (await db.execute(stmt)).scalar_one_or_none()
    if not deal:
        raise NotFoundError("Deal not found")
    return deal


async def _get_lead(db: AsyncSession, organization_id: uuid.UUID, lead_id: uuid.UUID) -> Lead:
    stmt = select(Lead).where(Lead.id == lead_id, Lead.organization_id == organization_id)
    lead = (await db.execute(stmt)).scalar_one_or_none()
    if not lead:
        raise NotFoundError("Lead not found")
    return lead


async def _check_contact(db: AsyncSession, organization_id: uuid.UUID, contact_id: uuid.UUID) -> None:
    stmt = select(Contact.id).where(
        Contact.id == contact_id, Contact.organization_id == organization_id
    )
    if not (await db.execute(stmt)).scalar_one_or_none():
        raise NotFoundError("Contact not found")


async def _check_lost_reason(
    db: AsyncSession, organization_id: uuid.UUID, lost_reason_id: uuid.UUID
) -> None:
    stmt = select(LostReason.id).where(
        LostReason.id == lost_reason_id, LostReason.organization_id == organization_id
    )
    if not (await db.execute(stmt)).scalar_one_or_none():
        raise BadRequestError("Lost reason does not belong to this organization")


async def _has_line_items(db: AsyncSession, deal_id: uuid.UUID) -> bool:
    stmt = select(DealProduct.id).where(DealProduct.deal_id == deal_id).limit(1)
    return (await db.execute(stmt)).scalar_one_or_none() is not None


async def _find_default_pipeline(db: AsyncSession, organization_id: uuid.UUID) -> Pipeline | None:
    stmt = (
        select(Pipeline)
        .where(Pipeline.organization_id == organization_id, Pipeline.is_default.is_(True))
        .options(selectinload(Pipeline.stages))
    )
    return (await db.execute(stmt)).scalars().first()


async def _resolve_placement(
    db: AsyncSession,
    organization_id: uuid.UUID,
    pipeline_id: uuid.UUID | None,
    stage_id: uuid.UUID | None,
) -> tuple[uuid.UUID | None, uuid.UUID | None]:
    # A bare stage carries its own pipeline; the default only applies with neither.
    if pipeline_id is not None:
        pipeline = await pipeline_svc.get_pipeline(db, organization_id, pipeline_id)
    elif stage_id is None:
        pipeline = await _find_default_pipeline(db, organization_id)
    else:
        pipeline = None

    if stage_id is None:
        if pipeline is not None and pipeline.stages:
            stage_id = pipeline.stages[0].id
        return (pipeline.id if pipeline else None), stage_id

    stage = await pipeline_svc.get_stage(db, organization_id, stage_id)
    if pipeline is not None and stage.pipeline_id != pipeline.id:
        raise BadRequestError("Stage does not belong to the pipeline")
    return stage.pipeline_id, stage.id


async def create_deal(
    db: AsyncSession,
    organization_id: uuid.UUID,
    lead_id: uuid.UUID,
    title: str | None = None,
    pipeline_id: uuid.UUID | None = None,
    stage_id: uuid.UUID | None = None,
    value: float | None = None,
    probability: int | None = None,
    notes: str | None = None,
    assigned_to_id: uuid.UUID | None = None,
    contact_id: uuid.UUID | None = None,
    expected_close_date: date | None = None,
    actor_id: uuid.UUID | None = None,
) -> Deal:
    """Open a deal against a lead.

    Without a pipeline the organization's default pipeline is used, and its
    first stage when no stage is given. A CREATED event is recorded only when
    ``actor_id`` identifies the creating member.
    """
    await limit_svc.check_limit(db, organization_id, limit_svc.ResourceKind.DEALS)

    lead = await _get_lead(db, organization_id, lead_id)
    pipeline_id, stage_id = await _resolve_placement(db, organization_id, pipeline_id, stage_id)
    if assigned_to_id is not None:
        await member_svc.get_active_member(db, organization_id, assigned_to_id)
    if contact_id is not None:
        await _check_contact(db, organization_id, contact_id)

    deal = Deal(
        organization_id=organization_id,
        lead_id=lead.id,
        title=title or f"Deal - {lead.name or lead.phone}",
        pipeline_id=pipeline_id,
        stage_id=stage_id,
        value=value if value is not None else 0.0,
        probability=probability if probability is not None else 50,
        notes=notes,
        assigned_to_id=assigned_to_id,
        contact_id=contact_id,
        expected_close_date=expected_close_date,
        stage_entered_at=utcnow(),
    )
    db.add(deal)
    await db.flush()

    if actor_id is not None:
        deal_events.append_event(db, deal.id, CreatedPayload(title=deal.title), actor_id)
    await db.commit()

    return await get_deal(db, organization_id, deal.id)


def _apply_filters(stmt: Select, filters: DealFilters) -> Select:
    if filters.search:
        pattern = f"%{filters.search.lower()}%"
        stmt = stmt.join(Lead, Lead.id == Deal.lead_id).where(
            or_(
                func.lower(Deal.title).like(pattern),
                func.lower(Lead.name).like(pattern),
                func.lower(Lead.phone).like(pattern),
            )
        )
    if filters.lead_id:
        stmt = stmt.where(Deal.lead_id == filters.lead_id)
    if filters.pipeline_id:
        stmt = stmt.where(Deal.pipeline_id == filters.pipeline_id)
    if filters.stage_id:
        stmt = stmt.where(Deal.stage_id == filters.stage_id)
    if filters.assigned_to_id:
        stmt = stmt.where(Deal.assigned_to_id == filters.assigned_to_id)
    if filters.min_value is not None:
        stmt = stmt.where(Deal.value >= filters.min_value)
    if filters.max_value is not None:
        stmt = stmt.where(Deal.value <= filters.max_value)
    if filters.created_from:
        stmt = stmt.where(Deal.created_at >= filters.created_from)
    if filters.created_to:
        stmt = stmt.where(Deal.created_at <= filters.created_to)
    if filters.closed_from:
        stmt = stmt.where(Deal.closed_at >= filters.closed_from)
    if filters.closed_to:
        stmt = stmt.where(Deal.closed_at <= filters.closed_to)
    return stmt


async def list_deals(
    db: AsyncSession, organization_id: uuid.UUID, filters: DealFilters | None = None
) -> tuple[list[Deal], int]:
    filters = filters or DealFilters()
    base = _apply_filters(select(Deal).where(Deal.organization_id == organization_id), filters)

    total = (
        await db.execute(select(func.count()).select_from(base.subquery()))
    ).scalar_one()

    column = SORTABLE_FIELDS.get(filters.sort_by)
    if column is None:
        order = Deal.created_at.desc()
    else:
        order = column.asc() if filters.sort_order == "asc" else column.desc()

    page = max(filters.page, 1)
    stmt = (
        _with_display_joins(base)
        .order_by(order, Deal.id)
        .offset((page - 1) * filters.limit)
        .limit(filters.limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all()), total


async def update_deal(
    db: AsyncSession, organization_id: uuid.UUID, deal_id: uuid.UUID, **kwargs
) -> Deal:
    """Plain field updates. Stage changes go through ``move_deal``.

    ``value`` is only writable while the deal has no line items; otherwise it
    is the sum of their totals.
    """
    deal = await get_deal(db, organization_id, deal_id)

    if kwargs.get("contact_id") is not None:
        await _check_contact(db, organization_id, kwargs["contact_id"])
    if kwargs.get("value") is not None and await _has_line_items(db, deal.id):
        raise BadRequestError("Deal value is computed from its line items")

    for key in ("title", "value", "probability"):
        if kwargs.get(key) is not None:
            setattr(deal, key, kwargs[key])
    for key in ("notes", "contact_id", "expected_close_date"):
        if key in kwargs:
            setattr(deal, key, kwargs[key])
    await db.commit()
    return await get_deal(db, organization_id, deal_id)


async def delete_deal(db: AsyncSession, organization_id: uuid.UUID, deal_id: uuid.UUID) -> None:
    deal = await get_deal(db, organization_id, deal_id)
    await db.delete(deal)
    await db.commit()


async def move_deal(
    db: AsyncSession,
    organization_id: uuid.UUID,
    deal_id: uuid.UUID,
    stage_id: uuid.UUID,
    lost_reason_id: uuid.UUID | None = None,
    notes: str | None = None,
    actor_id: uuid.UUID | None = None,
) -> Deal:
    """Move a deal to ``stage_id`` and record the transition.

    Won and lost stages close the deal; leaving a terminal stage reopens it.
    The deal update and its event are committed together.
    """
    deal = await get_deal(db, organization_id, deal_id)
    stage = await pipeline_svc.get_stage(db, organization_id, stage_id)
    if lost_reason_id is not None:
        await _check_lost_reason(db, organization_id, lost_reason_id)

    now = utcnow()
    from_stage_id = deal.stage_id

    if stage.is_won:
        deal.closed_at = now
        deal.lost_reason_id = None
        payload_cls = WonPayload
    elif stage.is_lost:
        deal.closed_at = now
        if lost_reason_id is not None:
            deal.lost_reason_id = lost_reason_id
        payload_cls = LostPayload
    else:
        if deal.is_closed:
            deal.closed_at = None
            deal.lost_reason_id = None
        payload_cls = StageChangedPayload

    deal.stage_id = stage.id
    deal.pipeline_id = stage.pipeline_id
    deal.stage_entered_at = now

    fields = dict(
        from_stage_id=from_stage_id,
        to_stage_id=stage.id,
        stage_name=stage.name,
        notes=notes,
    )
    if payload_cls is LostPayload:
        fields["lost_reason_id"] = deal.lost_reason_id
    deal_events.append_event(db, deal.id, payload_cls(**fields), actor_id)
    await db.commit()

    log.info("Deal %s moved %s -> %s (%s)", deal.id, from_stage_id, stage.id, payload_cls.__name__)
    return await get_deal(db, organization_id, deal_id)


async def assign_deal(
    db: AsyncSession,
    organization_id: uuid.UUID,
    deal_id: uuid.UUID,
    assigned_to_id: uuid.UUID | None,
    actor_id: uuid.UUID | None = None,
) -> Deal:
    deal = await get_deal(db, organization_id, deal_id)
    if assigned_to_id is not None:
        await member_svc.get_active_member(db, organization_id, assigned_to_id)

    deal.assigned_to_id = assigned_to_id
    if actor_id is not None:
        deal_events.append_event(
            db, deal.id, AssignedPayload(assigned_to_id=assigned_to_id), actor_id
        )
    await db.commit()
    return await get_deal(db, organization_id, deal_id)


async def get_history(
    db: AsyncSession, organization_id: uuid.UUID, deal_id: uuid.UUID
) -> list[DealEvent]:
    deal = await get_deal(db, organization_id, deal_id)
    return await deal_events.list_events(db, deal.id)


async def list_by_lead(
    db: AsyncSession, organization_id: uuid.UUID, lead_id: uuid.UUID
) -> list[Deal]:
    stmt = _with_display_joins(
        select(Deal)
        .where(Deal.organization_id == organization_id, Deal.lead_id == lead_id)
        .order_by(Deal.created_at.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_board(
    db: AsyncSession, organization_id: uuid.UUID, pipeline_id: uuid.UUID
) -> tuple[Pipeline, list[tuple[Stage, list[Deal]]]]:
    """Pipeline stages in order, each with its deals (newest first)."""
    pipeline = await pipeline_svc.get_pipeline(db, organization_id, pipeline_id)
    stmt = _with_display_joins(
        select(Deal)
        .where(Deal.organization_id == organization_id, Deal.pipeline_id == pipeline.id)
        .order_by(Deal.created_at.desc())
    )
    deals = list((await db.execute(stmt)).scalars().all())

    columns = [(stage, [d for d in deals if d.stage_id == stage.id]) for stage in pipeline.stages]
    return pipeline, columns


# ── Projections ────────────────────────────────────────────────────────────

async def get_stats(db: AsyncSession, organization_id: uuid.UUID) -> dict:
    in_org = Deal.organization_id == organization_id

    total, total_value, avg_value = (
        await db.execute(
            select(func.count(Deal.id), func.sum(Deal.value), func.avg(Deal.value)).where(in_org)
        )
    ).one()

    won_value = (
        await db.execute(
            select(func.sum(Deal.value))
            .join(Stage, Stage.id == Deal.stage_id)
            .where(in_org, Stage.is_won.is_(True))
        )
    ).scalar()

    recent = (
        await db.execute(
            select(func.count(Deal.id)).where(in_org, Deal.created_at >= utcnow() - timedelta(days=7))
        )
    ).scalar_one()

    by_stage_rows = await db.execute(
        select(Deal.stage_id, func.count(Deal.id), func.sum(Deal.value))
        .where(in_org)
        .group_by(Deal.stage_id)
    )
    by_stage = [
        {"stage_id": stage_id, "count": count, "value": float(value or 0)}
        for stage_id, count, value in by_stage_rows.all()
    ]

    return {
        "total": total,
        "recent_deals": recent,
        "total_value": float(total_value or 0),
        "won_value": float(won_value or 0),
        "avg_deal_value": float(avg_value or 0),
        "by_stage": by_stage,
    }


def _month_window(today: date) -> tuple[date, date]:
    start = today.replace(day=1)
    if start.month == 12:
        return start, start.replace(year=start.year + 1, month=1)
    return start, start.replace(month=start.month + 1)


def _quarter_window(today: date) -> tuple[date, date]:
    first_month = (today.month - 1) // 3 * 3 + 1
    start = date(today.year, first_month, 1)
    if first_month == 10:
        return start, date(today.year + 1, 1, 1)
    return start, date(today.year, first_month + 3, 1)


async def _count_and_sum(db: AsyncSession, *criteria) -> dict:
    count, value = (
        await db.execute(select(func.count(Deal.id), func.sum(Deal.value)).where(*criteria))
    ).one()
    return {"count": count, "value": float(value or 0)}


def win_rate(won: int, lost: int) -> int:
    if won + lost == 0:
        return 0
    return int(won / (won + lost) * 100 + 0.5)


async def get_forecast(
    db: AsyncSession, organization_id: uuid.UUID, today: date | None = None
) -> dict:
    """Open pipeline value, month/quarter expected closes and this month's win rate."""
    today = today or utcnow().date()
    month_start, month_end = _month_window(today)
    quarter_start, quarter_end = _quarter_window(today)
    month_start_at = datetime(month_start.year, month_start.month, 1, tzinfo=timezone.utc)

    in_org = Deal.organization_id == organization_id
    is_open = Deal.closed_at.is_(None)

    open_deals = await _count_and_sum(db, in_org, is_open)
    monthly = await _count_and_sum(
        db, in_org, is_open,
        Deal.expected_close_date >= month_start, Deal.expected_close_date < month_end,
    )
    quarterly = await _count_and_sum(
        db, in_org, is_open,
        Deal.expected_close_date >= quarter_start, Deal.expected_close_date < quarter_end,
    )

    closed_this_month = and_(in_org, Deal.closed_at >= month_start_at)
    won_count, won_value = (
        await db.execute(
            select(func.count(Deal.id), func.sum(Deal.value))
            .join(Stage, Stage.id == Deal.stage_id)
            .where(closed_this_month, Stage.is_won.is_(True))
        )
    ).one()
    lost_count = (
        await db.execute(
            select(func.count(Deal.id))
            .join(Stage, Stage.id == Deal.stage_id)
            .where(closed_this_month, Stage.is_lost.is_(True))
        )
    ).scalar_one()

    return {
        "open_deals": open_deals,
        "monthly_forecast": monthly,
        "quarterly_forecast": quarterly,
        "won_this_month": {"count": won_count, "value": float(won_value or 0)},
        "lost_this_month": {"count": lost_count},
        "win_rate": win_rate(won_count, lost_count),
    }
