"""Append-only deal event log."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.deal import DealEvent
from ..schemas.events import DealEventPayload


def append_event(
    db: AsyncSession,
    deal_id: uuid.UUID,
    payload: DealEventPayload,
    member_id: uuid.UUID | None = None,
) -> DealEvent:
    """Stage an event in the caller's unit of work.

    Nothing is committed here; the caller commits the deal change and the
    event together.
    """
    event = DealEvent(
        deal_id=deal_id,
        type=payload.type,
        payload=payload.model_dump(mode="json"),
        member_id=member_id,
    )
    db.add(event)
    return event


async def list_events(db: AsyncSession, deal_id: uuid.UUID) -> list[DealEvent]:
    stmt = (
        select(DealEvent)
        .where(DealEvent.deal_id == deal_id)
        .order_by(DealEvent.created_at.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())
