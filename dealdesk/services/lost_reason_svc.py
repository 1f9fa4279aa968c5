"""Lost reasons - the organization's catalogue of why deals are lost."""

from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import NotFoundError
from ..models.deal import LostReason


async def list_lost_reasons(db: AsyncSession, organization_id: uuid.UUID) -> list[LostReason]:
    stmt = (
        select(LostReason)
        .where(LostReason.organization_id == organization_id)
        .order_by(LostReason.position, LostReason.name)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def create_lost_reason(
    db: AsyncSession, organization_id: uuid.UUID, name: str, position: int | None = None
) -> LostReason:
    if position is None:
        max_pos = (
            await db.execute(
                select(func.max(LostReason.position)).where(
                    LostReason.organization_id == organization_id
                )
            )
        ).scalar()
        position = (max_pos + 1) if max_pos is not None else 0

    reason = LostReason(organization_id=organization_id, name=name, position=position)
    db.add(reason)
    await db.commit()
    await db.refresh(reason)
    return reason


async def delete_lost_reason(
    db: AsyncSession, organization_id: uuid.UUID, reason_id: uuid.UUID
) -> None:
    stmt = select(LostReason).where(
        LostReason.id == reason_id, LostReason.organization_id == organization_id
    )
    reason = (await db.execute(stmt)).scalar_one_or_none()
    if not reason:
        raise NotFoundError("Lost reason not found")
    await db.delete(reason)
    await db.commit()
