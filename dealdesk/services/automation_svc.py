"""Automation definitions. Only storage lives here; nothing executes them."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import NotFoundError
from ..models.automation import Automation
from . import limit_svc


async def list_automations(db: AsyncSession, organization_id: uuid.UUID) -> list[Automation]:
    stmt = (
        select(Automation)
        .where(Automation.organization_id == organization_id)
        .order_by(Automation.created_at)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def create_automation(
    db: AsyncSession,
    organization_id: uuid.UUID,
    name: str,
    trigger: str,
    config: dict | None = None,
    is_active: bool = True,
) -> Automation:
    await limit_svc.check_limit(db, organization_id, limit_svc.ResourceKind.AUTOMATIONS)
    automation = Automation(
        organization_id=organization_id,
        name=name,
        trigger=trigger,
        config=config,
        is_active=is_active,
    )
    db.add(automation)
    await db.commit()
    await db.refresh(automation)
    return automation


async def delete_automation(
    db: AsyncSession, organization_id: uuid.UUID, automation_id: uuid.UUID
) -> None:
    stmt = select(Automation).where(
        Automation.id == automation_id, Automation.organization_id == organization_id
    )
    automation = (await db.execute(stmt)).scalar_one_or_none()
    if not automation:
        raise NotFoundError("Automation not found")
    await db.delete(automation)
    await db.commit()
