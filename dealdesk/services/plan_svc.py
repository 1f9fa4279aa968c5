"""Plan catalogue - built-in quota bundles and explicit upserts."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.plan import Plan

log = logging.getLogger(__name__)

DEFAULT_PLANS: list[dict] = [
    {
        "name": "start",
        "display_name": "Start",
        "price": 0.0,
        "max_users": 2,
        "max_deals": 50,
        "max_pipelines": 1,
        "max_contacts": 500,
        "max_automations": 5,
        "features": ["basic_crm"],
    },
    {
        "name": "pro",
        "display_name": "Pro",
        "price": 49.0,
        "max_users": 10,
        "max_deals": 500,
        "max_pipelines": 5,
        "max_contacts": 5000,
        "max_automations": 25,
        "features": ["basic_crm", "automation", "reports"],
    },
    {
        "name": "enterprise",
        "display_name": "Enterprise",
        "price": 199.0,
        "max_users": 999,
        "max_deals": 9999,
        "max_pipelines": 50,
        "max_contacts": 100000,
        "max_automations": 999,
        "features": ["basic_crm", "automation", "reports", "sso", "priority_support"],
    },
]


async def get_plan_by_name(db: AsyncSession, name: str) -> Plan | None:
    result = await db.execute(select(Plan).where(Plan.name == name))
    return result.scalar_one_or_none()


async def list_plans(db: AsyncSession) -> list[Plan]:
    result = await db.execute(select(Plan).order_by(Plan.price, Plan.name))
    return list(result.scalars().all())


async def upsert_plan(db: AsyncSession, name: str, **fields) -> Plan:
    """Create or overwrite a plan by name.

    Plans are shared by every organization holding them, so this is the only
    path that changes a plan once organizations reference it.
    """
    plan = await get_plan_by_name(db, name)
    if plan is None:
        plan = Plan(name=name, **fields)
        db.add(plan)
    else:
        for key, value in fields.items():
            setattr(plan, key, value)
    await db.commit()
    await db.refresh(plan)
    return plan


async def ensure_default_plans(db: AsyncSession) -> list[Plan]:
    """Create any missing built-in plan. Existing rows are left untouched."""
    created = []
    for defaults in DEFAULT_PLANS:
        if await get_plan_by_name(db, defaults["name"]) is not None:
            continue
        plan = Plan(**defaults)
        db.add(plan)
        created.append(plan)
    if created:
        await db.commit()
        log.info("Created default plans: %s", ", ".join(p.name for p in created))
    return await list_plans(db)
