"""One-time process initialization: schema on SQLite, built-in plans."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from .config import settings
from .models import Base
from .services import plan_svc

log = logging.getLogger(__name__)


async def create_schema(engine: AsyncEngine) -> None:
    # SQLite (local dev, tests) gets tables directly; PostgreSQL uses Alembic migrations.
    if engine.dialect.name != "sqlite":
        return
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def bootstrap(engine: AsyncEngine, db: AsyncSession) -> None:
    await create_schema(engine)
    plans = await plan_svc.ensure_default_plans(db)
    if settings.default_plan not in {p.name for p in plans}:
        raise RuntimeError(f"Default plan {settings.default_plan!r} does not exist")
    log.info("Bootstrap complete (%d plans)", len(plans))
