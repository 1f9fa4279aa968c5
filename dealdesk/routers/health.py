"""Liveness and readiness checks for DealDesk."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..services import plan_svc

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    await db.execute(text("SELECT 1"))
    return {"status": "healthy", "environment": settings.environment}


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """Ready once the plan new organizations are placed on has been seeded."""
    plan = await plan_svc.get_plan_by_name(db, settings.default_plan)
    if plan is None:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "missing_plan": settings.default_plan},
        )
    return {"status": "ready", "default_plan": plan.name}
