"""Route guards - small async predicates evaluated before a service call.

A guard takes the tenant context and the session and returns a ``Decision``.
``guarded(...)`` turns a list of guards into a FastAPI dependency that yields
the context once every guard allows the request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..errors import DomainError, ForbiddenError, LimitExceededError
from ..models.organization import Organization, Role
from ..models.plan import Plan
from ..services import limit_svc
from .context import TenantContext
from .deps import get_tenant_context


@dataclass(frozen=True)
class Decision:
    allowed: bool
    error: DomainError | None = None


ALLOW = Decision(True)


def deny(error: DomainError) -> Decision:
    return Decision(False, error)


Guard = Callable[[TenantContext, AsyncSession], Awaitable[Decision]]


def require_roles(*roles: Role) -> Guard:
    async def guard(ctx: TenantContext, db: AsyncSession) -> Decision:
        if ctx.has_role(*roles):
            return ALLOW
        return deny(ForbiddenError("Insufficient role for this operation"))

    return guard


def require_feature(*features: str) -> Guard:
    """Allow only when the organization's plan carries every named feature."""

    async def guard(ctx: TenantContext, db: AsyncSession) -> Decision:
        org = await db.get(Organization, ctx.organization_id)
        plan = await db.get(Plan, org.plan_id) if org else None
        missing = [f for f in features if plan is None or not plan.has_feature(f)]
        if missing:
            return deny(ForbiddenError(f"Plan does not include feature: {', '.join(missing)}"))
        return ALLOW

    return guard


def require_limit(resource: limit_svc.ResourceKind) -> Guard:
    async def guard(ctx: TenantContext, db: AsyncSession) -> Decision:
        try:
            await limit_svc.check_limit(db, ctx.organization_id, resource)
        except LimitExceededError as exc:
            return deny(exc)
        return ALLOW

    return guard


async def run_guards(ctx: TenantContext, db: AsyncSession, guards: Sequence[Guard]) -> None:
    """Evaluate guards in order and raise the first denial."""
    for guard in guards:
        decision = await guard(ctx, db)
        if not decision.allowed:
            raise decision.error


def guarded(*guards: Guard):
    """FastAPI dependency: resolve the tenant context, then run ``guards``."""

    async def dependency(
        ctx: TenantContext = Depends(get_tenant_context),
        db: AsyncSession = Depends(get_db),
    ) -> TenantContext:
        await run_guards(ctx, db, guards)
        return ctx

    return dependency


MANAGERS = (Role.OWNER, Role.ADMIN, Role.MANAGER)
ADMINS = (Role.OWNER, Role.ADMIN)
