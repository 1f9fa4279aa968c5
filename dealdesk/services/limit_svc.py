"""Plan quota enforcement.

Usage is counted live on every call. Two concurrent creates at the quota
boundary can both pass the check and both commit, leaving the organization
one row over quota; that bounded overshoot is accepted rather than
serialising every create behind a lock.
"""

from __future__ import annotations

import enum
import math
import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import LimitExceededError, NotFoundError
from ..models.automation import Automation
from ..models.contact import Contact
from ..models.deal import Deal
from ..models.organization import Organization, OrganizationMember
from ..models.pipeline import Pipeline
from ..models.plan import UNLIMITED, Plan

log = logging.getLogger(__name__)


class ResourceKind(str, enum.Enum):
    USERS = "users"
    DEALS = "deals"
    PIPELINES = "pipelines"
    CONTACTS = "contacts"
    AUTOMATIONS = "automations"


_QUOTA_FIELD = {
    ResourceKind.USERS: "max_users",
    ResourceKind.DEALS: "max_deals",
    ResourceKind.PIPELINES: "max_pipelines",
    ResourceKind.CONTACTS: "max_contacts",
    ResourceKind.AUTOMATIONS: "max_automations",
}

_COUNTED_MODEL = {
    ResourceKind.DEALS: Deal,
    ResourceKind.PIPELINES: Pipeline,
    ResourceKind.CONTACTS: Contact,
    ResourceKind.AUTOMATIONS: Automation,
}


async def _get_plan(db: AsyncSession, organization_id: uuid.UUID) -> Plan:
    stmt = (
        select(Plan)
        .join(Organization, Organization.plan_id == Plan.id)
        .where(Organization.id == organization_id)
    )
    plan = (await db.execute(stmt)).scalar_one_or_none()
    if plan is None:
        raise NotFoundError("Organization not found")
    return plan


async def count_usage(
    db: AsyncSession, organization_id: uuid.UUID, resource: ResourceKind
) -> int:
    if resource == ResourceKind.USERS:
        stmt = select(func.count(OrganizationMember.id)).where(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.is_active.is_(True),
        )
    else:
        model = _COUNTED_MODEL[resource]
        stmt = select(func.count(model.id)).where(model.organization_id == organization_id)
    return (await db.execute(stmt)).scalar_one()


def quota_for(plan: Plan, resource: ResourceKind) -> int:
    return getattr(plan, _QUOTA_FIELD[resource])


async def check_limit(
    db: AsyncSession, organization_id: uuid.UUID, resource: ResourceKind | str
) -> None:
    """Raise LimitExceededError when creating one more ``resource`` would exceed the plan."""
    resource = ResourceKind(resource)
    plan = await _get_plan(db, organization_id)
    limit = quota_for(plan, resource)
    if limit == UNLIMITED:
        return

    usage = await count_usage(db, organization_id, resource)
    if usage >= limit:
        log.info(
            "Limit reached for %s in organization %s (%d/%d)",
            resource.value, organization_id, usage, limit,
        )
        raise LimitExceededError(resource.value, limit, usage)


def usage_percentage(current: int, limit: int) -> int:
    if limit <= 0:
        return 0
    return min(100, math.floor(current / limit * 100 + 0.5))


async def get_usage(db: AsyncSession, organization_id: uuid.UUID) -> dict[str, dict[str, int]]:
    """Current usage, quota and percentage for every resource kind."""
    plan = await _get_plan(db, organization_id)
    usage: dict[str, dict[str, int]] = {}
    for resource in ResourceKind:
        current = await count_usage(db, organization_id, resource)
        limit = quota_for(plan, resource)
        usage[resource.value] = {
            "current": current,
            "limit": limit,
            "percentage": usage_percentage(current, limit),
        }
    return usage
