"""Organization (tenant) service - creation, slugs, plan assignment, stats."""

from __future__ import annotations

import logging
import re
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..config import settings
from ..errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from ..models.lead import Lead
from ..models.organization import Organization, OrganizationMember, Role
from ..models.user import User
from . import limit_svc, plan_svc

log = logging.getLogger(__name__)

_SLUG_INVALID = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    return _SLUG_INVALID.sub("-", (name or "").lower()).strip("-")[:50]


async def _slug_taken(db: AsyncSession, slug: str) -> bool:
    result = await db.execute(select(Organization.id).where(Organization.slug == slug))
    return result.scalar_one_or_none() is not None


async def generate_unique_slug(db: AsyncSession, name: str) -> str:
    base = slugify(name)
    if not base:
        raise BadRequestError("Invalid organization name")

    slug = base
    counter = 1
    while await _slug_taken(db, slug):
        slug = f"{base}-{counter}"
        counter += 1
    return slug


async def get_organization(db: AsyncSession, organization_id: uuid.UUID) -> Organization:
    stmt = (
        select(Organization)
        .where(Organization.id == organization_id)
        .options(selectinload(Organization.plan))
        .execution_options(populate_existing=True)
    )
    org = (await db.execute(stmt)).scalar_one_or_none()
    if not org:
        raise NotFoundError("Organization not found")
    return org


async def get_by_slug(db: AsyncSession, slug: str) -> Organization:
    stmt = (
        select(Organization)
        .where(Organization.slug == slug)
        .options(selectinload(Organization.plan))
        .execution_options(populate_existing=True)
    )
    org = (await db.execute(stmt)).scalar_one_or_none()
    if not org:
        raise NotFoundError("Organization not found")
    return org


async def create_organization(
    db: AsyncSession, user_id: uuid.UUID, name: str, slug: str | None = None
) -> Organization:
    """Create an organization on the default plan with ``user_id`` as OWNER."""
    plan = await plan_svc.get_plan_by_name(db, settings.default_plan)
    if plan is None:
        raise RuntimeError(
            f"Default plan {settings.default_plan!r} is missing; run the bootstrap step first"
        )

    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    if slug:
        slug = slugify(slug)
        if not slug:
            raise BadRequestError("Invalid organization slug")
        if await _slug_taken(db, slug):
            raise ConflictError("Organization slug already in use")
    else:
        slug = await generate_unique_slug(db, name)

    org = Organization(name=name, slug=slug, plan_id=plan.id)
    db.add(org)
    await db.flush()

    db.add(OrganizationMember(user_id=user_id, organization_id=org.id, role=Role.OWNER.value))
    user.active_organization_id = org.id
    await db.commit()

    log.info("Created organization %s (%s) on plan %s", org.slug, org.id, plan.name)
    return await get_organization(db, org.id)


async def list_for_user(db: AsyncSession, user_id: uuid.UUID) -> list[tuple[Organization, str]]:
    """Organizations the user is an active member of, with the user's role."""
    stmt = (
        select(Organization, OrganizationMember.role)
        .join(OrganizationMember, OrganizationMember.organization_id == Organization.id)
        .where(OrganizationMember.user_id == user_id, OrganizationMember.is_active.is_(True))
        .options(selectinload(Organization.plan))
        .order_by(Organization.name)
    )
    result = await db.execute(stmt)
    return [(org, role) for org, role in result.all()]


async def update_organization(
    db: AsyncSession, organization_id: uuid.UUID, **kwargs
) -> Organization:
    org = await get_organization(db, organization_id)
    if kwargs.get("name") is not None:
        org.name = kwargs["name"]
    for key in ("logo", "settings"):
        if key in kwargs:
            setattr(org, key, kwargs[key])
    await db.commit()
    return await get_organization(db, organization_id)


async def delete_organization(db: AsyncSession, organization_id: uuid.UUID) -> None:
    org = await get_organization(db, organization_id)
    await db.delete(org)
    await db.commit()
    log.info("Deleted organization %s", organization_id)


async def switch_organization(
    db: AsyncSession, user_id: uuid.UUID, organization_id: uuid.UUID
) -> Organization:
    stmt = select(OrganizationMember).where(
        OrganizationMember.user_id == user_id,
        OrganizationMember.organization_id == organization_id,
    )
    membership = (await db.execute(stmt)).scalar_one_or_none()
    if not membership or not membership.is_active:
        raise ForbiddenError("User is not a member of this organization")

    user = await db.get(User, user_id)
    user.active_organization_id = organization_id
    await db.commit()
    return await get_organization(db, organization_id)


async def change_plan(
    db: AsyncSession, organization_id: uuid.UUID, plan_name: str
) -> Organization:
    plan = await plan_svc.get_plan_by_name(db, plan_name)
    if plan is None:
        raise NotFoundError("Plan not found")
    org = await get_organization(db, organization_id)
    org.plan_id = plan.id
    await db.commit()
    log.info("Organization %s moved to plan %s", org.slug, plan.name)
    return await get_organization(db, organization_id)


async def get_stats(db: AsyncSession, organization_id: uuid.UUID) -> dict:
    org = await get_organization(db, organization_id)
    usage = await limit_svc.get_usage(db, organization_id)
    total_leads = (
        await db.execute(select(func.count(Lead.id)).where(Lead.organization_id == organization_id))
    ).scalar_one()

    return {
        "plan": org.plan.name,
        "total_members": usage["users"]["current"],
        "total_deals": usage["deals"]["current"],
        "total_leads": total_leads,
        "total_contacts": usage["contacts"]["current"],
        "total_pipelines": usage["pipelines"]["current"],
        "total_automations": usage["automations"]["current"],
        "limits": {kind: row["limit"] for kind, row in usage.items()},
        "usage": {kind: row["percentage"] for kind, row in usage.items()},
    }
