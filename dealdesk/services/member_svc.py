"""Organization membership and invitation service."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..config import settings
from ..errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from ..models.base import utcnow
from ..models.organization import InviteStatus, OrganizationInvite, OrganizationMember, Role
from ..models.user import User
from ..security.tokens import hash_invite_token, hash_password, issue_invite_token
from ..tenant.context import TenantContext
from . import limit_svc

log = logging.getLogger(__name__)


def _aware(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def list_members(
    db: AsyncSession,
    organization_id: uuid.UUID,
    role: str | None = None,
    search: str | None = None,
) -> list[OrganizationMember]:
    stmt = (
        select(OrganizationMember)
        .join(User, User.id == OrganizationMember.user_id)
        .where(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.is_active.is_(True),
        )
        .options(selectinload(OrganizationMember.user))
        .order_by(OrganizationMember.joined_at)
    )
    if role:
        stmt = stmt.where(OrganizationMember.role == role)
    if search:
        pattern = f"%{search.lower()}%"
        stmt = stmt.where(
            or_(func.lower(User.name).like(pattern), func.lower(User.email).like(pattern))
        )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_member(
    db: AsyncSession, organization_id: uuid.UUID, member_id: uuid.UUID
) -> OrganizationMember:
    stmt = (
        select(OrganizationMember)
        .where(
            OrganizationMember.id == member_id,
            OrganizationMember.organization_id == organization_id,
        )
        .options(selectinload(OrganizationMember.user))
        .execution_options(populate_existing=True)
    )
    member = (await db.execute(stmt)).scalar_one_or_none()
    if not member:
        raise NotFoundError("Member not found")
    return member


async def get_active_member(
    db: AsyncSession, organization_id: uuid.UUID, member_id: uuid.UUID
) -> OrganizationMember:
    """Member lookup for assignment targets; inactive members are not assignable."""
    stmt = select(OrganizationMember).where(
        OrganizationMember.id == member_id,
        OrganizationMember.organization_id == organization_id,
        OrganizationMember.is_active.is_(True),
    )
    member = (await db.execute(stmt)).scalar_one_or_none()
    if not member:
        raise BadRequestError("Assignee is not an active member of this organization")
    return member


async def update_member_role(
    db: AsyncSession, ctx: TenantContext, member_id: uuid.UUID, role: Role | str
) -> OrganizationMember:
    role = Role(role)
    member = await get_member(db, ctx.organization_id, member_id)

    if member.user_id == ctx.user_id:
        raise BadRequestError("You cannot change your own role")
    if member.role == Role.OWNER.value:
        raise ForbiddenError("The owner's role cannot be changed")
    if role == Role.OWNER:
        raise ForbiddenError("Ownership cannot be granted by a role change")

    member.role = role.value
    await db.commit()
    return await get_member(db, ctx.organization_id, member_id)


async def remove_member(db: AsyncSession, ctx: TenantContext, member_id: uuid.UUID) -> None:
    """Deactivate a membership. History that references the member is kept."""
    member = await get_member(db, ctx.organization_id, member_id)

    if member.user_id == ctx.user_id:
        raise BadRequestError("You cannot remove yourself")
    if member.role == Role.OWNER.value:
        raise ForbiddenError("The owner cannot be removed")

    member.is_active = False
    await db.commit()
    log.info("Deactivated member %s in organization %s", member_id, ctx.organization_id)


# ── Invites ────────────────────────────────────────────────────────────────

async def _get_invite(
    db: AsyncSession, organization_id: uuid.UUID, invite_id: uuid.UUID
) -> OrganizationInvite:
    stmt = select(OrganizationInvite).where(
        OrganizationInvite.id == invite_id,
        OrganizationInvite.organization_id == organization_id,
    )
    invite = (await db.execute(stmt)).scalar_one_or_none()
    if not invite:
        raise NotFoundError("Invite not found")
    return invite


async def invite_user(
    db: AsyncSession, ctx: TenantContext, email: str, role: Role | str = Role.MEMBER
) -> tuple[OrganizationInvite, str]:
    """Create (or re-open) an invite. Returns the invite and the raw token.

    Only the SHA-256 of the token is stored; delivering the raw token is the
    caller's business.
    """
    role = Role(role)
    if role == Role.OWNER:
        raise ForbiddenError("Ownership cannot be granted by invite")
    email = email.strip().lower()

    await limit_svc.check_limit(db, ctx.organization_id, limit_svc.ResourceKind.USERS)

    stmt = (
        select(OrganizationMember)
        .join(User, User.id == OrganizationMember.user_id)
        .where(
            OrganizationMember.organization_id == ctx.organization_id,
            OrganizationMember.is_active.is_(True),
            User.email == email,
        )
    )
    if (await db.execute(stmt)).scalar_one_or_none():
        raise ConflictError("User is already a member of this organization")

    stmt = select(OrganizationInvite).where(
        OrganizationInvite.organization_id == ctx.organization_id,
        OrganizationInvite.email == email,
    )
    invite = (await db.execute(stmt)).scalar_one_or_none()
    if invite and invite.status == InviteStatus.PENDING.value:
        raise ConflictError("An invite is already pending for this email")

    token = issue_invite_token()
    expires_at = utcnow() + timedelta(days=settings.invite_ttl_days)
    if invite is None:
        invite = OrganizationInvite(organization_id=ctx.organization_id, email=email)
        db.add(invite)
    invite.role = role.value
    invite.token_hash = hash_invite_token(token)
    invite.status = InviteStatus.PENDING.value
    invite.invited_by_id = ctx.member_id
    invite.expires_at = expires_at
    invite.accepted_at = None
    await db.commit()

    log.info("Invited %s to organization %s as %s", email, ctx.organization_id, role.value)
    return invite, token


async def list_invites(db: AsyncSession, organization_id: uuid.UUID) -> list[OrganizationInvite]:
    stmt = (
        select(OrganizationInvite)
        .where(
            OrganizationInvite.organization_id == organization_id,
            OrganizationInvite.status == InviteStatus.PENDING.value,
        )
        .order_by(OrganizationInvite.created_at.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def cancel_invite(db: AsyncSession, organization_id: uuid.UUID, invite_id: uuid.UUID) -> None:
    invite = await _get_invite(db, organization_id, invite_id)
    if invite.status != InviteStatus.PENDING.value:
        raise BadRequestError("Only pending invites can be cancelled")
    invite.status = InviteStatus.CANCELLED.value
    await db.commit()


async def resend_invite(
    db: AsyncSession, organization_id: uuid.UUID, invite_id: uuid.UUID
) -> tuple[OrganizationInvite, str]:
    invite = await _get_invite(db, organization_id, invite_id)
    if invite.status != InviteStatus.PENDING.value:
        raise BadRequestError("Only pending invites can be resent")

    token = issue_invite_token()
    invite.token_hash = hash_invite_token(token)
    invite.expires_at = utcnow() + timedelta(days=settings.invite_ttl_days)
    await db.commit()
    return invite, token


async def accept_invite(
    db: AsyncSession,
    token: str,
    name: str | None = None,
    password: str | None = None,
) -> OrganizationMember:
    """Turn a pending invite into an active membership.

    The invited user is created when no account exists for the email; a
    password is required in that case.
    """
    stmt = select(OrganizationInvite).where(
        OrganizationInvite.token_hash == hash_invite_token(token)
    )
    invite = (await db.execute(stmt)).scalar_one_or_none()
    if not invite or invite.status != InviteStatus.PENDING.value:
        raise BadRequestError("Invalid or already used invite")

    if _aware(invite.expires_at) < utcnow():
        invite.status = InviteStatus.EXPIRED.value
        await db.commit()
        raise BadRequestError("Invite has expired")

    await limit_svc.check_limit(db, invite.organization_id, limit_svc.ResourceKind.USERS)

    user = (await db.execute(select(User).where(User.email == invite.email))).scalar_one_or_none()
    if user is None:
        if not password:
            raise BadRequestError("Password is required to create an account")
        user = User(
            email=invite.email,
            name=name or invite.email.split("@")[0],
            password_hash=hash_password(password),
        )
        db.add(user)
        await db.flush()

    stmt = select(OrganizationMember).where(
        OrganizationMember.user_id == user.id,
        OrganizationMember.organization_id == invite.organization_id,
    )
    member = (await db.execute(stmt)).scalar_one_or_none()
    if member and member.is_active:
        raise ConflictError("User is already a member of this organization")

    if member is None:
        member = OrganizationMember(
            user_id=user.id, organization_id=invite.organization_id, role=invite.role
        )
        db.add(member)
    else:
        member.is_active = True
        member.role = invite.role
        member.joined_at = utcnow()

    invite.status = InviteStatus.ACCEPTED.value
    invite.accepted_at = utcnow()
    user.active_organization_id = invite.organization_id
    await db.commit()

    log.info("User %s joined organization %s", user.email, invite.organization_id)
    return await get_member(db, invite.organization_id, member.id)
