"""User registration, login and tenant context resolution."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..errors import BadRequestError, ConflictError, ForbiddenError, UnauthorizedError
from ..models.organization import OrganizationMember, Role
from ..models.user import User
from ..security.tokens import (
    TokenClaims,
    decode_access_token,
    hash_password,
    issue_access_token,
    verify_password,
)
from ..tenant.context import TenantContext
from . import organization_svc

log = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def register_user(
    db: AsyncSession,
    email: str,
    name: str,
    password: str,
    organization_name: str | None = None,
) -> User:
    """Create a user and, optionally, the organization they own."""
    email = normalize_email(email)
    if not email or "@" not in email:
        raise BadRequestError("A valid email is required")
    if not password:
        raise BadRequestError("Password is required")
    if await get_user_by_email(db, email):
        raise ConflictError("Email already registered")

    user = User(email=email, name=name, password_hash=hash_password(password))
    db.add(user)
    await db.commit()
    log.info("Registered user %s", email)

    if organization_name:
        await organization_svc.create_organization(db, user.id, organization_name)
        await db.refresh(user)
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        raise UnauthorizedError("Invalid email or password")
    return user


def issue_token(user_id: uuid.UUID, organization_id: uuid.UUID | None) -> str:
    return issue_access_token(
        settings.auth_secret,
        user_id,
        organization_id,
        settings.auth_token_ttl_seconds,
    )


def decode_token(token: str) -> TokenClaims:
    claims = decode_access_token(settings.auth_secret, token)
    if claims is None:
        raise UnauthorizedError("Invalid or expired token")
    return claims


async def resolve_context(db: AsyncSession, claims: TokenClaims) -> TenantContext:
    """Load the caller's active membership for the organization in the token."""
    if claims.organization_id is None:
        raise ForbiddenError("No active organization")

    stmt = select(OrganizationMember).where(
        OrganizationMember.user_id == claims.user_id,
        OrganizationMember.organization_id == claims.organization_id,
        OrganizationMember.is_active.is_(True),
    )
    member = (await db.execute(stmt)).scalar_one_or_none()
    if member is None:
        raise ForbiddenError("User is not a member of this organization")

    return TenantContext(
        user_id=member.user_id,
        organization_id=member.organization_id,
        member_id=member.id,
        role=Role(member.role),
    )
