"""Contact (address book) service."""

from __future__ import annotations

import uuid

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import NotFoundError
from ..models.contact import Contact
from . import limit_svc


async def list_contacts(
    db: AsyncSession, organization_id: uuid.UUID, search: str | None = None
) -> list[Contact]:
    stmt = select(Contact).where(Contact.organization_id == organization_id)
    if search:
        pattern = f"%{search.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Contact.name).like(pattern),
                func.lower(Contact.email).like(pattern),
                func.lower(Contact.company_name).like(pattern),
            )
        )
    result = await db.execute(stmt.order_by(Contact.name))
    return list(result.scalars().all())


async def get_contact(
    db: AsyncSession, organization_id: uuid.UUID, contact_id: uuid.UUID
) -> Contact:
    stmt = select(Contact).where(
        Contact.id == contact_id, Contact.organization_id == organization_id
    )
    contact = (await db.execute(stmt)).scalar_one_or_none()
    if not contact:
        raise NotFoundError("Contact not found")
    return contact


async def create_contact(db: AsyncSession, organization_id: uuid.UUID, **kwargs) -> Contact:
    await limit_svc.check_limit(db, organization_id, limit_svc.ResourceKind.CONTACTS)
    contact = Contact(organization_id=organization_id, **kwargs)
    db.add(contact)
    await db.commit()
    await db.refresh(contact)
    return contact


async def delete_contact(db: AsyncSession, organization_id: uuid.UUID, contact_id: uuid.UUID) -> None:
    contact = await get_contact(db, organization_id, contact_id)
    await db.delete(contact)
    await db.commit()
