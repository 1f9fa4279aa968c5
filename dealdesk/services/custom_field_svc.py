"""Custom field definition + value service (EAV)."""

from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import ConflictError, NotFoundError
from ..models.custom_field import CustomField, CustomFieldEntity, CustomFieldType, CustomFieldValue


async def _check_unique(
    db: AsyncSession,
    organization_id: uuid.UUID,
    entity: str,
    name: str,
    exclude_id: uuid.UUID | None = None,
) -> None:
    stmt = select(CustomField.id).where(
        CustomField.organization_id == organization_id,
        CustomField.entity == entity,
        CustomField.name == name,
    )
    if exclude_id is not None:
        stmt = stmt.where(CustomField.id != exclude_id)
    if (await db.execute(stmt)).scalar_one_or_none():
        raise ConflictError(f"Custom field {name!r} already exists for {entity}")


async def list_fields(
    db: AsyncSession, organization_id: uuid.UUID, entity: CustomFieldEntity | str | None = None
) -> list[CustomField]:
    stmt = select(CustomField).where(CustomField.organization_id == organization_id)
    if entity is not None:
        stmt = stmt.where(CustomField.entity == CustomFieldEntity(entity).value)
    result = await db.execute(stmt.order_by(CustomField.position, CustomField.name))
    return list(result.scalars().all())


async def get_field(db: AsyncSession, organization_id: uuid.UUID, field_id: uuid.UUID) -> CustomField:
    stmt = select(CustomField).where(
        CustomField.id == field_id, CustomField.organization_id == organization_id
    )
    field = (await db.execute(stmt)).scalar_one_or_none()
    if not field:
        raise NotFoundError("Custom field not found")
    return field


async def create_field(
    db: AsyncSession,
    organization_id: uuid.UUID,
    entity: CustomFieldEntity | str,
    name: str,
    label: str,
    type: CustomFieldType | str,
    options: list | None = None,
    is_required: bool = False,
    position: int | None = None,
) -> CustomField:
    entity = CustomFieldEntity(entity).value
    await _check_unique(db, organization_id, entity, name)

    if position is None:
        max_pos = (
            await db.execute(
                select(func.max(CustomField.position)).where(
                    CustomField.organization_id == organization_id,
                    CustomField.entity == entity,
                )
            )
        ).scalar()
        position = (max_pos + 1) if max_pos is not None else 0

    field = CustomField(
        organization_id=organization_id,
        entity=entity,
        name=name,
        label=label,
        type=CustomFieldType(type).value,
        options=options,
        is_required=is_required,
        position=position,
    )
    db.add(field)
    await db.commit()
    await db.refresh(field)
    return field


async def update_field(
    db: AsyncSession, organization_id: uuid.UUID, field_id: uuid.UUID, **kwargs
) -> CustomField:
    field = await get_field(db, organization_id, field_id)
    if kwargs.get("name") and kwargs["name"] != field.name:
        await _check_unique(db, organization_id, field.entity, kwargs["name"], exclude_id=field.id)
    if kwargs.get("type") is not None:
        kwargs["type"] = CustomFieldType(kwargs["type"]).value

    for key in ("name", "label", "type", "is_required", "position"):
        if kwargs.get(key) is not None:
            setattr(field, key, kwargs[key])
    if "options" in kwargs:
        field.options = kwargs["options"]
    await db.commit()
    await db.refresh(field)
    return field


async def delete_field(db: AsyncSession, organization_id: uuid.UUID, field_id: uuid.UUID) -> None:
    field = await get_field(db, organization_id, field_id)
    await db.delete(field)
    await db.commit()


async def get_values(
    db: AsyncSession, organization_id: uuid.UUID, entity_id: uuid.UUID
) -> list[tuple[CustomFieldValue, CustomField]]:
    """Stored values for an entity with their definitions, by field position."""
    stmt = (
        select(CustomFieldValue, CustomField)
        .join(CustomField, CustomField.id == CustomFieldValue.custom_field_id)
        .where(
            CustomFieldValue.entity_id == entity_id,
            CustomField.organization_id == organization_id,
        )
        .order_by(CustomField.position)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return [(value, field) for value, field in result.all()]


async def set_values(
    db: AsyncSession,
    organization_id: uuid.UUID,
    entity_id: uuid.UUID,
    values: list[tuple[uuid.UUID, str | None]],
) -> list[tuple[CustomFieldValue, CustomField]]:
    """Upsert ``(custom_field_id, value)`` pairs for an entity.

    Pairs naming a field outside the organization are skipped without error,
    so a partial batch still applies.
    """
    owned: set[uuid.UUID] = set()
    field_ids = {field_id for field_id, _ in values}
    if field_ids:
        stmt = select(CustomField.id).where(
            CustomField.id.in_(field_ids),
            CustomField.organization_id == organization_id,
        )
        owned = set((await db.execute(stmt)).scalars().all())

    for field_id, value in values:
        if field_id not in owned:
            continue
        stmt = select(CustomFieldValue).where(
            CustomFieldValue.custom_field_id == field_id,
            CustomFieldValue.entity_id == entity_id,
        )
        cfv = (await db.execute(stmt)).scalar_one_or_none()
        if cfv:
            cfv.value = value
        else:
            db.add(CustomFieldValue(custom_field_id=field_id, entity_id=entity_id, value=value))
            await db.flush()

    await db.commit()
    return await get_values(db, organization_id, entity_id)
