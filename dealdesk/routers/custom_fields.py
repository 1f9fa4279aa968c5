"""Custom field definitions and per-entity values."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.custom_field import CustomFieldEntity
from ..schemas.common import Deleted
from ..schemas.custom_field import (
    CustomFieldCreate,
    CustomFieldResponse,
    CustomFieldUpdate,
    CustomFieldValueResponse,
    CustomFieldValuesSet,
)
from ..services import custom_field_svc
from ..tenant.context import TenantContext
from ..tenant.guards import ADMINS, guarded, require_roles

router = APIRouter(prefix="/api")


def _values_response(rows) -> list[CustomFieldValueResponse]:
    return [
        CustomFieldValueResponse(
            custom_field_id=value.custom_field_id,
            entity_id=value.entity_id,
            value=value.value,
            field=CustomFieldResponse.model_validate(field),
        )
        for value, field in rows
    ]


@router.get("/custom-fields", response_model=list[CustomFieldResponse])
async def list_fields(
    entity: CustomFieldEntity | None = None,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await custom_field_svc.list_fields(db, ctx.organization_id, entity)


@router.post("/custom-fields", response_model=CustomFieldResponse, status_code=201)
async def create_field(
    data: CustomFieldCreate,
    ctx: TenantContext = Depends(guarded(require_roles(*ADMINS))),
    db: AsyncSession = Depends(get_db),
):
    return await custom_field_svc.create_field(db, ctx.organization_id, **data.model_dump())


@router.get("/custom-fields/values/{entity_id}", response_model=list[CustomFieldValueResponse])
async def get_values(
    entity_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    rows = await custom_field_svc.get_values(db, ctx.organization_id, entity_id)
    return _values_response(rows)


@router.put("/custom-fields/values/{entity_id}", response_model=list[CustomFieldValueResponse])
async def set_values(
    entity_id: uuid.UUID,
    data: CustomFieldValuesSet,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    pairs = [(item.custom_field_id, item.value) for item in data.values]
    rows = await custom_field_svc.set_values(db, ctx.organization_id, entity_id, pairs)
    return _values_response(rows)


@router.get("/custom-fields/{field_id}", response_model=CustomFieldResponse)
async def get_field(
    field_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await custom_field_svc.get_field(db, ctx.organization_id, field_id)


@router.patch("/custom-fields/{field_id}", response_model=CustomFieldResponse)
async def update_field(
    field_id: uuid.UUID,
    data: CustomFieldUpdate,
    ctx: TenantContext = Depends(guarded(require_roles(*ADMINS))),
    db: AsyncSession = Depends(get_db),
):
    return await custom_field_svc.update_field(
        db, ctx.organization_id, field_id, **data.model_dump(exclude_unset=True)
    )


@router.delete("/custom-fields/{field_id}", response_model=Deleted)
async def delete_field(
    field_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded(require_roles(*ADMINS))),
    db: AsyncSession = Depends(get_db),
):
    await custom_field_svc.delete_field(db, ctx.organization_id, field_id)
    return Deleted()
