"""Custom field schemas."""

from __future__ import annotations

import uuid

from pydantic import BaseModel

from ..models.custom_field import CustomFieldEntity, CustomFieldType


class CustomFieldCreate(BaseModel):
    entity: CustomFieldEntity
    name: str
    label: str
    type: CustomFieldType
    options: list[str] | None = None
    is_required: bool = False
    position: int | None = None


class CustomFieldUpdate(BaseModel):
    name: str | None = None
    label: str | None = None
    type: CustomFieldType | None = None
    options: list[str] | None = None
    is_required: bool | None = None
    position: int | None = None


class CustomFieldResponse(BaseModel):
    id: uuid.UUID
    entity: str
    name: str
    label: str
    type: str
    options: list[str] | None = None
    is_required: bool
    position: int

    model_config = {"from_attributes": True}


class CustomFieldValueIn(BaseModel):
    custom_field_id: uuid.UUID
    value: str | None = None


class CustomFieldValuesSet(BaseModel):
    values: list[CustomFieldValueIn]


class CustomFieldValueResponse(BaseModel):
    custom_field_id: uuid.UUID
    entity_id: uuid.UUID
    value: str | None = None
    field: CustomFieldResponse
