"""Product and deal line-item schemas."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, Field


class ProductCreate(BaseModel):
    name: str
    description: str | None = None
    sku: str | None = None
    price: float = Field(ge=0)
    cost: float | None = Field(default=None, ge=0)
    category: str | None = None
    is_active: bool = True


class ProductUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    sku: str | None = None
    price: float | None = Field(default=None, ge=0)
    cost: float | None = Field(default=None, ge=0)
    category: str | None = None
    is_active: bool | None = None


class ProductResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None = None
    sku: str | None = None
    price: float
    cost: float | None = None
    category: str | None = None
    is_active: bool

    model_config = {"from_attributes": True}


class DealProductAdd(BaseModel):
    product_id: uuid.UUID
    quantity: int | None = Field(default=None, ge=1)
    unit_price: float | None = Field(default=None, ge=0)
    discount: float | None = Field(default=None, ge=0)


class DealProductUpdate(BaseModel):
    quantity: int | None = Field(default=None, ge=1)
    unit_price: float | None = Field(default=None, ge=0)
    discount: float | None = Field(default=None, ge=0)


class DealProductResponse(BaseModel):
    id: uuid.UUID
    deal_id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    unit_price: float
    discount: float
    total: float
    product: ProductResponse

    model_config = {"from_attributes": True}
