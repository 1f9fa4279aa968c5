"""Product catalogue endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.common import Deleted
from ..schemas.product import ProductCreate, ProductResponse, ProductUpdate
from ..services import product_svc
from ..tenant.context import TenantContext
from ..tenant.guards import ADMINS, MANAGERS, guarded, require_roles

router = APIRouter(prefix="/api")


@router.get("/products", response_model=list[ProductResponse])
async def list_products(
    category: str | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await product_svc.list_products(
        db, ctx.organization_id, category=category, is_active=is_active, search=search
    )


@router.post("/products", response_model=ProductResponse, status_code=201)
async def create_product(
    data: ProductCreate,
    ctx: TenantContext = Depends(guarded(require_roles(*MANAGERS))),
    db: AsyncSession = Depends(get_db),
):
    return await product_svc.create_product(db, ctx.organization_id, **data.model_dump())


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded()),
    db: AsyncSession = Depends(get_db),
):
    return await product_svc.get_product(db, ctx.organization_id, product_id)


@router.patch("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: uuid.UUID,
    data: ProductUpdate,
    ctx: TenantContext = Depends(guarded(require_roles(*MANAGERS))),
    db: AsyncSession = Depends(get_db),
):
    return await product_svc.update_product(
        db, ctx.organization_id, product_id, **data.model_dump(exclude_unset=True)
    )


@router.delete("/products/{product_id}", response_model=Deleted)
async def delete_product(
    product_id: uuid.UUID,
    ctx: TenantContext = Depends(guarded(require_roles(*ADMINS))),
    db: AsyncSession = Depends(get_db),
):
    await product_svc.delete_product(db, ctx.organization_id, product_id)
    return Deleted()
