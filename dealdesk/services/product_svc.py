"""Product catalogue and deal line items."""

from __future__ import annotations

import uuid

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..errors import ConflictError, NotFoundError
from ..models.deal import Deal
from ..models.product import DealProduct, Product
from ..schemas.events import ProductAddedPayload
from . import deal_events


# ── Catalogue ──────────────────────────────────────────────────────────────

async def _check_sku(
    db: AsyncSession, organization_id: uuid.UUID, sku: str, exclude_id: uuid.UUID | None = None
) -> None:
    stmt = select(Product.id).where(Product.organization_id == organization_id, Product.sku == sku)
    if exclude_id is not None:
        stmt = stmt.where(Product.id != exclude_id)
    if (await db.execute(stmt)).scalar_one_or_none():
        raise ConflictError("SKU already exists")


async def list_products(
    db: AsyncSession,
    organization_id: uuid.UUID,
    category: str | None = None,
    is_active: bool | None = None,
    search: str | None = None,
) -> list[Product]:
    stmt = select(Product).where(Product.organization_id == organization_id)
    if category:
        stmt = stmt.where(Product.category == category)
    if is_active is not None:
        stmt = stmt.where(Product.is_active.is_(is_active))
    if search:
        pattern = f"%{search.lower()}%"
        stmt = stmt.where(
            or_(func.lower(Product.name).like(pattern), func.lower(Product.sku).like(pattern))
        )
    result = await db.execute(stmt.order_by(Product.name))
    return list(result.scalars().all())


async def get_product(
    db: AsyncSession, organization_id: uuid.UUID, product_id: uuid.UUID
) -> Product:
    stmt = select(Product).where(
        Product.id == product_id, Product.organization_id == organization_id
    )
    product = (await db.execute(stmt)).scalar_one_or_none()
    if not product:
        raise NotFoundError("Product not found")
    return product


async def create_product(db: AsyncSession, organization_id: uuid.UUID, **kwargs) -> Product:
    if kwargs.get("sku"):
        await _check_sku(db, organization_id, kwargs["sku"])
    product = Product(organization_id=organization_id, **kwargs)
    db.add(product)
    await db.commit()
    await db.refresh(product)
    return product


async def update_product(
    db: AsyncSession, organization_id: uuid.UUID, product_id: uuid.UUID, **kwargs
) -> Product:
    product = await get_product(db, organization_id, product_id)
    if kwargs.get("sku") and kwargs["sku"] != product.sku:
        await _check_sku(db, organization_id, kwargs["sku"], exclude_id=product.id)
    for key, value in kwargs.items():
        if value is None and key in ("name", "price", "is_active"):
            continue
        setattr(product, key, value)
    await db.commit()
    await db.refresh(product)
    return product


async def delete_product(db: AsyncSession, organization_id: uuid.UUID, product_id: uuid.UUID) -> None:
    """Delete a product. Deals that carried it as a line item are re-totalled."""
    product = await get_product(db, organization_id, product_id)
    affected = (
        await db.execute(select(DealProduct.deal_id).where(DealProduct.product_id == product.id))
    ).scalars().all()

    await db.delete(product)
    await db.flush()
    for deal_id in affected:
        await _recompute_value(db, deal_id)
    await db.commit()


# ── Line items ─────────────────────────────────────────────────────────────

def line_total(quantity: int, unit_price: float, discount: float) -> float:
    return quantity * unit_price - discount


async def _lock_deal(db: AsyncSession, organization_id: uuid.UUID, deal_id: uuid.UUID) -> Deal:
    """Load the deal row FOR UPDATE so concurrent line-item writes serialise on it."""
    stmt = (
        select(Deal)
        .where(Deal.id == deal_id, Deal.organization_id == organization_id)
        .with_for_update()
    )
    deal = (await db.execute(stmt)).scalar_one_or_none()
    if not deal:
        raise NotFoundError("Deal not found")
    return deal


async def _recompute_value(db: AsyncSession, deal_id: uuid.UUID) -> float:
    """Set Deal.value to the sum of its line items, read after the caller's flush."""
    total = (
        await db.execute(
            select(func.coalesce(func.sum(DealProduct.total), 0.0)).where(
                DealProduct.deal_id == deal_id
            )
        )
    ).scalar_one()
    deal = await db.get(Deal, deal_id)
    deal.value = float(total)
    return deal.value


async def _get_line(db: AsyncSession, deal_id: uuid.UUID, line_id: uuid.UUID) -> DealProduct:
    stmt = (
        select(DealProduct)
        .where(DealProduct.id == line_id, DealProduct.deal_id == deal_id)
        .options(selectinload(DealProduct.product))
        .execution_options(populate_existing=True)
    )
    line = (await db.execute(stmt)).scalar_one_or_none()
    if not line:
        raise NotFoundError("Deal product not found")
    return line


async def list_deal_products(
    db: AsyncSession, organization_id: uuid.UUID, deal_id: uuid.UUID
) -> list[DealProduct]:
    stmt = select(Deal.id).where(Deal.id == deal_id, Deal.organization_id == organization_id)
    if not (await db.execute(stmt)).scalar_one_or_none():
        raise NotFoundError("Deal not found")

    stmt = (
        select(DealProduct)
        .where(DealProduct.deal_id == deal_id)
        .options(selectinload(DealProduct.product))
        .order_by(DealProduct.created_at)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def add_deal_product(
    db: AsyncSession,
    organization_id: uuid.UUID,
    deal_id: uuid.UUID,
    product_id: uuid.UUID,
    quantity: int | None = None,
    unit_price: float | None = None,
    discount: float | None = None,
    actor_id: uuid.UUID | None = None,
) -> DealProduct:
    deal = await _lock_deal(db, organization_id, deal_id)
    product = await get_product(db, organization_id, product_id)

    stmt = select(DealProduct.id).where(
        DealProduct.deal_id == deal.id, DealProduct.product_id == product.id
    )
    if (await db.execute(stmt)).scalar_one_or_none():
        raise ConflictError("Product already added to this deal")

    quantity = quantity if quantity is not None else 1
    unit_price = unit_price if unit_price is not None else product.price
    discount = discount if discount is not None else 0.0

    line = DealProduct(
        deal_id=deal.id,
        product_id=product.id,
        quantity=quantity,
        unit_price=unit_price,
        discount=discount,
        total=line_total(quantity, unit_price, discount),
    )
    db.add(line)
    await db.flush()
    await _recompute_value(db, deal.id)
    deal_events.append_event(
        db,
        deal.id,
        ProductAddedPayload(product_id=product.id, product_name=product.name),
        actor_id,
    )
    await db.commit()
    return await _get_line(db, deal.id, line.id)


async def update_deal_product(
    db: AsyncSession,
    organization_id: uuid.UUID,
    deal_id: uuid.UUID,
    line_id: uuid.UUID,
    quantity: int | None = None,
    unit_price: float | None = None,
    discount: float | None = None,
) -> DealProduct:
    deal = await _lock_deal(db, organization_id, deal_id)
    line = await _get_line(db, deal.id, line_id)

    if quantity is not None:
        line.quantity = quantity
    if unit_price is not None:
        line.unit_price = unit_price
    if discount is not None:
        line.discount = discount
    line.total = line_total(line.quantity, line.unit_price, line.discount)

    await db.flush()
    await _recompute_value(db, deal.id)
    await db.commit()
    return await _get_line(db, deal.id, line.id)


async def remove_deal_product(
    db: AsyncSession, organization_id: uuid.UUID, deal_id: uuid.UUID, line_id: uuid.UUID
) -> float:
    """Remove a line item and return the deal's recomputed value."""
    deal = await _lock_deal(db, organization_id, deal_id)
    line = await _get_line(db, deal.id, line_id)

    await db.delete(line)
    await db.flush()
    value = await _recompute_value(db, deal.id)
    await db.commit()
    return value
