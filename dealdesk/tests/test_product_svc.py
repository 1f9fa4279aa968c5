"""Test product catalogue and deal line items."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.errors import ConflictError, NotFoundError
from dealdesk.services import deal_svc, product_svc


@pytest.mark.asyncio
async def test_create_product_and_sku_uniqueness(db: AsyncSession, org):
    product = await product_svc.create_product(db, org.id, name="Seat", sku="SEAT-1", price=100.0)
    assert product.is_active

    with pytest.raises(ConflictError, match="SKU already exists"):
        await product_svc.create_product(db, org.id, name="Seat copy", sku="SEAT-1", price=90.0)

    other = await product_svc.create_product(db, org.id, name="Setup", sku="SETUP", price=10.0)
    with pytest.raises(ConflictError):
        await product_svc.update_product(db, org.id, other.id, sku="SEAT-1")


@pytest.mark.asyncio
async def test_list_products_filters(db: AsyncSession, org):
    await product_svc.create_product(db, org.id, name="Seat", price=100.0, category="licence")
    await product_svc.create_product(
        db, org.id, name="Legacy seat", price=50.0, category="licence", is_active=False
    )
    await product_svc.create_product(db, org.id, name="Onboarding", price=900.0, category="service")

    assert len(await product_svc.list_products(db, org.id, category="licence")) == 2
    assert len(await product_svc.list_products(db, org.id, is_active=True)) == 2
    assert [p.name for p in await product_svc.list_products(db, org.id, search="seat")] == [
        "Legacy seat",
        "Seat",
    ]


def test_line_total():
    assert product_svc.line_total(3, 100.0, 50.0) == 250.0
    assert product_svc.line_total(1, 10.0, 0.0) == 10.0


@pytest.mark.asyncio
async def test_line_item_sets_deal_value(db: AsyncSession, org, pipeline, lead, ctx):
    deal = await deal_svc.create_deal(db, org.id, lead.id, value=999.0)
    product = await product_svc.create_product(db, org.id, name="Seat", price=100.0)

    line = await product_svc.add_deal_product(
        db, org.id, deal.id, product.id, quantity=3, discount=50.0, actor_id=ctx.member_id
    )

    assert line.unit_price == 100.0
    assert line.total == 250.0
    assert line.product.name == "Seat"
    reloaded = await deal_svc.get_deal(db, org.id, deal.id)
    assert reloaded.value == 250.0

    events = await deal_svc.get_history(db, org.id, deal.id)
    assert events[0].type == "PRODUCT_ADDED"
    assert events[0].payload["product_name"] == "Seat"


@pytest.mark.asyncio
async def test_deal_value_tracks_line_item_sum(db: AsyncSession, org, pipeline, lead):
    deal = await deal_svc.create_deal(db, org.id, lead.id)
    seat = await product_svc.create_product(db, org.id, name="Seat", price=100.0)
    setup = await product_svc.create_product(db, org.id, name="Setup", price=40.0)

    seat_line = await product_svc.add_deal_product(db, org.id, deal.id, seat.id, quantity=2)
    setup_line = await product_svc.add_deal_product(db, org.id, deal.id, setup.id, unit_price=30.0)
    assert (await deal_svc.get_deal(db, org.id, deal.id)).value == 230.0

    updated = await product_svc.update_deal_product(
        db, org.id, deal.id, seat_line.id, quantity=5, discount=100.0
    )
    assert updated.total == 400.0
    assert (await deal_svc.get_deal(db, org.id, deal.id)).value == 430.0

    value = await product_svc.remove_deal_product(db, org.id, deal.id, setup_line.id)
    assert value == 400.0

    value = await product_svc.remove_deal_product(db, org.id, deal.id, seat_line.id)
    assert value == 0.0
    assert (await deal_svc.get_deal(db, org.id, deal.id)).value == 0.0
    assert await product_svc.list_deal_products(db, org.id, deal.id) == []


@pytest.mark.asyncio
async def test_same_product_twice_conflicts(db: AsyncSession, org, pipeline, lead):
    deal = await deal_svc.create_deal(db, org.id, lead.id)
    product = await product_svc.create_product(db, org.id, name="Seat", price=100.0)
    await product_svc.add_deal_product(db, org.id, deal.id, product.id)

    with pytest.raises(ConflictError):
        await product_svc.add_deal_product(db, org.id, deal.id, product.id)


@pytest.mark.asyncio
async def test_deleting_product_retotals_deals(db: AsyncSession, org, pipeline, lead):
    deal = await deal_svc.create_deal(db, org.id, lead.id)
    seat = await product_svc.create_product(db, org.id, name="Seat", price=100.0)
    setup = await product_svc.create_product(db, org.id, name="Setup", price=40.0)
    await product_svc.add_deal_product(db, org.id, deal.id, seat.id)
    await product_svc.add_deal_product(db, org.id, deal.id, setup.id)

    await product_svc.delete_product(db, org.id, seat.id)

    assert (await deal_svc.get_deal(db, org.id, deal.id)).value == 40.0
    with pytest.raises(NotFoundError):
        await product_svc.get_product(db, org.id, seat.id)


@pytest.mark.asyncio
async def test_line_items_on_unknown_deal(db: AsyncSession, org):
    product = await product_svc.create_product(db, org.id, name="Seat", price=100.0)
    with pytest.raises(NotFoundError):
        await product_svc.add_deal_product(db, org.id, uuid.uuid4(), product.id)
    with pytest.raises(NotFoundError):
        await product_svc.list_deal_products(db, org.id, uuid.uuid4())


@pytest.mark.asyncio
async def test_update_product_keeps_required_fields_on_null(db: AsyncSession, org):
    product = await product_svc.create_product(db, org.id, name="Seat", price=100.0, category="x")

    updated = await product_svc.update_product(
        db, org.id, product.id, name=None, price=None, is_active=None, category=None
    )

    assert (updated.name, updated.price, updated.is_active) == ("Seat", 100.0, True)
    assert updated.category is None
