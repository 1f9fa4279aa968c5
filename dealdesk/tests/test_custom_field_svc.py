"""Test custom field definitions and entity values."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.errors import ConflictError
from dealdesk.models import CustomFieldEntity, CustomFieldType
from dealdesk.services import custom_field_svc, organization_svc


@pytest.mark.asyncio
async def test_create_fields_assigns_positions(db: AsyncSession, org):
    budget = await custom_field_svc.create_field(
        db, org.id, CustomFieldEntity.DEAL, "budget", "Budget", CustomFieldType.NUMBER
    )
    region = await custom_field_svc.create_field(
        db, org.id, "DEAL", "region", "Region", "SELECT", options=["EU", "US"]
    )
    source = await custom_field_svc.create_field(db, org.id, "LEAD", "channel", "Channel", "TEXT")

    assert (budget.position, region.position, source.position) == (0, 1, 0)
    assert region.options == ["EU", "US"]
    assert [f.name for f in await custom_field_svc.list_fields(db, org.id, "DEAL")] == [
        "budget",
        "region",
    ]
    assert len(await custom_field_svc.list_fields(db, org.id)) == 3


@pytest.mark.asyncio
async def test_field_name_unique_per_entity(db: AsyncSession, org):
    await custom_field_svc.create_field(db, org.id, "DEAL", "budget", "Budget", "NUMBER")
    await custom_field_svc.create_field(db, org.id, "LEAD", "budget", "Budget", "NUMBER")

    with pytest.raises(ConflictError):
        await custom_field_svc.create_field(db, org.id, "DEAL", "budget", "Again", "TEXT")


@pytest.mark.asyncio
async def test_update_field(db: AsyncSession, org):
    field = await custom_field_svc.create_field(db, org.id, "DEAL", "budget", "Budget", "TEXT")
    updated = await custom_field_svc.update_field(
        db, org.id, field.id, label="Budget (EUR)", type="NUMBER", is_required=True
    )
    assert updated.label == "Budget (EUR)"
    assert updated.type == "NUMBER"
    assert updated.is_required


@pytest.mark.asyncio
async def test_set_values_upserts(db: AsyncSession, org):
    budget = await custom_field_svc.create_field(db, org.id, "DEAL", "budget", "Budget", "NUMBER")
    region = await custom_field_svc.create_field(db, org.id, "DEAL", "region", "Region", "TEXT")
    entity_id = uuid.uuid4()

    rows = await custom_field_svc.set_values(
        db, org.id, entity_id, [(budget.id, "1000"), (region.id, "EU")]
    )
    assert [(field.name, value.value) for value, field in rows] == [
        ("budget", "1000"),
        ("region", "EU"),
    ]

    rows = await custom_field_svc.set_values(db, org.id, entity_id, [(budget.id, "2500")])
    assert {field.name: value.value for value, field in rows} == {
        "budget": "2500",
        "region": "EU",
    }


@pytest.mark.asyncio
async def test_set_values_is_idempotent(db: AsyncSession, org):
    budget = await custom_field_svc.create_field(db, org.id, "DEAL", "budget", "Budget", "NUMBER")
    entity_id = uuid.uuid4()

    first = await custom_field_svc.set_values(db, org.id, entity_id, [(budget.id, "42")])
    second = await custom_field_svc.set_values(db, org.id, entity_id, [(budget.id, "42")])

    assert len(first) == len(second) == 1
    assert first[0][0].id == second[0][0].id
    assert second[0][0].value == "42"


@pytest.mark.asyncio
async def test_set_values_skips_foreign_fields(db: AsyncSession, org, make_member):
    stranger = await make_member(email="stranger@example.com")
    other_org = await organization_svc.create_organization(db, stranger.user_id, "Umbrella")
    foreign = await custom_field_svc.create_field(
        db, other_org.id, "DEAL", "secret", "Secret", "TEXT"
    )
    mine = await custom_field_svc.create_field(db, org.id, "DEAL", "budget", "Budget", "NUMBER")
    entity_id = uuid.uuid4()

    rows = await custom_field_svc.set_values(
        db, org.id, entity_id, [(foreign.id, "leak"), (mine.id, "10")]
    )

    assert [(field.name, value.value) for value, field in rows] == [("budget", "10")]
    assert await custom_field_svc.get_values(db, other_org.id, entity_id) == []


@pytest.mark.asyncio
async def test_deleting_field_drops_values(db: AsyncSession, org):
    field = await custom_field_svc.create_field(db, org.id, "LEAD", "channel", "Channel", "TEXT")
    entity_id = uuid.uuid4()
    await custom_field_svc.set_values(db, org.id, entity_id, [(field.id, "referral")])

    await custom_field_svc.delete_field(db, org.id, field.id)

    assert await custom_field_svc.get_values(db, org.id, entity_id) == []
