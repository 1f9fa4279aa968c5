"""Test plan quotas and usage reporting."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.errors import LimitExceededError
from dealdesk.models import UNLIMITED, OrganizationMember
from dealdesk.services import (
    automation_svc,
    contact_svc,
    deal_svc,
    limit_svc,
    organization_svc,
    pipeline_svc,
    plan_svc,
)
from dealdesk.services.limit_svc import ResourceKind


async def _use_plan(db: AsyncSession, org, name: str, **quotas):
    fields = {
        "display_name": name.title(),
        "max_users": UNLIMITED,
        "max_deals": UNLIMITED,
        "max_pipelines": UNLIMITED,
        "max_contacts": UNLIMITED,
        "max_automations": UNLIMITED,
        "features": ["basic_crm"],
    }
    fields.update(quotas)
    await plan_svc.upsert_plan(db, name, **fields)
    await organization_svc.change_plan(db, org.id, name)


@pytest.mark.asyncio
async def test_default_plans_are_seeded(db: AsyncSession):
    plans = {p.name: p for p in await plan_svc.list_plans(db)}
    assert set(plans) == {"start", "pro", "enterprise"}
    assert plans["start"].max_pipelines == 1
    assert plans["pro"].has_feature("automation")
    assert not plans["start"].has_feature("automation")


@pytest.mark.asyncio
async def test_ensure_default_plans_keeps_existing_rows(db: AsyncSession):
    await plan_svc.upsert_plan(db, "start", display_name="Start", max_deals=3)
    await plan_svc.ensure_default_plans(db)
    plan = await plan_svc.get_plan_by_name(db, "start")
    assert plan.max_deals == 3


@pytest.mark.asyncio
async def test_check_limit_below_quota_passes(db: AsyncSession, org):
    await _use_plan(db, org, "two-contacts", max_contacts=2)
    await contact_svc.create_contact(db, org.id, name="First")

    await limit_svc.check_limit(db, org.id, ResourceKind.CONTACTS)


@pytest.mark.asyncio
async def test_check_limit_at_quota_raises(db: AsyncSession, org):
    await _use_plan(db, org, "two-contacts", max_contacts=2)
    await contact_svc.create_contact(db, org.id, name="First")
    await contact_svc.create_contact(db, org.id, name="Second")

    with pytest.raises(LimitExceededError) as exc_info:
        await limit_svc.check_limit(db, org.id, ResourceKind.CONTACTS)
    assert exc_info.value.message == "Limit reached for resource: contacts"
    assert exc_info.value.status_code == 400
    assert exc_info.value.usage == 2
    assert exc_info.value.limit == 2


@pytest.mark.asyncio
async def test_unlimited_quota_never_raises(db: AsyncSession, org):
    await _use_plan(db, org, "unlimited")
    for i in range(5):
        await contact_svc.create_contact(db, org.id, name=f"Contact {i}")

    await limit_svc.check_limit(db, org.id, "contacts")


@pytest.mark.asyncio
async def test_users_count_only_active_members(db: AsyncSession, org, make_member):
    await _use_plan(db, org, "two-users", max_users=2)
    extra = await make_member()
    assert await limit_svc.count_usage(db, org.id, ResourceKind.USERS) == 2

    member = await db.get(OrganizationMember, extra.member_id)
    member.is_active = False
    await db.commit()

    assert await limit_svc.count_usage(db, org.id, ResourceKind.USERS) == 1
    await limit_svc.check_limit(db, org.id, ResourceKind.USERS)


@pytest.mark.asyncio
async def test_second_deal_rejected_on_one_deal_plan(db: AsyncSession, org, pipeline, lead):
    await _use_plan(db, org, "one-deal", max_deals=1)
    await deal_svc.create_deal(db, org.id, lead.id, title="First")

    with pytest.raises(LimitExceededError, match="deals"):
        await deal_svc.create_deal(db, org.id, lead.id, title="Second")

    _, total = await deal_svc.list_deals(db, org.id)
    assert total == 1


@pytest.mark.asyncio
async def test_pipeline_quota_on_start_plan(db: AsyncSession, org, pipeline):
    with pytest.raises(LimitExceededError, match="pipelines"):
        await pipeline_svc.create_pipeline(db, org.id, "Second")


@pytest.mark.asyncio
async def test_automation_quota(db: AsyncSession, org):
    await _use_plan(db, org, "one-automation", max_automations=1)
    await automation_svc.create_automation(db, org.id, name="Welcome", trigger="lead.created")

    with pytest.raises(LimitExceededError, match="automations"):
        await automation_svc.create_automation(db, org.id, name="Again", trigger="deal.won")


def test_usage_percentage():
    assert limit_svc.usage_percentage(1, 3) == 33
    assert limit_svc.usage_percentage(1, 2) == 50
    assert limit_svc.usage_percentage(2, 3) == 67
    assert limit_svc.usage_percentage(7, 5) == 100
    assert limit_svc.usage_percentage(4, UNLIMITED) == 0


@pytest.mark.asyncio
async def test_get_usage_reports_every_resource(db: AsyncSession, org, pipeline):
    usage = await limit_svc.get_usage(db, org.id)

    assert set(usage) == {"users", "deals", "pipelines", "contacts", "automations"}
    assert usage["users"] == {"current": 1, "limit": 2, "percentage": 50}
    assert usage["pipelines"] == {"current": 1, "limit": 1, "percentage": 100}
    assert usage["deals"]["current"] == 0
