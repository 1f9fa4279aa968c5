"""Test deal engine: placement, stage moves, events and projections."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.errors import BadRequestError, NotFoundError
from dealdesk.models import DealEventType, Role
from dealdesk.schemas.events import LostPayload, parse_payload
from dealdesk.services import deal_svc, lost_reason_svc, organization_svc, pipeline_svc, product_svc


def _stage(pipeline, name: str):
    return next(s for s in pipeline.stages if s.name == name)


@pytest.mark.asyncio
async def test_create_deal_uses_default_pipeline_first_stage(
    db: AsyncSession, org, pipeline, lead, ctx
):
    deal = await deal_svc.create_deal(db, org.id, lead.id, actor_id=ctx.member_id)

    assert deal.pipeline_id == pipeline.id
    assert deal.stage_id == _stage(pipeline, "Qualification").id
    assert deal.title == "Deal - Jane Roe"
    assert deal.probability == 50
    assert deal.value == 0
    assert deal.closed_at is None
    assert deal.stage_entered_at is not None

    events = await deal_svc.get_history(db, org.id, deal.id)
    assert [e.type for e in events] == [DealEventType.CREATED.value]


@pytest.mark.asyncio
async def test_create_deal_without_actor_records_no_event(db: AsyncSession, org, pipeline, lead):
    deal = await deal_svc.create_deal(db, org.id, lead.id, title="Quiet")
    assert await deal_svc.get_history(db, org.id, deal.id) == []


@pytest.mark.asyncio
async def test_create_deal_without_any_pipeline(db: AsyncSession, org, lead):
    deal = await deal_svc.create_deal(db, org.id, lead.id, title="Floating")
    assert deal.pipeline_id is None
    assert deal.stage_id is None


@pytest.mark.asyncio
async def test_create_deal_derives_pipeline_from_stage(db: AsyncSession, org, lead):
    await organization_svc.change_plan(db, org.id, "enterprise")
    await pipeline_svc.create_pipeline(db, org.id, "Main", is_default=True)
    other = await pipeline_svc.create_pipeline(db, org.id, "Partners")
    stage = _stage(other, "Proposal")

    deal = await deal_svc.create_deal(db, org.id, lead.id, stage_id=stage.id)
    assert deal.pipeline_id == other.id
    assert deal.stage_id == stage.id


@pytest.mark.asyncio
async def test_create_deal_rejects_stage_from_other_pipeline(db: AsyncSession, org, lead):
    await organization_svc.change_plan(db, org.id, "enterprise")
    main = await pipeline_svc.create_pipeline(db, org.id, "Main", is_default=True)
    other = await pipeline_svc.create_pipeline(db, org.id, "Partners")

    with pytest.raises(BadRequestError):
        await deal_svc.create_deal(
            db, org.id, lead.id, pipeline_id=main.id, stage_id=other.stages[0].id
        )


@pytest.mark.asyncio
async def test_create_deal_rejects_inactive_assignee(db: AsyncSession, org, pipeline, lead):
    with pytest.raises(BadRequestError):
        await deal_svc.create_deal(db, org.id, lead.id, assigned_to_id=uuid.uuid4())


@pytest.mark.asyncio
async def test_move_to_won_closes_deal(db: AsyncSession, org, pipeline, lead, ctx):
    deal = await deal_svc.create_deal(db, org.id, lead.id)
    won = _stage(pipeline, "Won")

    moved = await deal_svc.move_deal(db, org.id, deal.id, won.id, actor_id=ctx.member_id)

    assert moved.stage_id == won.id
    assert moved.closed_at is not None
    assert moved.lost_reason_id is None
    events = await deal_svc.get_history(db, org.id, deal.id)
    assert [e.type for e in events] == ["WON"]
    assert events[0].member_id == ctx.member_id


@pytest.mark.asyncio
async def test_move_to_lost_records_reason(db: AsyncSession, org, pipeline, lead):
    deal = await deal_svc.create_deal(db, org.id, lead.id)
    origin = deal.stage_id
    lost = _stage(pipeline, "Lost")
    reason = await lost_reason_svc.create_lost_reason(db, org.id, "Too expensive")

    moved = await deal_svc.move_deal(db, org.id, deal.id, lost.id, lost_reason_id=reason.id)

    assert moved.closed_at is not None
    assert moved.lost_reason_id == reason.id
    assert moved.lost_reason.name == "Too expensive"

    events = await deal_svc.get_history(db, org.id, deal.id)
    assert len(events) == 1
    payload = parse_payload(events[0].payload)
    assert isinstance(payload, LostPayload)
    assert payload.from_stage_id == origin
    assert payload.to_stage_id == lost.id
    assert payload.lost_reason_id == reason.id


@pytest.mark.asyncio
async def test_reopening_clears_closed_state(db: AsyncSession, org, pipeline, lead):
    deal = await deal_svc.create_deal(db, org.id, lead.id)
    reason = await lost_reason_svc.create_lost_reason(db, org.id, "No budget")
    await deal_svc.move_deal(
        db, org.id, deal.id, _stage(pipeline, "Lost").id, lost_reason_id=reason.id
    )

    reopened = await deal_svc.move_deal(db, org.id, deal.id, _stage(pipeline, "Proposal").id)

    assert reopened.closed_at is None
    assert reopened.lost_reason_id is None
    types = [e.type for e in await deal_svc.get_history(db, org.id, deal.id)]
    assert sorted(types) == ["LOST", "STAGE_CHANGED"]


@pytest.mark.asyncio
async def test_won_move_clears_lost_reason(db: AsyncSession, org, pipeline, lead):
    deal = await deal_svc.create_deal(db, org.id, lead.id)
    reason = await lost_reason_svc.create_lost_reason(db, org.id, "Timing")
    await deal_svc.move_deal(
        db, org.id, deal.id, _stage(pipeline, "Lost").id, lost_reason_id=reason.id
    )

    won = await deal_svc.move_deal(db, org.id, deal.id, _stage(pipeline, "Won").id)
    assert won.lost_reason_id is None
    assert won.closed_at is not None


@pytest.mark.asyncio
async def test_move_rejects_foreign_lost_reason(db: AsyncSession, org, pipeline, lead):
    deal = await deal_svc.create_deal(db, org.id, lead.id)

    with pytest.raises(BadRequestError):
        await deal_svc.move_deal(
            db, org.id, deal.id, _stage(pipeline, "Lost").id, lost_reason_id=uuid.uuid4()
        )
    assert await deal_svc.get_history(db, org.id, deal.id) == []


@pytest.mark.asyncio
async def test_move_to_unknown_stage(db: AsyncSession, org, pipeline, lead):
    deal = await deal_svc.create_deal(db, org.id, lead.id)
    with pytest.raises(NotFoundError):
        await deal_svc.move_deal(db, org.id, deal.id, uuid.uuid4())


@pytest.mark.asyncio
async def test_assign_deal(db: AsyncSession, org, pipeline, lead, ctx, make_member):
    deal = await deal_svc.create_deal(db, org.id, lead.id)
    rep = await make_member(Role.MEMBER)

    assigned = await deal_svc.assign_deal(
        db, org.id, deal.id, rep.member_id, actor_id=ctx.member_id
    )
    assert assigned.assigned_to_id == rep.member_id
    assert assigned.assigned_to.user.name == "Teammate"

    events = await deal_svc.get_history(db, org.id, deal.id)
    assert events[0].type == "ASSIGNED"
    assert events[0].payload["assigned_to_id"] == str(rep.member_id)


@pytest.mark.asyncio
async def test_list_deals_filters_and_pages(db: AsyncSession, org, pipeline, lead):
    for i in range(3):
        await deal_svc.create_deal(db, org.id, lead.id, title=f"Deal {i}", value=100.0 * (i + 1))

    items, total = await deal_svc.list_deals(
        db, org.id, deal_svc.DealFilters(min_value=150, sort_by="value", sort_order="asc")
    )
    assert total == 2
    assert [d.value for d in items] == [200.0, 300.0]

    items, total = await deal_svc.list_deals(db, org.id, deal_svc.DealFilters(limit=2, page=2))
    assert total == 3
    assert len(items) == 1

    items, total = await deal_svc.list_deals(db, org.id, deal_svc.DealFilters(search="jane"))
    assert total == 3


@pytest.mark.asyncio
async def test_board_groups_deals_by_stage(db: AsyncSession, org, pipeline, lead):
    first = await deal_svc.create_deal(db, org.id, lead.id, title="A")
    second = await deal_svc.create_deal(db, org.id, lead.id, title="B")
    await deal_svc.move_deal(db, org.id, second.id, _stage(pipeline, "Won").id)

    board_pipeline, columns = await deal_svc.get_board(db, org.id, pipeline.id)
    by_name = {stage.name: [d.id for d in deals] for stage, deals in columns}

    assert board_pipeline.id == pipeline.id
    assert [stage.name for stage, _ in columns][0] == "Qualification"
    assert by_name["Qualification"] == [first.id]
    assert by_name["Won"] == [second.id]


@pytest.mark.asyncio
async def test_stats(db: AsyncSession, org, pipeline, lead):
    first = await deal_svc.create_deal(db, org.id, lead.id, value=100.0)
    await deal_svc.create_deal(db, org.id, lead.id, value=300.0)
    await deal_svc.move_deal(db, org.id, first.id, _stage(pipeline, "Won").id)

    stats = await deal_svc.get_stats(db, org.id)
    assert stats["total"] == 2
    assert stats["recent_deals"] == 2
    assert stats["total_value"] == 400.0
    assert stats["won_value"] == 100.0
    assert stats["avg_deal_value"] == 200.0
    assert sum(bucket["count"] for bucket in stats["by_stage"]) == 2


@pytest.mark.asyncio
async def test_forecast(db: AsyncSession, org, pipeline, lead):
    today = datetime.now(timezone.utc).date()
    won = await deal_svc.create_deal(db, org.id, lead.id, value=500.0)
    lost = await deal_svc.create_deal(db, org.id, lead.id, value=50.0)
    await deal_svc.create_deal(db, org.id, lead.id, value=200.0, expected_close_date=today)
    await deal_svc.create_deal(
        db, org.id, lead.id, value=70.0, expected_close_date=today + timedelta(days=400)
    )
    await deal_svc.move_deal(db, org.id, won.id, _stage(pipeline, "Won").id)
    await deal_svc.move_deal(db, org.id, lost.id, _stage(pipeline, "Lost").id)

    forecast = await deal_svc.get_forecast(db, org.id, today=today)

    assert forecast["open_deals"] == {"count": 2, "value": 270.0}
    assert forecast["monthly_forecast"] == {"count": 1, "value": 200.0}
    assert forecast["quarterly_forecast"]["count"] == 1
    assert forecast["won_this_month"] == {"count": 1, "value": 500.0}
    assert forecast["lost_this_month"] == {"count": 1}
    assert forecast["win_rate"] == 50


def test_win_rate():
    assert deal_svc.win_rate(0, 0) == 0
    assert deal_svc.win_rate(1, 2) == 33
    assert deal_svc.win_rate(2, 1) == 67
    assert deal_svc.win_rate(3, 0) == 100


def test_quarter_window():
    assert deal_svc._quarter_window(date(2026, 2, 14)) == (date(2026, 1, 1), date(2026, 4, 1))
    assert deal_svc._quarter_window(date(2026, 11, 3)) == (date(2026, 10, 1), date(2027, 1, 1))
    assert deal_svc._month_window(date(2026, 12, 31)) == (date(2026, 12, 1), date(2027, 1, 1))


@pytest.mark.asyncio
async def test_deal_is_scoped_to_organization(db: AsyncSession, org, pipeline, lead, make_member):
    deal = await deal_svc.create_deal(db, org.id, lead.id)
    stranger = await make_member(email="stranger@example.com")
    other_org = await organization_svc.create_organization(db, stranger.user_id, "Initech")

    with pytest.raises(NotFoundError):
        await deal_svc.get_deal(db, other_org.id, deal.id)
    with pytest.raises(NotFoundError):
        await deal_svc.move_deal(db, other_org.id, deal.id, pipeline.stages[1].id)


@pytest.mark.asyncio
async def test_deal_lookup_keeps_pipeline_stages_loaded(db: AsyncSession, org, pipeline, lead):
    deal = await deal_svc.create_deal(db, org.id, lead.id)

    fetched = await deal_svc.get_deal(db, org.id, deal.id)

    assert [s.name for s in fetched.pipeline.stages][0] == "Qualification"
    assert _stage(pipeline, "Won").is_won


@pytest.mark.asyncio
async def test_value_is_read_only_with_line_items(db: AsyncSession, org, pipeline, lead):
    deal = await deal_svc.create_deal(db, org.id, lead.id, value=10.0)
    updated = await deal_svc.update_deal(db, org.id, deal.id, value=75.0)
    assert updated.value == 75.0

    product = await product_svc.create_product(db, org.id, name="Seat", price=100.0)
    await product_svc.add_deal_product(db, org.id, deal.id, product.id, quantity=3, discount=50.0)

    with pytest.raises(BadRequestError, match="line items"):
        await deal_svc.update_deal(db, org.id, deal.id, value=999.0)

    reloaded = await deal_svc.update_deal(db, org.id, deal.id, title="Seats")
    assert reloaded.title == "Seats"
    assert reloaded.value == 250.0


@pytest.mark.asyncio
async def test_update_skips_null_for_required_fields(db: AsyncSession, org, pipeline, lead):
    deal = await deal_svc.create_deal(
        db, org.id, lead.id, title="Keep me", value=40.0, notes="call back"
    )

    updated = await deal_svc.update_deal(
        db, org.id, deal.id, title=None, value=None, probability=None, notes=None
    )

    assert updated.title == "Keep me"
    assert updated.value == 40.0
    assert updated.probability == 50
    assert updated.notes is None
