"""Pipeline and stage registry."""

from __future__ import annotations

import logging
import uuid
from typing import Iterable

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..errors import BadRequestError, ConflictError, NotFoundError
from ..models.deal import Deal
from ..models.organization import OrganizationMember, Role
from ..models.pipeline import Pipeline, PipelineMember, PipelineVisibility, Stage
from ..tenant.context import TenantContext
from . import limit_svc

log = logging.getLogger(__name__)

DEFAULT_PIPELINE_NAME = "Main Pipeline"

DEFAULT_STAGES: list[dict] = [
    {"name": "Qualification", "color": "#6366f1"},
    {"name": "Proposal", "color": "#8b5cf6"},
    {"name": "Negotiation", "color": "#f59e0b"},
    {"name": "Won", "color": "#10b981", "is_won": True},
    {"name": "Lost", "color": "#ef4444", "is_lost": True},
]


def _check_terminal_flags(stages: Iterable[dict]) -> None:
    won = lost = 0
    for stage in stages:
        if stage.get("is_won") and stage.get("is_lost"):
            raise BadRequestError("A stage cannot be both won and lost")
        won += bool(stage.get("is_won"))
        lost += bool(stage.get("is_lost"))
    if won > 1:
        raise ConflictError("A pipeline can only have one won stage")
    if lost > 1:
        raise ConflictError("A pipeline can only have one lost stage")


async def _clear_default(
    db: AsyncSession, organization_id: uuid.UUID, keep_id: uuid.UUID | None = None
) -> None:
    stmt = (
        update(Pipeline)
        .where(Pipeline.organization_id == organization_id, Pipeline.is_default.is_(True))
        .values(is_default=False)
    )
    if keep_id is not None:
        stmt = stmt.where(Pipeline.id != keep_id)
    await db.execute(stmt)


# ── Pipeline CRUD ──────────────────────────────────────────────────────────

async def get_pipeline(
    db: AsyncSession, organization_id: uuid.UUID, pipeline_id: uuid.UUID
) -> Pipeline:
    stmt = (
        select(Pipeline)
        .where(Pipeline.id == pipeline_id, Pipeline.organization_id == organization_id)
        .options(selectinload(Pipeline.stages), selectinload(Pipeline.members))
        .execution_options(populate_existing=True)
    )
    pipeline = (await db.execute(stmt)).scalar_one_or_none()
    if not pipeline:
        raise NotFoundError("Pipeline not found")
    return pipeline


async def list_pipelines(db: AsyncSession, ctx: TenantContext) -> list[Pipeline]:
    """Pipelines visible to the caller, by position.

    Restricted pipelines are listed for their explicit members; owners and
    admins see every pipeline.
    """
    stmt = (
        select(Pipeline)
        .where(Pipeline.organization_id == ctx.organization_id)
        .options(selectinload(Pipeline.stages))
        .order_by(Pipeline.position, Pipeline.created_at)
    )
    if not ctx.has_role(Role.OWNER, Role.ADMIN):
        granted = select(PipelineMember.pipeline_id).where(
            PipelineMember.member_id == ctx.member_id
        )
        stmt = stmt.where(
            or_(
                Pipeline.visibility == PipelineVisibility.PUBLIC.value,
                Pipeline.id.in_(granted),
            )
        )
    result = await db.execute(stmt)
    return list(result.scalars().unique().all())


async def count_deals_by_stage(
    db: AsyncSession, organization_id: uuid.UUID
) -> dict[uuid.UUID, int]:
    stmt = (
        select(Deal.stage_id, func.count(Deal.id))
        .where(Deal.organization_id == organization_id, Deal.stage_id.is_not(None))
        .group_by(Deal.stage_id)
    )
    result = await db.execute(stmt)
    return {stage_id: count for stage_id, count in result.all()}


async def create_pipeline(
    db: AsyncSession,
    organization_id: uuid.UUID,
    name: str,
    is_default: bool = False,
    visibility: PipelineVisibility | str = PipelineVisibility.PUBLIC,
    position: int | None = None,
    stages: list[dict] | None = None,
) -> Pipeline:
    """Create a pipeline seeded with ``stages`` or, when omitted, the default template."""
    await limit_svc.check_limit(db, organization_id, limit_svc.ResourceKind.PIPELINES)

    stage_rows = stages if stages else DEFAULT_STAGES
    _check_terminal_flags(stage_rows)

    if position is None:
        max_pos = (
            await db.execute(
                select(func.max(Pipeline.position)).where(
                    Pipeline.organization_id == organization_id
                )
            )
        ).scalar()
        position = (max_pos + 1) if max_pos is not None else 0

    if is_default:
        await _clear_default(db, organization_id)

    pipeline = Pipeline(
        organization_id=organization_id,
        name=name,
        is_default=is_default,
        visibility=PipelineVisibility(visibility).value,
        position=position,
    )
    for index, row in enumerate(stage_rows):
        pipeline.stages.append(
            Stage(
                name=row["name"],
                color=row.get("color") or "#6366f1",
                position=row["position"] if row.get("position") is not None else index,
                is_won=bool(row.get("is_won")),
                is_lost=bool(row.get("is_lost")),
            )
        )
    db.add(pipeline)
    await db.commit()

    log.info("Created pipeline %r in organization %s", name, organization_id)
    return await get_pipeline(db, organization_id, pipeline.id)


async def update_pipeline(
    db: AsyncSession, organization_id: uuid.UUID, pipeline_id: uuid.UUID, **kwargs
) -> Pipeline:
    pipeline = await get_pipeline(db, organization_id, pipeline_id)

    if kwargs.get("is_default"):
        await _clear_default(db, organization_id, keep_id=pipeline.id)
    if kwargs.get("visibility") is not None:
        kwargs["visibility"] = PipelineVisibility(kwargs["visibility"]).value

    for key in ("name", "is_default", "visibility", "position"):
        if kwargs.get(key) is not None:
            setattr(pipeline, key, kwargs[key])
    await db.commit()
    return await get_pipeline(db, organization_id, pipeline_id)


async def delete_pipeline(
    db: AsyncSession, organization_id: uuid.UUID, pipeline_id: uuid.UUID
) -> None:
    pipeline = await get_pipeline(db, organization_id, pipeline_id)

    deals = (
        await db.execute(select(func.count(Deal.id)).where(Deal.pipeline_id == pipeline.id))
    ).scalar_one()
    if deals:
        raise ConflictError("Cannot delete a pipeline that still has deals")

    await db.delete(pipeline)
    await db.commit()


async def get_default_pipeline(db: AsyncSession, organization_id: uuid.UUID) -> Pipeline:
    """The organization's default pipeline.

    With no pipeline flagged default, the first pipeline by position is
    promoted; with no pipeline at all, a templated one is created.
    """
    stmt = (
        select(Pipeline)
        .where(Pipeline.organization_id == organization_id)
        .order_by(Pipeline.is_default.desc(), Pipeline.position, Pipeline.created_at)
        .limit(1)
    )
    pipeline = (await db.execute(stmt)).scalar_one_or_none()
    if pipeline is None:
        return await create_pipeline(db, organization_id, DEFAULT_PIPELINE_NAME, is_default=True)

    if not pipeline.is_default:
        pipeline.is_default = True
        await db.commit()
    return await get_pipeline(db, organization_id, pipeline.id)


# ── Stage CRUD ─────────────────────────────────────────────────────────────

async def get_stage(db: AsyncSession, organization_id: uuid.UUID, stage_id: uuid.UUID) -> Stage:
    """Stage lookup scoped to the organization through its pipeline."""
    stmt = (
        select(Stage)
        .join(Pipeline, Pipeline.id == Stage.pipeline_id)
        .where(Stage.id == stage_id, Pipeline.organization_id == organization_id)
    )
    stage = (await db.execute(stmt)).scalar_one_or_none()
    if not stage:
        raise NotFoundError("Stage not found")
    return stage


async def _get_pipeline_stage(
    db: AsyncSession, organization_id: uuid.UUID, pipeline_id: uuid.UUID, stage_id: uuid.UUID
) -> Stage:
    stage = await get_stage(db, organization_id, stage_id)
    if stage.pipeline_id != pipeline_id:
        raise NotFoundError("Stage not found")
    return stage


async def _ensure_terminal_slot(
    db: AsyncSession,
    pipeline_id: uuid.UUID,
    is_won: bool,
    is_lost: bool,
    exclude_stage_id: uuid.UUID | None = None,
) -> None:
    if is_won and is_lost:
        raise BadRequestError("A stage cannot be both won and lost")

    for flag, column, label in ((is_won, Stage.is_won, "won"), (is_lost, Stage.is_lost, "lost")):
        if not flag:
            continue
        stmt = select(Stage.id).where(Stage.pipeline_id == pipeline_id, column.is_(True))
        if exclude_stage_id is not None:
            stmt = stmt.where(Stage.id != exclude_stage_id)
        if (await db.execute(stmt.limit(1))).scalar_one_or_none():
            raise ConflictError(f"This pipeline already has a {label} stage")


async def create_stage(
    db: AsyncSession,
    organization_id: uuid.UUID,
    pipeline_id: uuid.UUID,
    name: str,
    color: str | None = None,
    position: int | None = None,
    is_won: bool = False,
    is_lost: bool = False,
) -> Stage:
    pipeline = await get_pipeline(db, organization_id, pipeline_id)
    await _ensure_terminal_slot(db, pipeline.id, is_won, is_lost)

    if position is None:
        max_pos = (
            await db.execute(
                select(func.max(Stage.position)).where(Stage.pipeline_id == pipeline.id)
            )
        ).scalar()
        position = (max_pos + 1) if max_pos is not None else 0

    stage = Stage(
        pipeline_id=pipeline.id,
        name=name,
        color=color or "#6366f1",
        position=position,
        is_won=is_won,
        is_lost=is_lost,
    )
    db.add(stage)
    await db.commit()
    await db.refresh(stage)
    return stage


async def update_stage(
    db: AsyncSession,
    organization_id: uuid.UUID,
    pipeline_id: uuid.UUID,
    stage_id: uuid.UUID,
    **kwargs,
) -> Stage:
    stage = await _get_pipeline_stage(db, organization_id, pipeline_id, stage_id)

    is_won = kwargs["is_won"] if kwargs.get("is_won") is not None else stage.is_won
    is_lost = kwargs["is_lost"] if kwargs.get("is_lost") is not None else stage.is_lost
    await _ensure_terminal_slot(
        db,
        pipeline_id,
        bool(kwargs.get("is_won")),
        bool(kwargs.get("is_lost")),
        exclude_stage_id=stage.id,
    )
    if is_won and is_lost:
        raise BadRequestError("A stage cannot be both won and lost")

    for key in ("name", "color", "position", "is_won", "is_lost"):
        if kwargs.get(key) is not None:
            setattr(stage, key, kwargs[key])
    await db.commit()
    await db.refresh(stage)
    return stage


async def delete_stage(
    db: AsyncSession, organization_id: uuid.UUID, pipeline_id: uuid.UUID, stage_id: uuid.UUID
) -> None:
    stage = await _get_pipeline_stage(db, organization_id, pipeline_id, stage_id)

    deals = (
        await db.execute(select(func.count(Deal.id)).where(Deal.stage_id == stage.id))
    ).scalar_one()
    if deals:
        raise ConflictError("Cannot delete a stage that still has deals")

    await db.delete(stage)
    await db.commit()


async def reorder_stages(
    db: AsyncSession,
    organization_id: uuid.UUID,
    pipeline_id: uuid.UUID,
    stage_ids: list[uuid.UUID],
) -> list[Stage]:
    """Assign positions 0..n-1 in the given order, all or nothing."""
    pipeline = await get_pipeline(db, organization_id, pipeline_id)
    by_id = {stage.id: stage for stage in pipeline.stages}

    if len(set(stage_ids)) != len(stage_ids):
        raise BadRequestError("Duplicate stage id in reorder request")
    unknown = [str(sid) for sid in stage_ids if sid not in by_id]
    if unknown:
        raise BadRequestError(f"Stages do not belong to this pipeline: {', '.join(unknown)}")

    for index, stage_id in enumerate(stage_ids):
        by_id[stage_id].position = index
    await db.commit()

    log.info("Reordered %d stages in pipeline %s", len(stage_ids), pipeline_id)
    return list((await get_pipeline(db, organization_id, pipeline_id)).stages)


# ── Restricted pipeline members ────────────────────────────────────────────

async def add_pipeline_member(
    db: AsyncSession, organization_id: uuid.UUID, pipeline_id: uuid.UUID, member_id: uuid.UUID
) -> PipelineMember:
    pipeline = await get_pipeline(db, organization_id, pipeline_id)

    stmt = select(OrganizationMember.id).where(
        OrganizationMember.id == member_id,
        OrganizationMember.organization_id == organization_id,
        OrganizationMember.is_active.is_(True),
    )
    if not (await db.execute(stmt)).scalar_one_or_none():
        raise BadRequestError("Member is not an active member of this organization")

    for existing in pipeline.members:
        if existing.member_id == member_id:
            return existing

    grant = PipelineMember(pipeline_id=pipeline.id, member_id=member_id)
    db.add(grant)
    await db.commit()
    await db.refresh(grant)
    return grant


async def remove_pipeline_member(
    db: AsyncSession, organization_id: uuid.UUID, pipeline_id: uuid.UUID, member_id: uuid.UUID
) -> None:
    pipeline = await get_pipeline(db, organization_id, pipeline_id)
    for existing in pipeline.members:
        if existing.member_id == member_id:
            await db.delete(existing)
            await db.commit()
            return
    raise NotFoundError("Pipeline member not found")
