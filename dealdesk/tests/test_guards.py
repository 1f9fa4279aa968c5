"""Test route guards and the error mapping at the HTTP boundary."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.errors import ForbiddenError, LimitExceededError
from dealdesk.models import Role
from dealdesk.services import auth_svc, organization_svc, pipeline_svc
from dealdesk.services.limit_svc import ResourceKind
from dealdesk.tenant.guards import (
    ADMINS,
    MANAGERS,
    require_feature,
    require_limit,
    require_roles,
    run_guards,
)


@pytest.mark.asyncio
async def test_require_roles(db: AsyncSession, ctx, make_member):
    rep = await make_member(Role.MEMBER)
    manager = await make_member(Role.MANAGER)
    guard = require_roles(*MANAGERS)

    assert (await guard(ctx, db)).allowed
    assert (await guard(manager, db)).allowed
    denied = await guard(rep, db)
    assert not denied.allowed
    assert isinstance(denied.error, ForbiddenError)
    assert not (await require_roles(*ADMINS)(manager, db)).allowed


@pytest.mark.asyncio
async def test_require_feature(db: AsyncSession, org, ctx):
    guard = require_feature("automation")
    assert not (await guard(ctx, db)).allowed
    assert (await require_feature("basic_crm")(ctx, db)).allowed

    await organization_svc.change_plan(db, org.id, "pro")
    assert (await guard(ctx, db)).allowed


@pytest.mark.asyncio
async def test_require_limit(db: AsyncSession, org, ctx):
    guard = require_limit(ResourceKind.PIPELINES)
    assert (await guard(ctx, db)).allowed

    await pipeline_svc.create_pipeline(db, org.id, "Sales")
    decision = await guard(ctx, db)
    assert not decision.allowed
    assert isinstance(decision.error, LimitExceededError)
    assert decision.error.limit == 1


@pytest.mark.asyncio
async def test_run_guards_raises_first_denial(db: AsyncSession, ctx, make_member):
    rep = await make_member(Role.MEMBER)

    await run_guards(ctx, db, [require_roles(*ADMINS), require_feature("basic_crm")])
    with pytest.raises(ForbiddenError, match="Insufficient role"):
        await run_guards(rep, db, [require_roles(*ADMINS), require_feature("automation")])
    with pytest.raises(ForbiddenError, match="automation"):
        await run_guards(rep, db, [require_roles(Role.MEMBER), require_feature("automation")])


# -- HTTP ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_missing_or_bad_token_is_401(client, db):
    response = await client.get("/api/deals")
    assert response.status_code == 401
    assert response.json() == {"detail": "Bearer token required", "error": "unauthorized"}

    response = await client.get("/api/deals", headers={"Authorization": "Bearer nonsense"})
    assert response.status_code == 401
    assert response.json()["error"] == "unauthorized"


@pytest.mark.asyncio
async def test_token_without_membership_is_403(client, owner, org, make_member):
    headers = {"Authorization": f"Bearer {auth_svc.issue_token(owner.id, None)}"}
    response = await client.get("/api/deals", headers=headers)
    assert response.status_code == 403

    rep = await make_member(Role.MEMBER)
    headers = {"Authorization": f"Bearer {auth_svc.issue_token(rep.user_id, uuid.uuid4())}"}
    response = await client.get("/api/deals", headers=headers)
    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"


@pytest.mark.asyncio
async def test_role_guard_over_http(client, org, make_member):
    rep = await make_member(Role.MEMBER)
    headers = {"Authorization": f"Bearer {auth_svc.issue_token(rep.user_id, org.id)}"}

    response = await client.post("/api/lost-reasons", json={"name": "Price"}, headers=headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "Insufficient role for this operation"


@pytest.mark.asyncio
async def test_unknown_entity_is_404(client, auth_headers):
    response = await client.get(f"/api/deals/{uuid.uuid4()}", headers=auth_headers)
    assert response.status_code == 404
    assert response.json() == {"detail": "Deal not found", "error": "not_found"}
