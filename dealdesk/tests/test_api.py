"""End-to-end tests through the HTTP API."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.models import UNLIMITED
from dealdesk.services import deal_svc, organization_svc, plan_svc


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_health(client, db):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_ready_once_default_plan_exists(client, db):
    response = await client.get("/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready", "default_plan": "start"}


@pytest.mark.asyncio
async def test_register_to_closed_deal(client, db):
    response = await client.post(
        "/auth/register",
        json={
            "email": "founder@example.com",
            "name": "Fay Founder",
            "password": "founderpass1",
            "organization_name": "Founders Ltd",
        },
    )
    assert response.status_code == 201
    body = response.json()
    assert body["organization_id"] is not None
    headers = _bearer(body["access_token"])

    response = await client.get("/api/organizations/current", headers=headers)
    assert response.json()["slug"] == "founders-ltd"
    assert response.json()["plan"]["name"] == "start"

    response = await client.post(
        "/api/pipelines", json={"name": "Sales", "is_default": True}, headers=headers
    )
    assert response.status_code == 201
    pipeline = response.json()
    stages = {s["name"]: s["id"] for s in pipeline["stages"]}

    response = await client.post(
        "/api/leads", json={"phone": "+15559876", "name": "Ann Buyer"}, headers=headers
    )
    assert response.status_code == 201
    lead_id = response.json()["id"]

    response = await client.post(
        "/api/deals", json={"lead_id": lead_id, "value": 1200}, headers=headers
    )
    assert response.status_code == 201
    deal = response.json()
    assert deal["title"] == "Deal - Ann Buyer"
    assert deal["pipeline_id"] == pipeline["id"]
    assert deal["stage_id"] == stages["Qualification"]

    response = await client.post(
        f"/api/deals/{deal['id']}/move", json={"stage_id": stages["Won"]}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["closed_at"] is not None
    assert response.json()["stage"]["is_won"] is True

    response = await client.get(f"/api/deals/{deal['id']}/history", headers=headers)
    assert sorted(e["type"] for e in response.json()) == ["CREATED", "WON"]

    response = await client.get(f"/api/deals/board/{pipeline['id']}", headers=headers)
    board = response.json()
    assert [column["name"] for column in board["stages"]][:2] == ["Qualification", "Proposal"]
    won_column = next(c for c in board["stages"] if c["name"] == "Won")
    assert [d["id"] for d in won_column["deals"]] == [deal["id"]]

    response = await client.get("/api/deals/stats", headers=headers)
    assert response.json()["won_value"] == 1200.0


@pytest.mark.asyncio
async def test_login_and_bad_credentials(client, owner, org):
    response = await client.post(
        "/auth/login", json={"email": "owner@example.com", "password": "ownerpass123"}
    )
    assert response.status_code == 200
    assert response.json()["organization_id"] == str(org.id)

    response = await client.post(
        "/auth/login", json={"email": "owner@example.com", "password": "nope"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_deal_limit_error_body(client, db: AsyncSession, org, auth_headers, pipeline, lead):
    await plan_svc.upsert_plan(
        db,
        "single",
        display_name="Single",
        max_users=UNLIMITED,
        max_deals=1,
        max_pipelines=UNLIMITED,
        max_contacts=UNLIMITED,
        max_automations=UNLIMITED,
        features=["basic_crm"],
    )
    await organization_svc.change_plan(db, org.id, "single")

    payload = {"lead_id": str(lead.id)}
    first = await client.post("/api/deals", json=payload, headers=auth_headers)
    assert first.status_code == 201

    second = await client.post("/api/deals", json=payload, headers=auth_headers)
    assert second.status_code == 400
    assert second.json() == {"detail": "Limit reached for resource: deals", "error": "limit_exceeded"}

    usage = await client.get("/api/organizations/current/usage", headers=auth_headers)
    assert usage.json()["deals"] == {"current": 1, "limit": 1, "percentage": 100}


@pytest.mark.asyncio
async def test_automations_need_plan_feature(client, db: AsyncSession, org, auth_headers):
    response = await client.get("/api/automations", headers=auth_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"

    await organization_svc.change_plan(db, org.id, "pro")
    response = await client.get("/api/automations", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_invite_accept_over_http(client, org, auth_headers):
    response = await client.post(
        "/api/invites", json={"email": "joiner@example.com", "role": "MANAGER"}, headers=auth_headers
    )
    assert response.status_code == 201
    token = response.json()["token"]

    response = await client.post(
        "/auth/invites/accept",
        json={"token": token, "name": "Joiner", "password": "joinerpass1"},
    )
    assert response.status_code == 200
    assert response.json()["organization_id"] == str(org.id)

    members = await client.get("/api/members", headers=auth_headers)
    assert {m["user"]["email"]: m["role"] for m in members.json()} == {
        "owner@example.com": "OWNER",
        "joiner@example.com": "MANAGER",
    }


@pytest.mark.asyncio
async def test_plans_are_public(client, db):
    response = await client.get("/api/plans")
    assert response.status_code == 200
    assert [p["name"] for p in response.json()][:1] == ["start"]


@pytest.mark.asyncio
async def test_patch_deal_null_and_computed_value(
    client, db: AsyncSession, org, auth_headers, pipeline, lead
):
    deal = await deal_svc.create_deal(db, org.id, lead.id, title="Renewal", value=80.0)
    url = f"/api/deals/{deal.id}"

    response = await client.patch(url, json={"title": None, "probability": None}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["title"] == "Renewal"
    assert response.json()["probability"] == 50

    product = await client.post(
        "/api/products", json={"name": "Seat", "price": 100.0}, headers=auth_headers
    )
    response = await client.post(
        f"{url}/products",
        json={"product_id": product.json()["id"], "quantity": 3, "discount": 50.0},
        headers=auth_headers,
    )
    assert response.status_code == 201

    response = await client.patch(url, json={"value": 999.0}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json() == {
        "detail": "Deal value is computed from its line items",
        "error": "bad_request",
    }
    response = await client.get(url, headers=auth_headers)
    assert response.json()["value"] == 250.0


@pytest.mark.asyncio
async def test_pipeline_limit_checked_before_create(client, org, auth_headers, pipeline):
    response = await client.post("/api/pipelines", json={"name": "Second"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json() == {
        "detail": "Limit reached for resource: pipelines",
        "error": "limit_exceeded",
    }
