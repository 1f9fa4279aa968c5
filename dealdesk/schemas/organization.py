"""Organization, plan and membership schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel

from ..models.organization import Role
from .common import UserSummary


class PlanResponse(BaseModel):
    id: uuid.UUID
    name: str
    display_name: str
    price: float
    max_users: int
    max_deals: int
    max_pipelines: int
    max_contacts: int
    max_automations: int
    features: list[str]

    model_config = {"from_attributes": True}


class OrganizationCreate(BaseModel):
    name: str
    slug: str | None = None


class OrganizationUpdate(BaseModel):
    name: str | None = None
    logo: str | None = None
    settings: dict | None = None


class OrganizationResponse(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    logo: str | None = None
    settings: dict | None = None
    plan: PlanResponse
    created_at: datetime

    model_config = {"from_attributes": True}


class MembershipResponse(OrganizationResponse):
    role: str


class ChangePlanRequest(BaseModel):
    plan: str


class UsageRow(BaseModel):
    current: int
    limit: int
    percentage: int


class OrganizationStats(BaseModel):
    plan: str
    total_members: int
    total_deals: int
    total_leads: int
    total_contacts: int
    total_pipelines: int
    total_automations: int
    limits: dict[str, int]
    usage: dict[str, int]


class MemberResponse(BaseModel):
    id: uuid.UUID
    role: str
    is_active: bool
    joined_at: datetime
    user: UserSummary

    model_config = {"from_attributes": True}


class MemberRoleUpdate(BaseModel):
    role: Role


class InviteCreate(BaseModel):
    email: str
    role: Role = Role.MEMBER


class InviteResponse(BaseModel):
    id: uuid.UUID
    email: str
    role: str
    status: str
    expires_at: datetime

    model_config = {"from_attributes": True}


class InviteIssued(InviteResponse):
    # Returned once; only its hash is stored.
    token: str


class InviteAccept(BaseModel):
    token: str
    name: str | None = None
    password: str | None = None
