"""Auth schemas."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    email: str
    name: str
    password: str = Field(min_length=8)
    organization_name: str | None = None


class LoginRequest(BaseModel):
    email: str
    password: str


class SwitchOrganizationRequest(BaseModel):
    organization_id: uuid.UUID


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: uuid.UUID
    organization_id: uuid.UUID | None = None
