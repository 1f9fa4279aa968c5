"""Typed request context handed to every tenant-scoped service call."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from ..models.organization import Role


@dataclass(frozen=True)
class TenantContext:
    user_id: uuid.UUID
    organization_id: uuid.UUID
    member_id: uuid.UUID
    role: Role

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles
