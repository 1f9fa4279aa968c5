"""Shared response shapes."""

from __future__ import annotations

import math
import uuid
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class PageMeta(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_more: bool

    @classmethod
    def build(cls, total: int, page: int, limit: int, returned: int) -> "PageMeta":
        return cls(
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if limit else 0,
            has_more=(page - 1) * limit + returned < total,
        )


class Page(BaseModel, Generic[T]):
    data: list[T]
    meta: PageMeta


class UserSummary(BaseModel):
    id: uuid.UUID
    name: str
    email: str

    model_config = {"from_attributes": True}


class MemberSummary(BaseModel):
    id: uuid.UUID
    role: str
    user: UserSummary

    model_config = {"from_attributes": True}


class Deleted(BaseModel):
    deleted: bool = True
