"""Automation definitions - stored rules counted against the plan quota."""

from __future__ import annotations

from sqlalchemy import JSON, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin


class Automation(UUIDMixin, TimestampMixin, TenantMixin, Base):
    __tablename__ = "automation"

    name: Mapped[str] = mapped_column(String(200))
    trigger: Mapped[str] = mapped_column(String(100))  # e.g. deal.won, lead.created
    config: Mapped[dict | None] = mapped_column(JSON, default=None)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    def __repr__(self) -> str:
        return f"<Automation {self.name!r}>"
