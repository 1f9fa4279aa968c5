"""Activity model - calls, meetings and tasks logged against deals or leads."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin


class ActivityType(str, enum.Enum):
    CALL = "CALL"
    EMAIL = "EMAIL"
    MEETING = "MEETING"
    TASK = "TASK"
    NOTE = "NOTE"
    WHATSAPP = "WHATSAPP"


class Activity(UUIDMixin, TimestampMixin, TenantMixin, Base):
    __tablename__ = "activity"

    type: Mapped[str] = mapped_column(String(20), index=True)
    title: Mapped[str] = mapped_column(String(300))
    description: Mapped[str | None] = mapped_column(Text, default=None)
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    deal_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("deal.id", ondelete="CASCADE"), default=None, index=True
    )
    lead_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("lead.id", ondelete="CASCADE"), default=None, index=True
    )
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("organization_member.id", ondelete="SET NULL"), default=None
    )
    assigned_to_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("organization_member.id", ondelete="SET NULL"), default=None, index=True
    )

    deal: Mapped["Deal | None"] = relationship()  # noqa: F821
    lead: Mapped["Lead | None"] = relationship()  # noqa: F821

    def __repr__(self) -> str:
        return f"<Activity {self.type} {self.title!r}>"
