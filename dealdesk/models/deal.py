"""Deal, DealEvent and LostReason models."""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime

from sqlalchemy import JSON, Date, DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin, utcnow


class DealEventType(str, enum.Enum):
    CREATED = "CREATED"
    STAGE_CHANGED = "STAGE_CHANGED"
    WON = "WON"
    LOST = "LOST"
    ASSIGNED = "ASSIGNED"
    ACTIVITY_ADDED = "ACTIVITY_ADDED"
    PRODUCT_ADDED = "PRODUCT_ADDED"


class LostReason(UUIDMixin, TimestampMixin, TenantMixin, Base):
    __tablename__ = "lost_reason"

    name: Mapped[str] = mapped_column(String(200))
    position: Mapped[int] = mapped_column(Integer, default=0)

    def __repr__(self) -> str:
        return f"<LostReason {self.name!r}>"


class Deal(UUIDMixin, TimestampMixin, TenantMixin, Base):
    __tablename__ = "deal"

    title: Mapped[str] = mapped_column(String(300))
    value: Mapped[float] = mapped_column(Float, default=0.0)
    probability: Mapped[int] = mapped_column(Integer, default=50)
    notes: Mapped[str | None] = mapped_column(Text, default=None)
    lead_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("lead.id", ondelete="CASCADE"), index=True
    )
    contact_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("contact.id", ondelete="SET NULL"), default=None
    )
    # Deletion of a referenced pipeline/stage is refused by the service layer.
    pipeline_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("pipeline.id"), default=None, index=True
    )
    stage_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("stage.id"), default=None, index=True
    )
    assigned_to_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("organization_member.id", ondelete="SET NULL"), default=None, index=True
    )
    lost_reason_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("lost_reason.id", ondelete="SET NULL"), default=None
    )
    expected_close_date: Mapped[date | None] = mapped_column(Date, default=None)
    stage_entered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    last_activity_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    # Relationships
    lead: Mapped["Lead"] = relationship(back_populates="deals")  # noqa: F821
    pipeline: Mapped["Pipeline | None"] = relationship()  # noqa: F821
    stage: Mapped["Stage | None"] = relationship()  # noqa: F821
    assigned_to: Mapped["OrganizationMember | None"] = relationship()  # noqa: F821
    lost_reason: Mapped["LostReason | None"] = relationship()
    products: Mapped[list["DealProduct"]] = relationship(  # noqa: F821
        back_populates="deal", cascade="all, delete-orphan", passive_deletes=True
    )
    events: Mapped[list["DealEvent"]] = relationship(
        back_populates="deal", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def is_closed(self) -> bool:
        return self.closed_at is not None

    def __repr__(self) -> str:
        return f"<Deal {self.title!r}>"


class DealEvent(UUIDMixin, Base):
    """Append-only audit record for a deal."""

    __tablename__ = "deal_event"

    deal_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("deal.id", ondelete="CASCADE"), index=True
    )
    type: Mapped[str] = mapped_column(String(30), index=True)
    payload: Mapped[dict] = mapped_column(JSON)
    member_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("organization_member.id", ondelete="SET NULL"), default=None
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True
    )

    deal: Mapped["Deal"] = relationship(back_populates="events")

    def __repr__(self) -> str:
        return f"<DealEvent {self.type} deal={self.deal_id}>"
