"""Lead model - inbound prospect a deal is opened against."""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin


class Lead(UUIDMixin, TimestampMixin, TenantMixin, Base):
    __tablename__ = "lead"
    __table_args__ = (
        UniqueConstraint("organization_id", "phone", name="uq_lead_org_phone"),
        UniqueConstraint("organization_id", "email", name="uq_lead_org_email"),
    )

    name: Mapped[str | None] = mapped_column(String(200), default=None)
    phone: Mapped[str] = mapped_column(String(50))
    email: Mapped[str | None] = mapped_column(String(255), default=None)
    status: Mapped[str] = mapped_column(String(30), default="NEW")
    temperature: Mapped[str | None] = mapped_column(String(20), default=None)  # COLD, WARM, HOT
    source: Mapped[str | None] = mapped_column(String(100), default=None)
    notes: Mapped[str | None] = mapped_column(Text, default=None)
    assigned_to_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("organization_member.id", ondelete="SET NULL"), default=None, index=True
    )

    assigned_to: Mapped["OrganizationMember | None"] = relationship()  # noqa: F821
    deals: Mapped[list["Deal"]] = relationship(  # noqa: F821
        back_populates="lead", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Lead {self.name or self.phone!r}>"
