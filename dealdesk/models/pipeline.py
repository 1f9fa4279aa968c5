"""Pipeline, Stage and PipelineMember models."""

from __future__ import annotations

import enum
import uuid

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin


class PipelineVisibility(str, enum.Enum):
    PUBLIC = "PUBLIC"
    RESTRICTED = "RESTRICTED"


class Pipeline(UUIDMixin, TimestampMixin, TenantMixin, Base):
    __tablename__ = "pipeline"

    name: Mapped[str] = mapped_column(String(200))
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    visibility: Mapped[str] = mapped_column(String(20), default=PipelineVisibility.PUBLIC.value)
    position: Mapped[int] = mapped_column(Integer, default=0)

    # Relationships
    stages: Mapped[list["Stage"]] = relationship(
        back_populates="pipeline", cascade="all, delete-orphan",
        order_by="Stage.position"
    )
    members: Mapped[list["PipelineMember"]] = relationship(
        back_populates="pipeline", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Pipeline {self.name!r}>"


class Stage(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "stage"

    pipeline_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("pipeline.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(200))
    color: Mapped[str] = mapped_column(String(20), default="#6366f1")
    position: Mapped[int] = mapped_column(Integer, default=0)
    is_won: Mapped[bool] = mapped_column(Boolean, default=False)
    is_lost: Mapped[bool] = mapped_column(Boolean, default=False)

    pipeline: Mapped["Pipeline"] = relationship(back_populates="stages")

    def __repr__(self) -> str:
        return f"<Stage {self.name!r}>"


class PipelineMember(UUIDMixin, TimestampMixin, Base):
    """Explicit access grant for a restricted pipeline."""

    __tablename__ = "pipeline_member"
    __table_args__ = (
        UniqueConstraint("pipeline_id", "member_id", name="uq_pipeline_member"),
    )

    pipeline_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("pipeline.id", ondelete="CASCADE"), index=True
    )
    member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organization_member.id", ondelete="CASCADE"), index=True
    )

    pipeline: Mapped["Pipeline"] = relationship(back_populates="members")
    member: Mapped["OrganizationMember"] = relationship()  # noqa: F821
