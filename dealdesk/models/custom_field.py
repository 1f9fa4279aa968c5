"""Custom field definitions (EAV pattern) and values for deals and leads."""

from __future__ import annotations

import enum
import uuid

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin


class CustomFieldEntity(str, enum.Enum):
    DEAL = "DEAL"
    LEAD = "LEAD"


class CustomFieldType(str, enum.Enum):
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    DATE = "DATE"
    BOOLEAN = "BOOLEAN"
    SELECT = "SELECT"
    MULTI_SELECT = "MULTI_SELECT"


class CustomField(UUIDMixin, TimestampMixin, TenantMixin, Base):
    """Defines a custom attribute for one entity kind."""

    __tablename__ = "custom_field"
    __table_args__ = (
        UniqueConstraint("organization_id", "entity", "name", name="uq_custom_field_org_entity_name"),
    )

    entity: Mapped[str] = mapped_column(String(20))
    name: Mapped[str] = mapped_column(String(200))
    label: Mapped[str] = mapped_column(String(200))
    type: Mapped[str] = mapped_column(String(20))
    options: Mapped[list | None] = mapped_column(JSON, default=None)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False)
    position: Mapped[int] = mapped_column(Integer, default=0)

    def __repr__(self) -> str:
        return f"<CustomField {self.entity}.{self.name}>"


class CustomFieldValue(UUIDMixin, TimestampMixin, Base):
    """Stores one custom field value for a specific entity."""

    __tablename__ = "custom_field_value"
    __table_args__ = (
        UniqueConstraint("custom_field_id", "entity_id", name="uq_cfv_field_entity"),
    )

    custom_field_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("custom_field.id", ondelete="CASCADE"), index=True
    )
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True)
    value: Mapped[str | None] = mapped_column(Text, default=None)

    custom_field: Mapped["CustomField"] = relationship()

    def __repr__(self) -> str:
        return f"<CustomFieldValue field={self.custom_field_id} entity={self.entity_id}>"
