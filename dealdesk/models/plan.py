"""Plan model - quota bundle shared by organizations."""

from __future__ import annotations

from sqlalchemy import JSON, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin

UNLIMITED = -1


class Plan(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "plan"

    name: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    display_name: Mapped[str] = mapped_column(String(100))
    price: Mapped[float] = mapped_column(Float, default=0.0)
    max_users: Mapped[int] = mapped_column(Integer, default=UNLIMITED)
    max_deals: Mapped[int] = mapped_column(Integer, default=UNLIMITED)
    max_pipelines: Mapped[int] = mapped_column(Integer, default=UNLIMITED)
    max_contacts: Mapped[int] = mapped_column(Integer, default=UNLIMITED)
    max_automations: Mapped[int] = mapped_column(Integer, default=UNLIMITED)
    features: Mapped[list] = mapped_column(JSON, default=list)

    def has_feature(self, feature: str) -> bool:
        return feature in (self.features or [])

    def __repr__(self) -> str:
        return f"<Plan {self.name!r}>"
