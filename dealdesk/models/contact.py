"""Contact model - address book entries counted against the plan quota."""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin


class Contact(UUIDMixin, TimestampMixin, TenantMixin, Base):
    __tablename__ = "contact"

    name: Mapped[str] = mapped_column(String(200))
    email: Mapped[str | None] = mapped_column(String(255), default=None, index=True)
    phone: Mapped[str | None] = mapped_column(String(50), default=None)
    company_name: Mapped[str | None] = mapped_column(String(200), default=None)

    def __repr__(self) -> str:
        return f"<Contact {self.name!r}>"
