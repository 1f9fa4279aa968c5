"""Product catalogue and deal line items."""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Float, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin


class Product(UUIDMixin, TimestampMixin, TenantMixin, Base):
    __tablename__ = "product"
    __table_args__ = (UniqueConstraint("organization_id", "sku", name="uq_product_org_sku"),)

    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, default=None)
    sku: Mapped[str | None] = mapped_column(String(100), default=None)
    price: Mapped[float] = mapped_column(Float, default=0.0)
    cost: Mapped[float | None] = mapped_column(Float, default=None)
    category: Mapped[str | None] = mapped_column(String(100), default=None)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    def __repr__(self) -> str:
        return f"<Product {self.name!r}>"


class DealProduct(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "deal_product"
    __table_args__ = (UniqueConstraint("deal_id", "product_id", name="uq_deal_product"),)

    deal_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("deal.id", ondelete="CASCADE"), index=True
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("product.id", ondelete="CASCADE"), index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    unit_price: Mapped[float] = mapped_column(Float)
    discount: Mapped[float] = mapped_column(Float, default=0.0)
    total: Mapped[float] = mapped_column(Float)

    deal: Mapped["Deal"] = relationship(back_populates="products")  # noqa: F821
    product: Mapped["Product"] = relationship()

    def __repr__(self) -> str:
        return f"<DealProduct deal={self.deal_id} product={self.product_id}>"
