"""Product model definition."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Integer, Numeric, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .catalog import (
        CategoryNode,
        Image,
        ProductCategory,
        ProductProperty,
        ShippingCategory,
        TaxCategory,
    )


class Product(Base):
    """Represents a catalog product keyed by its slug."""

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(Text, nullable=False, unique=True, index=True)
    meta_title: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    meta_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    sku: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    cost_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    weight: Mapped[Decimal | None] = mapped_column(Numeric(12, 3), nullable=True)
    available_on: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    promotable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    tax_category_id: Mapped[int] = mapped_column(ForeignKey("tax_categories.id"), nullable=False)
    shipping_category_id: Mapped[int] = mapped_column(ForeignKey("shipping_categories.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    tax_category: Mapped[TaxCategory] = relationship()
    shipping_category: Mapped[ShippingCategory] = relationship()
    category_links: Mapped[list[ProductCategory]] = relationship(
        back_populates="product",
        order_by="ProductCategory.position",
        cascade="all, delete-orphan",
    )
    images: Mapped[list[Image]] = relationship(
        back_populates="product",
        order_by="Image.id",
        cascade="all, delete-orphan",
    )
    properties: Mapped[list[ProductProperty]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
    )

    @property
    def category_path(self) -> list[CategoryNode]:
        """Category nodes the product is filed under, root first."""
        return [link.category for link in self.category_links]

    def property_values(self) -> dict[str, str]:
        """Return a name -> value mapping of the attached properties."""
        return {prop.definition.name: prop.value for prop in self.properties}
