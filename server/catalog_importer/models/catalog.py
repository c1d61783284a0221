"""Catalog reference data and product associations."""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .product import Product


class TaxCategory(Base):
    """Tax category assigned to every imported product."""

    __tablename__ = "tax_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)


class ShippingCategory(Base):
    """Shipping category assigned to every imported product."""

    __tablename__ = "shipping_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)


class CategoryNode(Base):
    """Node of the category tree. The importer only reads these."""

    __tablename__ = "category_nodes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("category_nodes.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    parent: Mapped[CategoryNode | None] = relationship(remote_side=[id], back_populates="children")
    children: Mapped[list[CategoryNode]] = relationship(back_populates="parent")

    def __repr__(self) -> str:
        return f"CategoryNode(id={self.id!r}, name={self.name!r})"


class ProductCategory(Base):
    """One level of a product's category path."""

    __tablename__ = "product_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id: Mapped[int] = mapped_column(ForeignKey("category_nodes.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    product: Mapped[Product] = relationship(back_populates="category_links")
    category: Mapped[CategoryNode] = relationship()


class PropertyDefinition(Base):
    """Named property type shared across products."""

    __tablename__ = "property_definitions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    presentation: Mapped[str] = mapped_column(Text, nullable=False)


class ProductProperty(Base):
    """Value of a property definition for one product."""

    __tablename__ = "product_properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    property_id: Mapped[int] = mapped_column(ForeignKey("property_definitions.id"), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)

    product: Mapped[Product] = relationship(back_populates="properties")
    definition: Mapped[PropertyDefinition] = relationship()

    __table_args__ = (
        UniqueConstraint("product_id", "property_id", name="uq_product_properties_product_property"),
    )


class Image(Base):
    """Image fetched from a remote URL and owned by exactly one product."""

    __tablename__ = "images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    filename: Mapped[str] = mapped_column(Text, nullable=False)
    content_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    storage_key: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    source_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    product: Mapped[Product] = relationship(back_populates="images")
