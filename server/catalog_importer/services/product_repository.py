"""Product repository for upserts and catalog-wide deletes."""
from __future__ import annotations

from typing import Any, Mapping, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from catalog_importer.importing.errors import ConstraintError
from catalog_importer.models.catalog import Image, ProductCategory, ProductProperty
from catalog_importer.models.product import Product


class ProductRepository:
    """Handles database operations for Product entities."""

    def __init__(self, session: Session) -> None:
        """Initialize repository with a SQLAlchemy session.

        Args:
            session: Active database session for executing queries
        """
        self._session = session

    def upsert_by_slug(
        self,
        attributes: Mapping[str, Any],
        *,
        tax_category_id: int,
        shipping_category_id: int,
    ) -> Product:
        """Update the product with the attribute slug in place, or create it.

        Changes are flushed but not committed; the caller owns the transaction.

        Args:
            attributes: Product field name -> value, must include ``slug``
            tax_category_id: Tax category every product is filed under
            shipping_category_id: Shipping category every product is filed under

        Returns:
            The created or updated Product

        Raises:
            ConstraintError: If the slug is blank
            IntegrityError: If the flush violates a database constraint
        """
        slug = attributes.get("slug")
        if not slug:
            raise ConstraintError("DisplayName is blank, cannot derive a product slug")

        product = self.get_by_slug(slug)
        if product is None:
            product = Product(slug=slug)
            self._session.add(product)

        for field, value in attributes.items():
            setattr(product, field, value)
        product.tax_category_id = tax_category_id
        product.shipping_category_id = shipping_category_id

        self._session.flush()
        return product

    def get_by_slug(self, slug: str) -> Product | None:
        """Fetch a product by slug.

        Args:
            slug: Unique product slug

        Returns:
            Product instance if found, None otherwise
        """
        return self._session.scalars(select(Product).where(Product.slug == slug)).first()

    def get_by_id(self, product_id: int) -> Product | None:
        """Fetch a product by its database ID."""
        return self._session.get(Product, product_id)

    def get_all(self, limit: int = 100, offset: int = 0) -> Sequence[Product]:
        """Fetch products ordered by slug with pagination."""
        return self._session.scalars(
            select(Product).order_by(Product.slug).limit(limit).offset(offset)
        ).all()

    def count(self) -> int:
        """Return total number of products in the database."""
        return self._session.scalar(select(func.count()).select_from(Product)) or 0

    def delete_all(self) -> int:
        """Delete every product together with its images, properties and category links.

        Returns:
            Number of products deleted
        """
        self._session.execute(delete(Image))
        self._session.execute(delete(ProductProperty))
        self._session.execute(delete(ProductCategory))
        result = self._session.execute(delete(Product))
        return result.rowcount or 0
