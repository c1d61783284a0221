"""Lookups for the category tree and the tax/shipping reference data."""
from __future__ import annotations

from typing import Sequence, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from catalog_importer.models.catalog import CategoryNode, ShippingCategory, TaxCategory

_Reference = TypeVar("_Reference", TaxCategory, ShippingCategory)


class CategoryRepository:
    """Read access to category nodes plus get-or-create for default categories."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def find_children(self, parent: CategoryNode | None, name: str) -> Sequence[CategoryNode]:
        """Return the nodes named ``name`` directly under ``parent``.

        Args:
            parent: Parent node, or None to search the root nodes
            name: Exact node name

        Returns:
            Matching nodes (normally zero or one)
        """
        stmt = select(CategoryNode).where(CategoryNode.name == name)
        if parent is None:
            stmt = stmt.where(CategoryNode.parent_id.is_(None))
        else:
            stmt = stmt.where(CategoryNode.parent_id == parent.id)
        return self._session.scalars(stmt.order_by(CategoryNode.id)).all()

    def get_or_create_tax_category(self, name: str) -> TaxCategory:
        """Return the tax category named ``name``, creating it if missing."""
        return self._get_or_create(TaxCategory, name)

    def get_or_create_shipping_category(self, name: str) -> ShippingCategory:
        """Return the shipping category named ``name``, creating it if missing."""
        return self._get_or_create(ShippingCategory, name)

    def _get_or_create(self, model: type[_Reference], name: str) -> _Reference:
        instance = self._session.scalars(select(model).where(model.name == name)).first()
        if instance is None:
            instance = model(name=name)
            self._session.add(instance)
            self._session.flush()
        return instance
