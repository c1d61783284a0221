"""Repository for property definitions and per-product property values."""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from catalog_importer.models.catalog import ProductProperty, PropertyDefinition
from catalog_importer.models.product import Product

logger = logging.getLogger(__name__)


class PropertyRepository:
    """Handles get-or-create of property definitions and value upserts."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_definition(self, name: str) -> PropertyDefinition | None:
        """Fetch a property definition by its unique name."""
        return self._session.scalars(
            select(PropertyDefinition).where(PropertyDefinition.name == name)
        ).first()

    def get_or_create_definition(self, name: str, presentation: str) -> PropertyDefinition:
        """Return the definition named ``name``, creating it on first use.

        The insert runs inside a SAVEPOINT. When a concurrent transaction
        commits the same name first, the unique constraint rejects our insert,
        the savepoint is rolled back and the winner's row is returned.

        Args:
            name: Unique property name (e.g. "brand")
            presentation: Human readable label used when creating

        Returns:
            The existing or newly created PropertyDefinition
        """
        definition = self.get_definition(name)
        if definition is not None:
            return definition

        try:
            with self._session.begin_nested():
                definition = PropertyDefinition(name=name, presentation=presentation)
                self._session.add(definition)
        except IntegrityError:
            logger.debug(f"Property definition {name!r} created concurrently, re-reading it")
            definition = self.get_definition(name)
            if definition is None:
                raise
        return definition

    def get_value(self, product: Product, definition: PropertyDefinition) -> ProductProperty | None:
        """Fetch the value row for a (product, definition) pair."""
        return self._session.scalars(
            select(ProductProperty).where(
                ProductProperty.product_id == product.id,
                ProductProperty.property_id == definition.id,
            )
        ).first()

    def upsert_value(self, product: Product, definition: PropertyDefinition, value: str) -> ProductProperty:
        """Set the product's value for ``definition``, creating the pair if absent."""
        product_property = self.get_value(product, definition)
        if product_property is None:
            product_property = ProductProperty(definition=definition, value=value)
            product.properties.append(product_property)
        elif product_property.value != value:
            product_property.value = value
        return product_property
