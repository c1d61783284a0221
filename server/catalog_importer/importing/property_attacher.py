"""Attach the auxiliary property columns of a row to a product."""
from __future__ import annotations

from typing import Mapping

from sqlalchemy.orm import Session

from catalog_importer.models.catalog import ProductProperty
from catalog_importer.models.product import Product
from catalog_importer.services.property_repository import PropertyRepository

from .columns import PROPERTY_COLUMNS


def attach_properties(
    session: Session,
    product: Product,
    row: Mapping[str, str | None],
    columns: Mapping[str, tuple[str, str]] = PROPERTY_COLUMNS,
) -> list[ProductProperty]:
    """Upsert one product property per non-blank whitelisted column.

    Values are stored verbatim. Running this twice with the same row leaves
    the product unchanged after the first run.

    Returns:
        The ProductProperty rows touched, in column order
    """
    repository = PropertyRepository(session)
    attached: list[ProductProperty] = []

    for column, (name, presentation) in columns.items():
        value = row.get(column)
        if value is None or not value.strip():
            continue
        definition = repository.get_or_create_definition(name, presentation)
        attached.append(repository.upsert_value(product, definition, value))

    return attached
