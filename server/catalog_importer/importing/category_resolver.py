"""Resolve the four category columns of a row against the category tree."""
from __future__ import annotations

from typing import Mapping, Sequence

from sqlalchemy.orm import Session

from catalog_importer.models.catalog import CategoryNode, ProductCategory
from catalog_importer.models.product import Product
from catalog_importer.services.category_repository import CategoryRepository

from .columns import CATEGORY_COLUMNS
from .errors import NotFoundError


def resolve_category_path(session: Session, row: Mapping[str, str | None]) -> list[CategoryNode]:
    """Walk Kategori1..Kategori4 from the root nodes down.

    Each level must match exactly one child of the previous level by name.

    Raises:
        NotFoundError: If a level is blank, has no match, or is ambiguous
    """
    repository = CategoryRepository(session)
    path: list[CategoryNode] = []
    parent: CategoryNode | None = None

    for column in CATEGORY_COLUMNS:
        name = row.get(column)
        if name is None or not name.strip():
            raise NotFoundError(f"{column} is empty")

        matches = repository.find_children(parent, name)
        if not matches:
            under = f" under {parent.name!r}" if parent is not None else ""
            raise NotFoundError(f"{column}: no category {name!r}{under}")
        if len(matches) > 1:
            raise NotFoundError(f"{column}: category {name!r} is ambiguous ({len(matches)} matches)")

        parent = matches[0]
        path.append(parent)

    return path


def bind_category_path(session: Session, product: Product, path: Sequence[CategoryNode]) -> None:
    """Replace the product's category path with ``path``."""
    product.category_links.clear()
    session.flush()
    product.category_links.extend(
        ProductCategory(category=node, position=position) for position, node in enumerate(path)
    )
