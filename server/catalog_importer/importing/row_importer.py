"""Import one catalog row as a single atomic unit of work."""
from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from catalog_importer.core.db import session_scope
from catalog_importer.services.image_storage import ImageStorage
from catalog_importer.services.product_repository import ProductRepository

from .category_resolver import bind_category_path, resolve_category_path
from .columns import IMAGE_COLUMN, whitelisted
from .errors import ConstraintError, classify_error
from .field_mapper import map_row
from .image_fetcher import FetchedImage, ImageFetcher, attach_image
from .property_attacher import attach_properties
from .types import RawRow, RowFailed, RowImported, RowResult

logger = logging.getLogger(__name__)


class RowImporter:
    """Runs field mapping, product upsert, properties, categories and image per row."""

    def __init__(
        self,
        session_factory: sessionmaker,
        storage: ImageStorage,
        fetcher: ImageFetcher,
        *,
        tax_category_id: int,
        shipping_category_id: int,
    ) -> None:
        """Initialize the row importer.

        Args:
            session_factory: Factory for the per-row session
            storage: Attachment store receiving downloaded images
            fetcher: Image downloader
            tax_category_id: Tax category assigned to every product
            shipping_category_id: Shipping category assigned to every product
        """
        self._session_factory = session_factory
        self._storage = storage
        self._fetcher = fetcher
        self._tax_category_id = tax_category_id
        self._shipping_category_id = shipping_category_id

    def import_row(self, row: Mapping[str, str | None], line_number: int) -> RowResult:
        """Import ``row`` or reject it without leaving partial writes.

        The image is downloaded before the transaction opens so a slow host
        never keeps a row transaction open. Any error rolls the row back,
        removes the stored image bytes and is returned as ``RowFailed``.

        Args:
            row: Column name -> raw value as read from the file
            line_number: 1-based data row number (header excluded)

        Returns:
            RowImported on commit, RowFailed otherwise
        """
        original: RawRow = dict(row)
        fields = whitelisted(original)
        stored_keys: list[str] = []

        try:
            attributes = map_row(fields)
            fetched = self._fetcher.fetch(fields.get(IMAGE_COLUMN))
            with session_scope(self._session_factory) as session:
                slug = self._apply(session, fields, attributes, fetched, stored_keys)
        except Exception as exc:
            for key in stored_keys:
                self._storage.delete(key)
            kind = classify_error(exc)
            message = str(exc) or type(exc).__name__
            logger.warning(f"Row {line_number} rejected ({kind}): {message}")
            return RowFailed(line_number=line_number, row=original, error_kind=kind, message=message)

        logger.debug(f"Row {line_number} imported as {slug!r}")
        return RowImported(line_number=line_number, slug=slug)

    def _apply(
        self,
        session: Session,
        fields: Mapping[str, str | None],
        attributes: Mapping[str, Any],
        fetched: FetchedImage | None,
        stored_keys: list[str],
    ) -> str:
        try:
            product = ProductRepository(session).upsert_by_slug(
                attributes,
                tax_category_id=self._tax_category_id,
                shipping_category_id=self._shipping_category_id,
            )
            attach_properties(session, product, fields)
            bind_category_path(session, product, resolve_category_path(session, fields))
            if fetched is not None:
                image = attach_image(self._storage, product, fetched)
                stored_keys.append(image.storage_key)
            session.flush()
        except IntegrityError as exc:
            raise ConstraintError(str(exc.orig)) from exc
        return product.slug
