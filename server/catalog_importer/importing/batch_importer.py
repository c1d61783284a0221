"""Full-replace import of a catalog file.

A run has two phases:

1. Catalog replace: every product (with its images, properties and category
   links) is deleted and committed. The product count is zero afterwards.
2. Row import: the file is streamed row by row and each row is imported in
   its own unit of work. Rejected rows are collected for the failure report.

Concurrent runs against the same catalog are unsafe and must be serialized
by the caller (the Celery task holds a Redis lock).
"""
from __future__ import annotations

import csv
import itertools
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterator

from sqlalchemy.orm import sessionmaker

from catalog_importer.core.config import Settings, get_settings
from catalog_importer.core.db import session_scope
from catalog_importer.services.category_repository import CategoryRepository
from catalog_importer.services.image_storage import ImageStorage
from catalog_importer.services.product_repository import ProductRepository

from .errors import CatalogFileError
from .image_fetcher import ImageFetcher
from .row_importer import RowImporter
from .types import BatchReport, RawRow, RowResult

logger = logging.getLogger(__name__)

ROWS_PER_WORKER = 16

ProgressCallback = Callable[[int, int], None]


class BatchImporter:
    """Replaces the catalog with the contents of one import file."""

    def __init__(
        self,
        session_factory: sessionmaker,
        storage: ImageStorage,
        fetcher: ImageFetcher,
        *,
        settings: Settings | None = None,
        workers: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        """Initialize the batch importer.

        Args:
            session_factory: Factory for catalog sessions
            storage: Attachment store for product images
            fetcher: Image downloader shared by all rows
            settings: Settings providing dialect and defaults
            workers: Row import threads, defaults to ``settings.import_workers``
            on_progress: Called with (processed, failed) after every row
        """
        self._settings = settings or get_settings()
        self._session_factory = session_factory
        self._storage = storage
        self._fetcher = fetcher
        self._workers = workers or self._settings.import_workers
        self._on_progress = on_progress
        self._lock = threading.Lock()

    def replace_catalog(self) -> int:
        """Delete every product and stored image.

        Returns:
            Number of products deleted
        """
        with session_scope(self._session_factory) as session:
            deleted = ProductRepository(session).delete_all()
        self._storage.clear()
        logger.info(f"Catalog replace: deleted {deleted} product(s)")
        return deleted

    def run(self, path: str | Path) -> BatchReport:
        """Import ``path`` after clearing the catalog.

        Args:
            path: Local path of the catalog file

        Returns:
            BatchReport with counts and rejected rows in file order

        Raises:
            CatalogFileError: If the file has no header or cannot be decoded
        """
        path = Path(path)
        encoding = self._settings.csv_encoding
        delimiter = self._settings.csv_delimiter

        with open(path, "r", encoding=encoding, newline="") as f:
            reader = csv.DictReader(f, delimiter=delimiter)
            try:
                fieldnames = reader.fieldnames
            except (csv.Error, UnicodeDecodeError) as exc:
                raise CatalogFileError(f"Cannot read header of {path.name}: {exc}") from exc
            if not fieldnames:
                raise CatalogFileError(f"{path.name} is empty or has no header row")

            report = BatchReport(fieldnames=list(fieldnames))
            report.deleted_products = self.replace_catalog()
            row_importer = self._row_importer()

            rows = self._numbered_rows(reader, path)
            if self._workers > 1:
                with ThreadPoolExecutor(max_workers=self._workers, thread_name_prefix="row-import") as pool:
                    # Bounded chunks keep only a few rows per worker in memory
                    while True:
                        chunk = list(itertools.islice(rows, self._workers * ROWS_PER_WORKER))
                        if not chunk:
                            break
                        for result in pool.map(lambda item: row_importer.import_row(item[1], item[0]), chunk):
                            self._record(report, result)
                report.failures.sort(key=lambda failure: failure.line_number)
            else:
                for line_number, row in rows:
                    self._record(report, row_importer.import_row(row, line_number))

        logger.info(
            f"Imported {report.imported_rows}/{report.total_rows} row(s) from {path.name}, "
            f"{report.failed_rows} rejected"
        )
        return report

    def _row_importer(self) -> RowImporter:
        with session_scope(self._session_factory) as session:
            repository = CategoryRepository(session)
            tax_category = repository.get_or_create_tax_category(self._settings.default_tax_category)
            shipping_category = repository.get_or_create_shipping_category(
                self._settings.default_shipping_category
            )
            tax_category_id, shipping_category_id = tax_category.id, shipping_category.id

        return RowImporter(
            self._session_factory,
            self._storage,
            self._fetcher,
            tax_category_id=tax_category_id,
            shipping_category_id=shipping_category_id,
        )

    def _numbered_rows(self, reader: csv.DictReader, path: Path) -> Iterator[tuple[int, RawRow]]:
        try:
            yield from enumerate(reader, start=1)
        except (csv.Error, UnicodeDecodeError) as exc:
            raise CatalogFileError(f"Cannot read {path.name} at line {reader.line_num}: {exc}") from exc

    def _record(self, report: BatchReport, result: RowResult) -> None:
        with self._lock:
            report.record(result)
            if self._on_progress is not None:
                self._on_progress(report.total_rows, report.failed_rows)
