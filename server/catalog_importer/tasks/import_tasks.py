"""Celery tasks for catalog import processing.

This module implements the background worker task that runs a full-replace
catalog import for one committed import job, with progress tracking,
failure reporting and proper ACK/NACK handling.
"""
from __future__ import annotations

import logging
from pathlib import Path
from uuid import UUID

from celery.exceptions import Retry
from redis import Redis
from redis.exceptions import LockError

from catalog_importer.core.config import get_settings
from catalog_importer.core.db import SessionLocal, session_scope
from catalog_importer.core.redis_manager import CATALOG_IMPORT_LOCK, ProgressTracker
from catalog_importer.importing.batch_importer import BatchImporter
from catalog_importer.importing.errors import CatalogFileError
from catalog_importer.importing.image_fetcher import ImageFetcher
from catalog_importer.models.import_job import ImportStatus
from catalog_importer.services.image_storage import ImageStorage
from catalog_importer.services.import_service import ImportRepository
from catalog_importer.tasks.celery_app import celery_app

# Configure logging
logger = logging.getLogger(__name__)

# Constants
LOCK_TIMEOUT_SECONDS = 3600  # Matches the task hard time limit
LOCK_WAIT_SECONDS = 30
DB_PROGRESS_EVERY_ROWS = 500


class CatalogImportBusy(RuntimeError):
    """Another import currently holds the catalog lock."""


@celery_app.task(
    name="process_catalog_import",
    bind=True,
    acks_late=True,
    reject_on_worker_lost=True,
    autoretry_for=(Exception,),
    retry_kwargs={"max_retries": 3},
    retry_backoff=True,
    retry_backoff_max=600,
)
def process_catalog_import(self, job_id: str) -> dict:
    """Run the full-replace import of a committed import job.

    Task Flow:
    1. Load the job and check its catalog file exists
    2. Take the catalog lock so imports never overlap
    3. Status -> "parsing"; clear the catalog (catalog replace phase)
    4. Status -> "importing"; import every row in its own transaction,
       publishing progress to Redis and persisting counters periodically
    5. Write the failure report (rejected rows, input dialect) if any
    6. Status -> "done" with processed/failed counts
    7. On a broken file: status -> "failed", no retry
    8. On any other error: retry with backoff, "failed" after the last attempt

    Args:
        job_id: UUID string of the import job

    Returns:
        dict with job completion details

    Raises:
        Exception: Any error during processing (will trigger retry via autoretry_for)
    """
    settings = get_settings()

    # Initialize Redis client (synchronous for Celery worker)
    redis_client = Redis.from_url(
        settings.redis_url,
        decode_responses=False,
        socket_keepalive=True,
    )

    logger.info(
        f"Starting catalog import task for job {job_id} (attempt {self.request.retries + 1}/{self.max_retries + 1})"
    )

    processed_rows = 0
    failed_rows = 0
    tracker: ProgressTracker | None = None

    try:
        with session_scope() as session:
            repo = ImportRepository(session)
            job = repo.get_by_id(UUID(job_id))
            if not job:
                error_msg = f"Import job {job_id} not found in database"
                logger.error(error_msg)
                return {"status": "failed", "error": error_msg}

            file_path = Path(job.file_path)
            total_rows = job.total_rows or 0

        if not file_path.exists():
            error_msg = f"Catalog file not found at {file_path}"
            logger.error(f"Job {job_id}: {error_msg}")
            _update_job_failed(job_id, error_msg)
            return {"status": "failed", "error": error_msg}

        tracker = ProgressTracker(redis_client, job_id, total_rows)

        lock = redis_client.lock(CATALOG_IMPORT_LOCK, timeout=LOCK_TIMEOUT_SECONDS)
        if not lock.acquire(blocking=True, blocking_timeout=LOCK_WAIT_SECONDS):
            raise CatalogImportBusy(f"Catalog is locked by another import, job {job_id} will retry")

        try:
            with session_scope() as session:
                ImportRepository(session).update_status(UUID(job_id), ImportStatus.PARSING)
            tracker.update(status="parsing", processed_rows=0, stage="catalog_replace", force=True)
            logger.info(f"Job {job_id}: Status updated to PARSING")

            def on_progress(processed: int, failed: int) -> None:
                nonlocal processed_rows, failed_rows
                if processed == 1:
                    _update_progress(job_id, ImportStatus.IMPORTING, 0, 0)
                    logger.info(f"Job {job_id}: Status updated to IMPORTING")
                processed_rows, failed_rows = processed, failed
                tracker.update(
                    status="importing",
                    processed_rows=processed,
                    failed_rows=failed,
                    stage="importing",
                )
                if processed % DB_PROGRESS_EVERY_ROWS == 0:
                    _update_progress(job_id, ImportStatus.IMPORTING, processed, failed)

            with ImageFetcher(timeout=settings.image_fetch_timeout_seconds) as fetcher:
                importer = BatchImporter(
                    SessionLocal,
                    ImageStorage(settings.media_root),
                    fetcher,
                    settings=settings,
                    on_progress=on_progress,
                )
                report = importer.run(file_path)
        finally:
            try:
                lock.release()
            except LockError as lock_err:
                logger.warning(f"Job {job_id}: Catalog lock was already released: {lock_err}")

        processed_rows, failed_rows = report.total_rows, report.failed_rows

        failure_report_path: str | None = None
        if report.failures:
            report_path = Path(settings.failure_report_dir) / f"{job_id}_failures.csv"
            report.write_failure_report(
                report_path,
                encoding=settings.csv_encoding,
                delimiter=settings.csv_delimiter,
            )
            failure_report_path = str(report_path)
            for failure in report.failures:
                logger.info(
                    f"Job {job_id}: Rejected row {failure.line_number} ({failure.error_kind}): {failure.message}"
                )

        with session_scope() as session:
            repo = ImportRepository(session)
            repo.update_status(
                UUID(job_id),
                ImportStatus.DONE,
                processed_rows=processed_rows,
                failed_rows=failed_rows,
                failure_report_path=failure_report_path,
            )

        tracker.update(
            status="done",
            processed_rows=processed_rows,
            failed_rows=failed_rows,
            stage="completed",
            force=True,
        )

        logger.info(
            f"Job {job_id}: Import completed ({report.imported_rows} imported, {failed_rows} rejected, "
            f"{report.deleted_products} replaced)"
        )

        redis_client.close()

        return {
            "status": "done",
            "job_id": job_id,
            "processed_rows": processed_rows,
            "imported_rows": report.imported_rows,
            "failed_rows": failed_rows,
            "failure_report_path": failure_report_path,
        }

    except Retry:
        raise

    except CatalogFileError as e:
        # Retrying cannot fix a broken file
        error_message = f"{type(e).__name__}: {str(e)}"
        logger.error(f"Job {job_id}: {error_message}")
        _update_job_failed(job_id, error_message)
        if tracker is not None:
            tracker.update(status="failed", processed_rows=0, error_message=error_message, force=True)
        redis_client.close()
        return {"status": "failed", "error": error_message}

    except Exception as e:
        logger.error(
            f"Job {job_id}: Import failed on attempt {self.request.retries + 1}: {e}",
            exc_info=True,
        )

        error_message = f"{type(e).__name__}: {str(e)}"
        final_attempt = self.request.retries >= self.max_retries

        # Only update to FAILED if this is the final retry attempt
        if final_attempt:
            _update_job_failed(job_id, error_message)

        if tracker is not None:
            tracker.update(
                status="failed" if final_attempt else "importing",
                processed_rows=processed_rows,
                failed_rows=failed_rows,
                error_message=error_message,
                force=True,
            )

        try:
            redis_client.close()
        except Exception as close_err:
            logger.debug(f"Job {job_id}: Error closing Redis client: {close_err}")

        # Re-raise exception to trigger Celery retry mechanism
        raise


def _update_progress(job_id: str, status: ImportStatus, processed_rows: int, failed_rows: int) -> None:
    """Persist row counters on the job; progress persistence is best effort."""
    try:
        with session_scope() as session:
            ImportRepository(session).update_status(
                UUID(job_id),
                status,
                processed_rows=processed_rows,
                failed_rows=failed_rows,
            )
    except Exception as e:
        logger.warning(f"Job {job_id}: Failed to persist progress: {e}")


def _update_job_failed(job_id: str, error_message: str) -> None:
    """Update import job status to FAILED with error message.

    Args:
        job_id: Import job UUID
        error_message: Error description to store
    """
    try:
        with session_scope() as session:
            repo = ImportRepository(session)
            repo.update_status(
                UUID(job_id),
                ImportStatus.FAILED,
                error_message=error_message,
            )
    except Exception as e:
        logger.error(f"Job {job_id}: Failed to update job status to FAILED: {e}")
