"""Service layer for managing catalog import lifecycle."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from uuid import UUID

from sqlalchemy.orm import Session

from catalog_importer.core.config import get_settings
from catalog_importer.models.import_job import ImportJob, ImportStatus
from catalog_importer.schemas.import_job import (
    ALLOWED_CONTENT_TYPES,
    ImportAccepted,
    ImportJobCreate,
    ImportJobResponse,
)
from catalog_importer.services.csv_validator import CSVValidator

logger = logging.getLogger(__name__)


class ImportRequestError(ValueError):
    """The import request cannot be accepted (bad file, content type or header)."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class ImportRepository:
    """Handles CRUD operations for ImportJob entities."""

    def __init__(self, session: Session) -> None:
        """Initialize repository with a SQLAlchemy session.

        Args:
            session: Active database session for executing queries
        """
        self._session = session

    def create(self, job_data: ImportJobCreate) -> ImportJob:
        """Create a new import job record in the database.

        Args:
            job_data: Import job creation payload

        Returns:
            Newly created ImportJob instance with generated ID
        """
        job = ImportJob(
            filename=job_data.filename,
            file_path=job_data.file_path,
            content_type=job_data.content_type,
            total_rows=job_data.total_rows,
            status=ImportStatus.QUEUED,
            processed_rows=0,
            failed_rows=0,
        )
        self._session.add(job)
        self._session.commit()
        self._session.refresh(job)
        return job

    def get_by_id(self, job_id: UUID) -> ImportJob | None:
        """Fetch an import job by its UUID.

        Args:
            job_id: Import job identifier

        Returns:
            ImportJob instance if found, None otherwise
        """
        return self._session.get(ImportJob, job_id)

    def update_status(
        self,
        job_id: UUID,
        status: ImportStatus,
        *,
        processed_rows: int | None = None,
        failed_rows: int | None = None,
        error_message: str | None = None,
        failure_report_path: str | None = None,
    ) -> ImportJob | None:
        """Update import job status and optional fields.

        Args:
            job_id: Import job identifier
            status: New status value
            processed_rows: Optional number of rows processed so far
            failed_rows: Optional number of rows rejected so far
            error_message: Optional error message if job failed
            failure_report_path: Optional path of the written failure report

        Returns:
            Updated ImportJob instance, or None if not found
        """
        job = self.get_by_id(job_id)
        if not job:
            return None

        job.status = status
        if processed_rows is not None:
            job.processed_rows = processed_rows
        if failed_rows is not None:
            job.failed_rows = failed_rows
        if error_message is not None:
            job.error_message = error_message
        if failure_report_path is not None:
            job.failure_report_path = failure_report_path

        job.updated_at = datetime.now(timezone.utc)
        self._session.commit()
        self._session.refresh(job)
        return job

    def get_recent(self, limit: int = 50) -> list[ImportJob]:
        """Fetch recent import jobs ordered by creation time.

        Args:
            limit: Maximum number of jobs to return

        Returns:
            List of ImportJob instances
        """
        return (
            self._session.query(ImportJob)
            .order_by(ImportJob.created_at.desc())
            .limit(limit)
            .all()
        )


class ImportService:
    """High-level service coordinating import job creation and task enqueueing."""

    def __init__(self, session: Session) -> None:
        """Initialize service with a database session.

        Args:
            session: Active database session
        """
        self._session = session
        self._repository = ImportRepository(session)

    def create_import_job(
        self,
        file_path: str | Path,
        content_type: str,
        filename: str | None = None,
    ) -> tuple[ImportJobResponse, list[str]]:
        """Validate a catalog file and create its import job record.

        The record is committed before this returns, so enqueueing afterwards
        always sees a durable job.

        Args:
            file_path: Local path of the catalog file in the attachment store
            content_type: Declared content type (text/csv or text/plain)
            filename: Original filename, defaults to the path basename

        Returns:
            Tuple of (created job, validation warnings)

        Raises:
            ImportRequestError: If the content type, file or header is invalid
        """
        media_type = content_type.split(";")[0].strip().lower()
        if media_type not in ALLOWED_CONTENT_TYPES:
            raise ImportRequestError(
                f"Unsupported content type {content_type!r}. Expected one of: {', '.join(ALLOWED_CONTENT_TYPES)}"
            )

        path = Path(file_path)
        settings = get_settings()
        validation = CSVValidator.validate_file(
            path,
            encoding=settings.csv_encoding,
            delimiter=settings.csv_delimiter,
        )
        if not validation.is_valid:
            raise ImportRequestError("Catalog file validation failed", validation.errors)

        job_data = ImportJobCreate(
            filename=filename or path.name,
            file_path=str(path),
            content_type=media_type,
            total_rows=validation.total_rows,
        )
        job = self._repository.create(job_data)
        logger.info(f"Import job created: {job.id} ({job.filename}, {job.total_rows} rows)")
        return ImportJobResponse.from_job(job), validation.errors

    def enqueue_import_task(self, job_id: UUID) -> str:
        """Publish the Celery task that runs the import.

        The job id doubles as the task id so a record is never imported by
        two tasks.

        Args:
            job_id: Import job UUID to process

        Returns:
            Celery task ID for tracking/debugging
        """
        from catalog_importer.tasks.import_tasks import process_catalog_import

        task = process_catalog_import.apply_async(
            args=[str(job_id)],
            task_id=str(job_id),
        )
        return task.id

    def register_import(
        self,
        file_path: str | Path,
        content_type: str,
        filename: str | None = None,
    ) -> ImportAccepted:
        """Create the import record and trigger its import exactly once."""
        job, warnings = self.create_import_job(file_path, content_type, filename)
        task_id = self.enqueue_import_task(job.id)
        logger.info(f"Import task enqueued - job_id: {job.id}, task_id: {task_id}")
        return ImportAccepted(
            job_id=job.id,
            status=job.status,
            total_rows=job.total_rows,
            warnings=warnings,
            message=f"Catalog import accepted. Processing {job.total_rows} rows in background.",
        )

    def get_job(self, job_id: UUID) -> ImportJobResponse | None:
        """Fetch an import job by ID.

        Args:
            job_id: Import job identifier

        Returns:
            ImportJobResponse if found, None otherwise
        """
        job = self._repository.get_by_id(job_id)
        if not job:
            return None
        return ImportJobResponse.from_job(job)

    def list_recent_jobs(self, limit: int = 50) -> list[ImportJobResponse]:
        """Fetch recent import jobs.

        Args:
            limit: Maximum number of jobs to return

        Returns:
            List of ImportJobResponse schemas
        """
        jobs = self._repository.get_recent(limit=limit)
        return [ImportJobResponse.from_job(job) for job in jobs]

    def get_failure_report(self, job_id: UUID) -> Path | None:
        """Return the failure report path of a job, if one was written."""
        job = self._repository.get_by_id(job_id)
        if not job or not job.failure_report_path:
            return None
        path = Path(job.failure_report_path)
        return path if path.exists() else None
