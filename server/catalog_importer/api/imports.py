"""Catalog import endpoints: register a file, inspect jobs, fetch failure reports."""
from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import FileResponse
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from catalog_importer.core.config import get_settings
from catalog_importer.core.db import get_session
from catalog_importer.core.redis_manager import get_redis_client, read_progress
from catalog_importer.schemas.import_job import (
    ImportAccepted,
    ImportJobResponse,
    ImportProgress,
    ImportRequest,
)
from catalog_importer.services.import_service import ImportRequestError, ImportService

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/imports", tags=["imports"])


@router.post(
    "",
    response_model=ImportAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Register a catalog file for import",
    description=(
        "Validates a catalog file already held by the attachment store, creates an "
        "import job and enqueues the background import. The import replaces the whole "
        "catalog. Returns immediately with the job id."
    ),
)
def create_import(
    payload: ImportRequest,
    session: Session = Depends(get_session),
) -> ImportAccepted:
    """Create an import job and trigger its processing exactly once.

    Args:
        payload: Location and content type of the catalog file
        session: Database session (injected)

    Returns:
        ImportAccepted with job_id and validation warnings

    Raises:
        HTTPException: 400 if the file is rejected, 500 if the task cannot be enqueued
    """
    service = ImportService(session)
    try:
        accepted = service.register_import(
            payload.file_path,
            payload.content_type,
            filename=payload.filename,
        )
    except ImportRequestError as e:
        logger.warning(f"Import request rejected for {payload.file_path}: {e} {e.errors}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(e), "errors": e.errors},
        )
    except Exception as e:
        logger.exception(f"Unexpected error while registering import of {payload.file_path}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to register import: {str(e)}",
        )

    if accepted.warnings:
        logger.info(f"Import {accepted.job_id} accepted with warnings: {accepted.warnings}")
    return accepted


@router.get("", response_model=list[ImportJobResponse], summary="List recent import jobs")
def list_imports(
    limit: int = Query(default=50, ge=1, le=500),
    session: Session = Depends(get_session),
) -> list[ImportJobResponse]:
    return ImportService(session).list_recent_jobs(limit=limit)


@router.get("/{job_id}", response_model=ImportJobResponse, summary="Get an import job")
def get_import(
    job_id: UUID,
    session: Session = Depends(get_session),
) -> ImportJobResponse:
    job = ImportService(session).get_job(job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Import job {job_id} not found")
    return job


@router.get(
    "/{job_id}/progress",
    response_model=ImportProgress,
    summary="Get live progress of an import job",
    description=(
        "Returns the latest progress snapshot published by the worker. Falls back to "
        "the counters persisted on the job when no snapshot is available."
    ),
)
def get_import_progress(
    job_id: UUID,
    session: Session = Depends(get_session),
) -> ImportProgress:
    job = ImportService(session).get_job(job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Import job {job_id} not found")

    snapshot = None
    try:
        redis_client = get_redis_client()
        try:
            snapshot = read_progress(redis_client, job_id)
        finally:
            redis_client.close()
    except RedisError as e:
        logger.warning(f"Could not read progress of job {job_id} from Redis: {e}")

    if snapshot:
        return ImportProgress(job_id=job_id, **snapshot)

    progress = None
    if job.total_rows:
        progress = round(min(job.processed_rows / job.total_rows * 100, 100.0), 2)
    return ImportProgress(
        job_id=job_id,
        status=job.status.value,
        total_rows=job.total_rows,
        processed_rows=job.processed_rows,
        failed_rows=job.failed_rows,
        progress=progress,
        error_message=job.error_message,
    )


@router.get(
    "/{job_id}/failures",
    summary="Download the failure report of an import job",
    description=(
        "Returns the rejected rows with their original values in the input dialect "
        f"({settings.csv_encoding}, '{settings.csv_delimiter}' delimited)."
    ),
    responses={
        200: {"content": {"text/csv": {}}},
        404: {"description": "Import job or failure report not found"},
    },
)
def get_import_failures(
    job_id: UUID,
    session: Session = Depends(get_session),
) -> FileResponse:
    service = ImportService(session)
    if service.get_job(job_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Import job {job_id} not found")

    report_path = service.get_failure_report(job_id)
    if report_path is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Import job {job_id} has no failure report",
        )

    return FileResponse(
        report_path,
        media_type=f"text/csv; charset={settings.csv_encoding}",
        filename=report_path.name,
    )
