"""Pydantic schemas describing import job payloads."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from catalog_importer.models.import_job import ImportStatus

ALLOWED_CONTENT_TYPES = ("text/csv", "text/plain")


class ImportRequest(BaseModel):
    """Registers a catalog file already held by the attachment store."""

    file_path: str = Field(description="Readable local path of the catalog file")
    filename: str | None = Field(default=None, description="Original filename, defaults to the path basename")
    content_type: str = Field(default="text/csv", description="Declared content type of the file")

    @field_validator("file_path")
    @classmethod
    def ensure_path(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "file_path cannot be empty"
            raise ValueError(msg)
        return value

    @field_validator("content_type")
    @classmethod
    def ensure_content_type(cls, value: str) -> str:
        media_type = value.split(";")[0].strip().lower()
        if media_type not in ALLOWED_CONTENT_TYPES:
            msg = f"content_type must be one of {', '.join(ALLOWED_CONTENT_TYPES)}, got {value!r}"
            raise ValueError(msg)
        return media_type


class ImportJobCreate(BaseModel):
    """Payload used when creating a new import job record."""

    filename: str = Field(description="Original filename of the catalog file")
    file_path: str = Field(description="Local path the worker reads the file from")
    content_type: str = Field(description="Declared content type")
    total_rows: int | None = Field(
        default=None,
        ge=0,
        description="Optional hint about how many rows the CSV contains",
    )

    @field_validator("filename")
    @classmethod
    def ensure_filename(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "filename cannot be empty"
            raise ValueError(msg)
        return value


class ImportJobResponse(BaseModel):
    """Full representation of an import job."""

    id: UUID
    filename: str
    content_type: str
    status: ImportStatus
    total_rows: int | None = Field(default=None, ge=0)
    processed_rows: int = Field(ge=0)
    failed_rows: int = Field(ge=0)
    error_message: str | None = None
    has_failure_report: bool = False
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_job(cls, job) -> "ImportJobResponse":
        response = cls.model_validate(job)
        response.has_failure_report = bool(job.failure_report_path)
        return response


class ImportAccepted(BaseModel):
    """Response returned after an import record is registered."""

    job_id: UUID
    status: ImportStatus
    total_rows: int | None = None
    warnings: list[str] = Field(default_factory=list)
    message: str


class ImportProgress(BaseModel):
    """Progress snapshot published to Redis by the worker."""

    job_id: UUID
    status: str
    stage: str | None = Field(
        default=None, description="High-level stage (catalog_replace, importing, completed)"
    )
    total_rows: int | None = Field(default=None, ge=0)
    processed_rows: int = Field(ge=0)
    failed_rows: int = Field(default=0, ge=0)
    progress: float | None = Field(
        default=None,
        ge=0,
        le=100,
        description="Derived percentage to simplify client rendering",
    )
    error_message: str | None = None
    updated_at: float | None = None
