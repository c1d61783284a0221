"""Import job model definition."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Enum as SAEnum, Integer, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class ImportStatus(str, Enum):
    """Enumerates the lifecycle states an import job can be in."""

    QUEUED = "queued"
    PARSING = "parsing"
    IMPORTING = "importing"
    DONE = "done"
    FAILED = "failed"


class ImportJob(Base):
    """Import record: the catalog file to load and the outcome of the run."""

    __tablename__ = "import_jobs"

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    filename: Mapped[str] = mapped_column(Text, nullable=False)
    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    content_type: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[ImportStatus] = mapped_column(
        SAEnum(ImportStatus, name="import_job_status", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=ImportStatus.QUEUED,
        server_default=ImportStatus.QUEUED.value,
    )
    total_rows: Mapped[int | None] = mapped_column(Integer, nullable=True)
    processed_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    failed_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    failure_report_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
