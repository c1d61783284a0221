"""Tests for ImportService and ImportRepository."""
from __future__ import annotations

from unittest.mock import MagicMock, patch
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from catalog_importer.models.import_job import ImportStatus
from catalog_importer.schemas.import_job import ImportJobCreate
from catalog_importer.services.import_service import ImportRepository, ImportRequestError, ImportService


def _job_data(**overrides) -> ImportJobCreate:
    data = {"filename": "catalog.csv", "file_path": "/srv/imports/catalog.csv", "content_type": "text/csv", "total_rows": 100}
    data.update(overrides)
    return ImportJobCreate(**data)


class TestImportRepository:
    """Test suite for ImportRepository."""

    def test_create_import_job(self, db_session: Session) -> None:
        """Test creating a new import job."""
        job = ImportRepository(db_session).create(_job_data())

        assert isinstance(job.id, UUID)
        assert job.filename == "catalog.csv"
        assert job.file_path == "/srv/imports/catalog.csv"
        assert job.content_type == "text/csv"
        assert job.total_rows == 100
        assert job.status == ImportStatus.QUEUED
        assert job.processed_rows == 0
        assert job.failed_rows == 0
        assert job.error_message is None
        assert job.failure_report_path is None
        assert job.created_at is not None

    def test_get_by_id_not_found(self, db_session: Session) -> None:
        """Test get by id not found."""
        assert ImportRepository(db_session).get_by_id(uuid4()) is None

    def test_update_status(self, db_session: Session) -> None:
        """Test update status."""
        repo = ImportRepository(db_session)
        job = repo.create(_job_data())

        updated = repo.update_status(
            job.id,
            ImportStatus.DONE,
            processed_rows=100,
            failed_rows=3,
            failure_report_path="/srv/reports/x.csv",
        )

        assert updated.status == ImportStatus.DONE
        assert updated.processed_rows == 100
        assert updated.failed_rows == 3
        assert updated.failure_report_path == "/srv/reports/x.csv"

    def test_update_status_keeps_unspecified_fields(self, db_session: Session) -> None:
        """Test update status keeps unspecified fields."""
        repo = ImportRepository(db_session)
        job = repo.create(_job_data())
        repo.update_status(job.id, ImportStatus.IMPORTING, processed_rows=40)

        updated = repo.update_status(job.id, ImportStatus.FAILED, error_message="boom")

        assert updated.processed_rows == 40
        assert updated.error_message == "boom"

    def test_update_status_not_found(self, db_session: Session) -> None:
        """Test update status not found."""
        assert ImportRepository(db_session).update_status(uuid4(), ImportStatus.DONE) is None

    def test_get_recent(self, db_session: Session) -> None:
        """Test get recent."""
        repo = ImportRepository(db_session)
        for i in range(3):
            repo.create(_job_data(filename=f"catalog-{i}.csv"))

        assert len(repo.get_recent(limit=2)) == 2
        assert len(repo.get_recent()) == 3


class TestImportService:
    """Test suite for ImportService."""

    def test_create_import_job_validates_file(self, db_session: Session, write_catalog, make_row) -> None:
        """Test create import job validates file."""
        path = write_catalog([make_row(), make_row(DisplayName="Forhammer")])

        job, warnings = ImportService(db_session).create_import_job(path, "text/csv")

        assert job.filename == "catalog.csv"
        assert job.total_rows == 2
        assert job.status == ImportStatus.QUEUED
        assert job.has_failure_report is False
        assert warnings == []

    def test_create_import_job_uses_given_filename(self, db_session: Session, write_catalog, make_row) -> None:
        """Test create import job uses given filename."""
        path = write_catalog([make_row()])

        job, _ = ImportService(db_session).create_import_job(path, "text/plain; charset=iso-8859-1", "varer.csv")

        assert job.filename == "varer.csv"
        assert job.content_type == "text/plain"

    def test_rejects_unsupported_content_type(self, db_session: Session, write_catalog, make_row) -> None:
        """Test rejects unsupported content type."""
        path = write_catalog([make_row()])

        with pytest.raises(ImportRequestError, match="Unsupported content type"):
            ImportService(db_session).create_import_job(path, "application/vnd.ms-excel")

    def test_rejects_missing_file(self, db_session: Session, tmp_path) -> None:
        """Test rejects missing file."""
        with pytest.raises(ImportRequestError) as exc_info:
            ImportService(db_session).create_import_job(tmp_path / "missing.csv", "text/csv")

        assert "File not found" in exc_info.value.errors[0]
        assert ImportRepository(db_session).get_recent() == []

    def test_rejects_file_without_display_name(self, db_session: Session, write_catalog) -> None:
        """Test rejects file without display name."""
        path = write_catalog([{"EAN": "1"}], fieldnames=["EAN"])

        with pytest.raises(ImportRequestError) as exc_info:
            ImportService(db_session).create_import_job(path, "text/csv")

        assert "DisplayName" in exc_info.value.errors[0]

    @patch("catalog_importer.tasks.import_tasks.process_catalog_import")
    def test_enqueue_uses_job_id_as_task_id(self, mock_task: MagicMock, db_session: Session) -> None:
        """Test enqueue uses job id as task id."""
        job_id = uuid4()
        mock_task.apply_async.return_value = MagicMock(id=str(job_id))

        task_id = ImportService(db_session).enqueue_import_task(job_id)

        mock_task.apply_async.assert_called_once_with(args=[str(job_id)], task_id=str(job_id))
        assert task_id == str(job_id)

    @patch("catalog_importer.tasks.import_tasks.process_catalog_import")
    def test_register_import_commits_then_enqueues(
        self, mock_task: MagicMock, db_session: Session, write_catalog, make_row, monkeypatch
    ) -> None:
        """Test register import commits then enqueues."""
        path = write_catalog([make_row()])
        events: list[str] = []
        real_commit = db_session.commit

        def commit() -> None:
            events.append("commit")
            real_commit()

        def apply_async(args, task_id):
            events.append("enqueue")
            return MagicMock(id=task_id)

        monkeypatch.setattr(db_session, "commit", commit)
        mock_task.apply_async.side_effect = apply_async

        accepted = ImportService(db_session).register_import(path, "text/csv")

        assert accepted.status == ImportStatus.QUEUED
        assert accepted.total_rows == 1
        assert "1 rows" in accepted.message
        # The worker must find the record as soon as the task is published
        assert events == ["commit", "enqueue"]

    @patch("catalog_importer.tasks.import_tasks.process_catalog_import")
    def test_register_import_does_not_enqueue_rejected_file(
        self, mock_task: MagicMock, db_session: Session, tmp_path
    ) -> None:
        """Test register import does not enqueue rejected file."""
        with pytest.raises(ImportRequestError):
            ImportService(db_session).register_import(tmp_path / "missing.csv", "text/csv")

        mock_task.apply_async.assert_not_called()

    def test_get_job_and_list(self, db_session: Session) -> None:
        """Test get job and list."""
        repo = ImportRepository(db_session)
        job = repo.create(_job_data())
        service = ImportService(db_session)

        assert service.get_job(job.id).id == job.id
        assert service.get_job(uuid4()) is None
        assert [j.id for j in service.list_recent_jobs()] == [job.id]

    def test_get_failure_report(self, db_session: Session, tmp_path) -> None:
        """Test get failure report."""
        repo = ImportRepository(db_session)
        report = tmp_path / "failures.csv"
        report.write_text("DisplayName\n", encoding="iso-8859-1")
        with_report = repo.create(_job_data())
        repo.update_status(with_report.id, ImportStatus.DONE, failure_report_path=str(report))
        without_report = repo.create(_job_data())
        vanished = repo.create(_job_data())
        repo.update_status(vanished.id, ImportStatus.DONE, failure_report_path=str(tmp_path / "gone.csv"))
        service = ImportService(db_session)

        assert service.get_failure_report(with_report.id) == report
        assert service.get_failure_report(without_report.id) is None
        assert service.get_failure_report(vanished.id) is None
        assert service.get_job(with_report.id).has_failure_report is True
