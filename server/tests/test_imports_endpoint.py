"""Tests for the import and health endpoints."""
from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch
from uuid import UUID, uuid4

import pytest
from fastapi import status
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from catalog_importer.core.db import get_session, session_scope
from catalog_importer.main import app
from catalog_importer.models.import_job import ImportStatus
from catalog_importer.schemas.import_job import ImportJobCreate
from catalog_importer.services.import_service import ImportRepository


@pytest.fixture
def client(session_factory):
    """Create a FastAPI test client with a fresh database session per request."""

    def override_get_session():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def mock_task():
    # Mock the Celery task to avoid requiring a broker in tests
    with patch("catalog_importer.tasks.import_tasks.process_catalog_import") as task:
        task.apply_async.side_effect = lambda args, task_id: MagicMock(id=task_id)
        yield task


def _create_job(session_factory, **updates) -> UUID:
    with session_scope(session_factory) as session:
        repo = ImportRepository(session)
        job = repo.create(
            ImportJobCreate(
                filename="catalog.csv",
                file_path="/srv/imports/catalog.csv",
                content_type="text/csv",
                total_rows=10,
            )
        )
        if updates:
            repo.update_status(job.id, updates.pop("status", ImportStatus.QUEUED), **updates)
        return job.id


class TestCreateImport:
    """POST /api/imports"""

    def test_accepts_valid_catalog(self, client: TestClient, mock_task, session_factory, write_catalog, make_row):
        """Test accepts valid catalog."""
        path = write_catalog([make_row(), make_row(DisplayName="Forhammer")])

        response = client.post("/api/imports", json={"file_path": str(path), "content_type": "text/csv"})

        assert response.status_code == status.HTTP_202_ACCEPTED
        data = response.json()
        assert data["status"] == "queued"
        assert data["total_rows"] == 2
        assert data["warnings"] == []
        job_id = data["job_id"]
        mock_task.apply_async.assert_called_once_with(args=[job_id], task_id=job_id)

        with session_scope(session_factory) as session:
            job = ImportRepository(session).get_by_id(UUID(job_id))
            assert job.file_path == str(path)
            assert job.filename == "catalog.csv"

    def test_returns_validation_warnings(self, client: TestClient, mock_task, write_catalog, make_row):
        """Test returns validation warnings."""
        path = write_catalog([make_row(Bruttopris="gratis")])

        response = client.post("/api/imports", json={"file_path": str(path)})

        assert response.status_code == status.HTTP_202_ACCEPTED
        assert "Bruttopris" in response.json()["warnings"][0]

    def test_rejects_file_without_display_name(self, client: TestClient, mock_task, write_catalog):
        """Test rejects file without display name."""
        path = write_catalog([{"EAN": "1"}], fieldnames=["EAN"])

        response = client.post("/api/imports", json={"file_path": str(path)})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        detail = response.json()["detail"]
        assert "DisplayName" in detail["errors"][0]
        mock_task.apply_async.assert_not_called()

    def test_rejects_missing_file(self, client: TestClient, mock_task, tmp_path: Path):
        """Test rejects missing file."""
        response = client.post("/api/imports", json={"file_path": str(tmp_path / "missing.csv")})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "File not found" in response.json()["detail"]["errors"][0]

    def test_rejects_unsupported_content_type(self, client: TestClient, mock_task, write_catalog, make_row):
        """Test rejects unsupported content type."""
        path = write_catalog([make_row()])

        response = client.post(
            "/api/imports",
            json={"file_path": str(path), "content_type": "application/vnd.ms-excel"},
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        mock_task.apply_async.assert_not_called()

    def test_enqueue_failure_is_server_error(self, client: TestClient, mock_task, write_catalog, make_row):
        """Test enqueue failure is server error."""
        mock_task.apply_async.side_effect = RuntimeError("broker unreachable")

        response = client.post("/api/imports", json={"file_path": str(write_catalog([make_row()]))})

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert "broker unreachable" in response.json()["detail"]


class TestReadImports:
    """GET /api/imports, /api/imports/{id}"""

    def test_list_imports(self, client: TestClient, session_factory):
        """Test list imports."""
        first = _create_job(session_factory)
        second = _create_job(session_factory)

        response = client.get("/api/imports")

        assert response.status_code == status.HTTP_200_OK
        assert {item["id"] for item in response.json()} == {str(first), str(second)}

    def test_list_limit_is_bounded(self, client: TestClient):
        """Test list limit is bounded."""
        assert client.get("/api/imports", params={"limit": 0}).status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_get_import(self, client: TestClient, session_factory):
        """Test get import."""
        job_id = _create_job(session_factory, status=ImportStatus.DONE, processed_rows=10, failed_rows=2)

        response = client.get(f"/api/imports/{job_id}")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "done"
        assert data["processed_rows"] == 10
        assert data["failed_rows"] == 2
        assert data["has_failure_report"] is False

    def test_get_unknown_import(self, client: TestClient):
        """Test get unknown import."""
        response = client.get(f"/api/imports/{uuid4()}")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_get_import_invalid_uuid(self, client: TestClient):
        """Test get import invalid uuid."""
        response = client.get("/api/imports/not-a-uuid")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestImportProgress:
    """GET /api/imports/{id}/progress"""

    @patch("catalog_importer.api.imports.get_redis_client")
    def test_returns_redis_snapshot(self, mock_get_client, client: TestClient, session_factory):
        """Test returns redis snapshot."""
        job_id = _create_job(session_factory)
        mock_get_client.return_value.hgetall.return_value = {
            b"status": b"importing",
            b"stage": b"importing",
            b"processed_rows": b"4",
            b"failed_rows": b"1",
            b"total_rows": b"10",
            b"progress": b"40.0",
            b"updated_at": b"1760000000.5",
        }

        response = client.get(f"/api/imports/{job_id}/progress")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "importing"
        assert data["processed_rows"] == 4
        assert data["failed_rows"] == 1
        assert data["progress"] == 40.0
        mock_get_client.return_value.close.assert_called_once()

    @patch("catalog_importer.api.imports.get_redis_client")
    def test_falls_back_to_job_counters(self, mock_get_client, client: TestClient, session_factory):
        """Test falls back to job counters."""
        job_id = _create_job(session_factory, status=ImportStatus.IMPORTING, processed_rows=5, failed_rows=1)
        mock_get_client.return_value.hgetall.side_effect = RedisConnectionError("Connection refused")

        response = client.get(f"/api/imports/{job_id}/progress")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "importing"
        assert data["processed_rows"] == 5
        assert data["failed_rows"] == 1
        assert data["progress"] == 50.0
        assert data["stage"] is None

    def test_unknown_job(self, client: TestClient):
        """Test unknown job."""
        assert client.get(f"/api/imports/{uuid4()}/progress").status_code == status.HTTP_404_NOT_FOUND


class TestFailureReport:
    """GET /api/imports/{id}/failures"""

    def test_downloads_report_in_input_dialect(self, client: TestClient, session_factory, tmp_path: Path):
        """Test downloads report in input dialect."""
        report = tmp_path / "failures.csv"
        content = "DisplayName;Kategori1\nSløjfehammer;Værktøj\n".encode("iso-8859-1")
        report.write_bytes(content)
        job_id = _create_job(session_factory, status=ImportStatus.DONE, failed_rows=1, failure_report_path=str(report))

        response = client.get(f"/api/imports/{job_id}/failures")

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"] == "text/csv; charset=iso-8859-1"
        assert "failures.csv" in response.headers["content-disposition"]
        assert response.content == content

    def test_job_without_report(self, client: TestClient, session_factory):
        """Test job without report."""
        job_id = _create_job(session_factory, status=ImportStatus.DONE)

        response = client.get(f"/api/imports/{job_id}/failures")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert "no failure report" in response.json()["detail"]

    def test_unknown_job(self, client: TestClient):
        """Test unknown job."""
        assert client.get(f"/api/imports/{uuid4()}/failures").status_code == status.HTTP_404_NOT_FOUND


class TestHealth:
    """Health endpoints."""

    def test_health(self, client: TestClient):
        """Test health."""
        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "ok"}

    @patch("catalog_importer.api.health.celery_app")
    @patch("catalog_importer.api.health.get_redis_client")
    def test_detailed_health(self, mock_get_client, mock_celery, client: TestClient):
        """Test detailed health."""
        mock_get_client.return_value.exists.return_value = 1
        mock_celery.control.inspect.return_value.active.return_value = None

        data = client.get("/health/detailed").json()

        assert data["status"] == "degraded"
        assert data["components"]["database"]["status"] == "healthy"
        assert data["components"]["redis"]["import_running"] is True
        assert data["components"]["celery"]["status"] == "degraded"
