"""Health check endpoints for monitoring service and dependency status."""
from typing import Any

from fastapi import APIRouter
from sqlalchemy import text

from catalog_importer.core.config import get_settings
from catalog_importer.core.db import engine
from catalog_importer.core.redis_manager import CATALOG_IMPORT_LOCK, get_redis_client
from catalog_importer.tasks.celery_app import celery_app

router = APIRouter(tags=["health"])
settings = get_settings()


@router.get("/health")
def health_check() -> dict[str, str]:
    """Basic health check endpoint.

    Returns:
        Simple status response for load balancers
    """
    return {"status": "ok"}


@router.get("/health/detailed")
def detailed_health_check() -> dict[str, Any]:
    """Detailed health check for all service dependencies.

    Checks:
    - Database connectivity
    - Redis connectivity (and whether an import currently holds the catalog lock)
    - Celery worker availability

    Returns:
        Detailed health status for each component
    """
    health_status: dict[str, Any] = {
        "status": "healthy",
        "components": {},
    }

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        health_status["components"]["database"] = {
            "status": "healthy",
            "message": "Database connection successful",
        }
    except Exception as e:
        health_status["status"] = "unhealthy"
        health_status["components"]["database"] = {
            "status": "unhealthy",
            "message": f"Database connection failed: {str(e)}",
        }

    try:
        redis_client = get_redis_client()
        try:
            redis_client.ping()
            import_running = bool(redis_client.exists(CATALOG_IMPORT_LOCK))
        finally:
            redis_client.close()
        health_status["components"]["redis"] = {
            "status": "healthy",
            "message": "Redis connection successful",
            "import_running": import_running,
        }
    except Exception as e:
        health_status["status"] = "unhealthy"
        health_status["components"]["redis"] = {
            "status": "unhealthy",
            "message": f"Redis connection failed: {str(e)}",
        }

    try:
        inspect = celery_app.control.inspect(timeout=2.0)
        active_workers = inspect.active()

        if active_workers:
            health_status["components"]["celery"] = {
                "status": "healthy",
                "message": f"{len(active_workers)} worker(s) available",
                "workers": list(active_workers.keys()),
            }
        else:
            if health_status["status"] == "healthy":
                health_status["status"] = "degraded"
            health_status["components"]["celery"] = {
                "status": "degraded",
                "message": "No active Celery workers found",
            }
    except Exception as e:
        if health_status["status"] == "healthy":
            health_status["status"] = "degraded"
        health_status["components"]["celery"] = {
            "status": "degraded",
            "message": f"Failed to inspect Celery workers: {str(e)}",
        }

    return health_status
