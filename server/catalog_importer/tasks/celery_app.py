"""Celery application factory with RabbitMQ task queue configuration."""

from celery import Celery

from catalog_importer.core.config import get_settings

settings = get_settings()

# Create Celery app instance
celery_app = Celery(
    "catalog_importer",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.config_from_object("catalog_importer.tasks.celery_config")

# Registers tasks decorated with @celery_app.task in catalog_importer.tasks
celery_app.autodiscover_tasks(["catalog_importer.tasks"])

celery_app.conf.update(
    broker_connection_retry_on_startup=True,
    broker_connection_retry=True,
)


def get_celery_app() -> Celery:
    """Return the configured Celery application instance.

    Useful for dependency injection in tests and for explicit imports.
    """
    return celery_app
