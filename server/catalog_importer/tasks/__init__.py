"""Tasks module for background job processing."""
from __future__ import annotations

from .celery_app import celery_app, get_celery_app
from .import_tasks import process_catalog_import

__all__ = [
    "celery_app",
    "get_celery_app",
    "process_catalog_import",
]
