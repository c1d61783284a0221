"""Core application utilities and infrastructure."""
from .config import Settings, get_settings
from .redis_manager import (
    CATALOG_IMPORT_LOCK,
    DEFAULT_NAMESPACE,
    DEFAULT_PROGRESS_TTL_SECONDS,
    ProgressTracker,
    create_redis_client,
    read_progress,
)

__all__ = [
    "Settings",
    "get_settings",
    "ProgressTracker",
    "create_redis_client",
    "read_progress",
    "CATALOG_IMPORT_LOCK",
    "DEFAULT_NAMESPACE",
    "DEFAULT_PROGRESS_TTL_SECONDS",
]
