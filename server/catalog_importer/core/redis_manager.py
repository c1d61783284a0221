"""Redis progress tracking and import serialization utilities."""
from __future__ import annotations

import json
import logging
import time
from typing import Any
from uuid import UUID

from redis import Redis

from catalog_importer.core.config import get_settings

logger = logging.getLogger(__name__)

DEFAULT_PROGRESS_TTL_SECONDS = 60 * 60  # keep hashes for 1 hour after completion
DEFAULT_NAMESPACE = "import_progress"
PROGRESS_UPDATE_INTERVAL = 2.0  # seconds between non-forced publishes
CATALOG_IMPORT_LOCK = "catalog_import:lock"


def create_redis_client(url: str, *, decode_responses: bool = False) -> Redis:
    """Return a configured synchronous Redis client instance."""

    kwargs: dict[str, Any] = {
        "decode_responses": decode_responses,
        "health_check_interval": 30,
        "socket_keepalive": True,
    }

    # Only include encoding parameter when decode_responses is True
    if decode_responses:
        kwargs["encoding"] = "utf-8"

    return Redis.from_url(url, **kwargs)


def get_redis_client(*, decode_responses: bool = False) -> Redis:
    """Return a Redis client configured from application settings."""
    settings = get_settings()
    return create_redis_client(settings.redis_url, decode_responses=decode_responses)


def _hash_key(job_id: str | UUID, namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}:hash:{job_id}"


def _channel(job_id: str | UUID, namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}:channel:{job_id}"


class ProgressTracker:
    """Publishes import progress to a Redis hash and pub/sub channel."""

    def __init__(
        self,
        redis_client: Redis,
        job_id: str,
        total_rows: int,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        ttl_seconds: int = DEFAULT_PROGRESS_TTL_SECONDS,
    ) -> None:
        """Initialize progress tracker.

        Args:
            redis_client: Synchronous Redis client instance
            job_id: Import job UUID
            total_rows: Total number of rows to process
        """
        self._redis = redis_client
        self._job_id = job_id
        self._total_rows = total_rows
        self._namespace = namespace
        self._ttl_seconds = ttl_seconds
        self._last_update_time = time.time()

    def _hash_key(self) -> str:
        """Return Redis hash key for this job."""
        return _hash_key(self._job_id, self._namespace)

    def _channel(self) -> str:
        """Return Redis pub/sub channel for this job."""
        return _channel(self._job_id, self._namespace)

    def update(
        self,
        status: str,
        processed_rows: int,
        *,
        failed_rows: int = 0,
        stage: str | None = None,
        error_message: str | None = None,
        force: bool = False,
    ) -> None:
        """Update progress in Redis hash and publish to pub/sub if enough time has passed.

        Args:
            status: Current import status (parsing, importing, done, failed)
            processed_rows: Number of rows processed so far
            failed_rows: Number of rows rejected so far
            stage: Optional stage description (e.g., "catalog_replace")
            error_message: Optional error message if failed
            force: Force update even if interval hasn't elapsed
        """
        current_time = time.time()
        elapsed = current_time - self._last_update_time

        if not force and elapsed < PROGRESS_UPDATE_INTERVAL:
            return

        progress_pct = (processed_rows / self._total_rows * 100) if self._total_rows > 0 else 0

        payload: dict[str, Any] = {
            "status": status,
            "processed_rows": processed_rows,
            "failed_rows": failed_rows,
            "total_rows": self._total_rows,
            "progress": round(min(progress_pct, 100.0), 2),
            "updated_at": current_time,
        }

        if stage:
            payload["stage"] = stage
        if error_message:
            payload["error_message"] = error_message

        try:
            hash_key = self._hash_key()
            serialized = {k: str(v) for k, v in payload.items()}
            self._redis.hset(hash_key, mapping=serialized)
            self._redis.expire(hash_key, self._ttl_seconds)
            self._redis.publish(self._channel(), json.dumps(payload))

            self._last_update_time = current_time
            logger.debug(
                f"Progress update published for job {self._job_id}: {progress_pct:.2f}% ({processed_rows}/{self._total_rows})"
            )

        except Exception as e:
            # Progress is best effort, the import carries on without it
            logger.warning(f"Failed to publish progress update for job {self._job_id}: {e}")


def read_progress(redis_client: Redis, job_id: str | UUID) -> dict[str, Any] | None:
    """Return the latest progress snapshot stored for ``job_id``, if any."""
    raw = redis_client.hgetall(_hash_key(job_id))
    if not raw:
        return None

    snapshot: dict[str, Any] = {}
    for key, value in raw.items():
        if isinstance(key, (bytes, bytearray)):
            key = key.decode("utf-8")
        if isinstance(value, (bytes, bytearray)):
            value = value.decode("utf-8")
        snapshot[key] = value

    for field in ("processed_rows", "failed_rows", "total_rows"):
        if field in snapshot:
            snapshot[field] = int(snapshot[field])
    for field in ("progress", "updated_at"):
        if field in snapshot:
            snapshot[field] = float(snapshot[field])
    return snapshot
