"""Celery configuration for the catalog import queue."""

from kombu import Exchange, Queue

# ==============================================================================
# BROKER & BACKEND CONFIGURATION
# ==============================================================================

broker_connection_retry_on_startup = True
broker_connection_retry = True
broker_connection_max_retries = 10

broker_pool_limit = 10
broker_heartbeat = 30  # Seconds between heartbeats to detect connection issues

result_backend_transport_options = {
    "socket_keepalive": True,
    "socket_timeout": 30,
    "retry_on_timeout": True,
}

result_expires = 3600  # Results expire after 1 hour

# ==============================================================================
# TASK EXECUTION SETTINGS
# ==============================================================================

# ACK after the import finished so a lost worker hands the job to another one
task_acks_late = True
task_reject_on_worker_lost = True
worker_prefetch_multiplier = 1

task_track_started = True
task_send_sent_event = True

task_serializer = "json"
accept_content = ["json"]
result_serializer = "json"
timezone = "UTC"
enable_utc = True

# ==============================================================================
# RETRY POLICY - Exponential Backoff
# ==============================================================================

task_default_retry_delay = 60
task_max_retries = 3

task_retry_backoff = True
task_retry_backoff_max = 600
task_retry_jitter = True

# ==============================================================================
# QUEUE DEFINITIONS
# ==============================================================================

default_exchange = Exchange("default", type="direct", durable=True)
import_exchange = Exchange("import_tasks", type="direct", durable=True)

task_queues = (
    Queue(
        "default",
        exchange=default_exchange,
        routing_key="default",
        queue_arguments={
            "x-message-ttl": 3600000,  # 1 hour (milliseconds)
            "x-max-priority": 10,
        },
        durable=True,
    ),
    # Catalog imports replace the whole catalog, one at a time
    Queue(
        "import_queue",
        exchange=import_exchange,
        routing_key="import.catalog",
        queue_arguments={
            "x-message-ttl": 7200000,  # 2 hours TTL for long-running imports
            "x-max-priority": 10,
            "x-dead-letter-exchange": "dlx",
            "x-dead-letter-routing-key": "import.failed",
        },
        durable=True,
    ),
    Queue(
        "failed_tasks",
        exchange=Exchange("dlx", type="direct", durable=True),
        routing_key="*.failed",
        durable=True,
        queue_arguments={
            "x-message-ttl": 604800000,  # Keep failed tasks for 7 days
        },
    ),
)

task_default_queue = "default"
task_default_exchange = "default"
task_default_routing_key = "default"

# ==============================================================================
# TASK ROUTING
# ==============================================================================

task_routes = {
    "process_catalog_import": {
        "queue": "import_queue",
        "routing_key": "import.catalog",
        "priority": 5,
    },
}

# ==============================================================================
# WORKER CONFIGURATION
# ==============================================================================

worker_concurrency = 2
worker_max_tasks_per_child = 100
worker_disable_rate_limits = False

worker_send_task_events = True
worker_log_format = "[%(asctime)s: %(levelname)s/%(processName)s] %(message)s"
worker_task_log_format = "[%(asctime)s: %(levelname)s/%(processName)s][%(task_name)s(%(task_id)s)] %(message)s"

# ==============================================================================
# MESSAGE PERSISTENCE
# ==============================================================================

task_default_delivery_mode = 2  # 2 = persistent, 1 = transient

result_persistent = True
result_compression = "gzip"

event_queue_expires = 60
event_queue_ttl = 5

# ==============================================================================
# TASK ANNOTATIONS (task-specific overrides)
# ==============================================================================

task_annotations = {
    "process_catalog_import": {
        "time_limit": 3600,  # Hard time limit: 1 hour
        "soft_time_limit": 3300,
        "max_retries": 3,
        "default_retry_delay": 30,
    },
}

task_ignore_result = False
task_store_errors_even_if_ignored = True
task_protocol = 2
