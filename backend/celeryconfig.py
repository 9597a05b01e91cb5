"""
Celery configuration for the file-processing workers.

Loaded by `celery_app.config_from_object("celeryconfig")` in fileproc/tasks/__init__.py.
All broker/result-backend URLs come from environment variables,
defaulting to localhost for local dev.
"""

import os

from celery.schedules import crontab

# ═══════════════════════════════════════════════════════════
#  Broker & Result Backend
# ═══════════════════════════════════════════════════════════

broker_url = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
result_backend = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/1")

broker_connection_retry_on_startup = True

# Bounded publish retries: an upload fails with 503 when the broker is down
task_publish_retry = True
task_publish_retry_policy = {
    "max_retries": 3,
    "interval_start": 0,
    "interval_step": 0.5,
    "interval_max": 2,
}

# ═══════════════════════════════════════════════════════════
#  Serialization: JSON only
# ═══════════════════════════════════════════════════════════

task_serializer = "json"
result_serializer = "json"
accept_content = ["json"]

# ═══════════════════════════════════════════════════════════
#  Timezone
# ═══════════════════════════════════════════════════════════

timezone = "UTC"
enable_utc = True

# ═══════════════════════════════════════════════════════════
#  Task Execution
# ═══════════════════════════════════════════════════════════

# Acknowledge after completion: at-least-once delivery
task_acks_late = True
task_reject_on_worker_lost = True

worker_prefetch_multiplier = 1

task_soft_time_limit = 600
task_time_limit = 660

# process_file covers one processor run and three blob calls, each under its
# own timeout, plus the status writes.  The soft limit raises
# SoftTimeLimitExceeded inside the task, which settles the record.
_processing_timeout = float(os.getenv("PROCESSING_TIMEOUT_SECONDS", "120"))
_storage_timeout = float(os.getenv("STORAGE_TIMEOUT_SECONDS", "30"))

_process_file_soft_limit = int(_processing_timeout + 3 * _storage_timeout) + 60
_process_file_hard_limit = _process_file_soft_limit + 30

task_annotations = {
    "fileproc.tasks.processing_tasks.process_file": {
        "soft_time_limit": _process_file_soft_limit,
        "time_limit": _process_file_hard_limit,
    },
}

# ═══════════════════════════════════════════════════════════
#  Retry Policy
# ═══════════════════════════════════════════════════════════

task_default_retry_delay = 10
task_max_retries = 3

# ═══════════════════════════════════════════════════════════
#  Result Expiry: auto-clean after 24h
# ═══════════════════════════════════════════════════════════

result_expires = 86400

# ═══════════════════════════════════════════════════════════
#  Worker Settings
# ═══════════════════════════════════════════════════════════

worker_max_tasks_per_child = 200

worker_send_task_events = False
task_send_sent_event = False

# ═══════════════════════════════════════════════════════════
#  Task Routes
# ═══════════════════════════════════════════════════════════
# Run dedicated workers per queue:
#   celery -A fileproc.tasks worker -Q processing
#   celery -A fileproc.tasks worker -Q default
#   celery -A fileproc.tasks beat

task_routes = {
    "fileproc.tasks.processing_tasks.*": {"queue": "processing"},
    "fileproc.tasks.maintenance_tasks.*": {"queue": "default"},
    "fileproc.tasks.notification_tasks.*": {"queue": "default"},
}

task_default_queue = "default"

# ═══════════════════════════════════════════════════════════
#  Beat Schedule (periodic tasks)
# ═══════════════════════════════════════════════════════════

beat_schedule = {
    "cleanup-expired-files": {
        "task": "fileproc.tasks.maintenance_tasks.cleanup_expired_files",
        "schedule": crontab(hour=3, minute=0),
    },
}
