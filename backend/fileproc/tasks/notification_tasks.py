"""
Celery tasks: notification and log dispatch.

Delivery is stubbed: a notification is logged, not sent.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog

from fileproc.core.constants import LogLevel, NotificationChannel
from fileproc.tasks import celery_app

logger = structlog.get_logger("tasks.notifications")
job_logger = structlog.get_logger("jobs.log")

# Eight syslog-style levels onto the five the logger has
_LEVEL_METHODS = {
    LogLevel.EMERGENCY: "critical",
    LogLevel.ALERT: "critical",
    LogLevel.CRITICAL: "critical",
    LogLevel.ERROR: "error",
    LogLevel.WARNING: "warning",
    LogLevel.NOTICE: "info",
    LogLevel.INFO: "info",
    LogLevel.DEBUG: "debug",
}


@celery_app.task(
    bind=True,
    name="fileproc.tasks.notification_tasks.send_notification",
    max_retries=2,
    default_retry_delay=10,
)
def send_notification(
    self,
    user_id: int,
    type: str,
    message: str,
    metadata: dict[str, Any] | None = None,
):
    """Deliver one notification (stub: logs the delivery)."""
    channel = NotificationChannel(type)
    task_log = logger.bind(
        task_id=self.request.id,
        user_id=user_id,
        channel=channel.value,
        attempt=self.request.retries + 1,
    )
    task_log.info("Processing notification job started")

    processed_at = datetime.now(timezone.utc).isoformat()
    task_log.info(
        "Notification delivered",
        message=message,
        metadata=metadata or {},
        processed_at=processed_at,
    )

    return {
        "user_id": user_id,
        "type": channel.value,
        "delivered": True,
        "processed_at": processed_at,
    }


@celery_app.task(
    bind=True,
    name="fileproc.tasks.notification_tasks.write_log",
    max_retries=2,
    default_retry_delay=10,
)
def write_log(
    self,
    message: str,
    level: str = LogLevel.INFO.value,
    context: dict[str, Any] | None = None,
    source: str = "api",
):
    """Write one structured log entry at the requested level."""
    log_level = LogLevel(level)
    entry = {
        "log_level": log_level.value.upper(),
        "source": source,
        "context": context or {},
        "job_id": self.request.id,
        "written_at": datetime.now(timezone.utc).isoformat(),
    }

    emit = getattr(job_logger, _LEVEL_METHODS[log_level])
    emit(message, **entry)

    return {"message": message, **entry}
