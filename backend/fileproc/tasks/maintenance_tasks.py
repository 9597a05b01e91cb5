"""
Celery tasks: periodic maintenance.

cleanup_expired_files is scheduled daily by celery beat (see
celeryconfig.beat_schedule).
"""

from __future__ import annotations

import asyncio

import structlog

from fileproc.core.config import settings
from fileproc.tasks import celery_app
from fileproc.tasks.processing_tasks import worker_orchestrator

logger = structlog.get_logger("tasks.maintenance")


async def _cleanup(retention_days: int) -> int:
    async with worker_orchestrator() as orchestrator:
        return await orchestrator.cleanup(retention_days)


@celery_app.task(bind=True, name="fileproc.tasks.maintenance_tasks.cleanup_expired_files")
def cleanup_expired_files(self, retention_days: int | None = None):
    """Delete settled FileRecords (and blobs) past the retention window."""
    days = settings.RETENTION_DAYS if retention_days is None else retention_days
    task_log = logger.bind(task_id=self.request.id, retention_days=days)
    task_log.info("Cleanup started")

    removed = asyncio.run(_cleanup(days))

    task_log.info("Cleanup finished", removed=removed)
    return {"removed": removed, "retention_days": days}
