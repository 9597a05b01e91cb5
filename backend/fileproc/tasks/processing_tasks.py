"""
Celery tasks: file processing.

Wires FileProcessingOrchestrator.process_one() into the Celery task
system.  One task per uploaded file, keyed by file ID.

Retry policy:
    - Faults (storage, timeouts, processor exceptions) are retried with
      exponential backoff, up to PROCESSING_MAX_ATTEMPTS attempts total.
    - A missing original blob settles the record in `failed`; while
      attempts remain the record is put back to `pending` and retried.
    - When the last attempt fails, ProcessingTask.on_failure records the
      terminal failure so the record never stays in `processing`.
    - Hitting the Celery soft time limit is retried the same way; on the
      last attempt the record is settled `failed` before re-raising.
    - A missing FileRecord can never succeed: logged and dropped.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any

import structlog
from celery import Task
from celery.exceptions import SoftTimeLimitExceeded

from fileproc.core.config import settings
from fileproc.db.session import make_session_factory
from fileproc.pipeline.errors import FileRecordNotFoundError
from fileproc.pipeline.orchestrator import FileProcessingOrchestrator
from fileproc.processing.registry import build_default_registry
from fileproc.storage import build_blob_storage
from fileproc.tasks import celery_app

logger = structlog.get_logger("tasks.processing")

PROCESS_FILE_TASK = "fileproc.tasks.processing_tasks.process_file"


def enqueue_processing(payload: dict[str, Any]) -> None:
    """Send one processing task.  Used by the orchestrator for upload / retry."""
    process_file.apply_async(kwargs=payload)


def retry_countdown(retries: int) -> int:
    """Exponential backoff: base * 2^retries, capped."""
    base = settings.PROCESSING_RETRY_BACKOFF_SECONDS
    return min(base * (2 ** retries), settings.PROCESSING_RETRY_BACKOFF_MAX_SECONDS)


@asynccontextmanager
async def worker_orchestrator():
    """
    Orchestrator bound to a fresh engine.

    Each task runs its own event loop via asyncio.run(), so the pooled
    app engine can't be shared.
    """
    factory, engine = make_session_factory()
    try:
        yield FileProcessingOrchestrator(
            session_factory=factory,
            storage=build_blob_storage(),
            registry=build_default_registry(),
            enqueue=enqueue_processing,
        )
    finally:
        await engine.dispose()


async def _process(file_id: str):
    async with worker_orchestrator() as orchestrator:
        return await orchestrator.process_one(file_id)


async def _requeue(file_id: str) -> None:
    async with worker_orchestrator() as orchestrator:
        await orchestrator.requeue_for_redelivery(file_id)


async def _record_failure(file_id: str, error: str) -> None:
    async with worker_orchestrator() as orchestrator:
        await orchestrator.record_terminal_failure(file_id, error)


class ProcessingTask(Task):
    """Task base that settles the record once Celery gives up."""

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        file_id = kwargs.get("file_id") or (args[0] if args else None)
        task_log = logger.bind(task_id=task_id, file_id=file_id)
        if file_id is None:
            task_log.error("Processing task failed without a file ID", error=str(exc))
            return

        task_log.error("Processing task exhausted its attempts", error=str(exc))
        try:
            asyncio.run(_record_failure(file_id, f"{type(exc).__name__}: {exc}"))
        except Exception:
            task_log.exception("Could not record terminal failure")


@celery_app.task(
    bind=True,
    base=ProcessingTask,
    name=PROCESS_FILE_TASK,
    max_retries=max(settings.PROCESSING_MAX_ATTEMPTS - 1, 0),
)
def process_file(
    self,
    file_id: str,
    stored_file_name: str | None = None,
    processing_type: str | None = None,
    user_id: int | None = None,
):
    """
    Process one uploaded file.

    The payload fields besides file_id are informational; status
    decisions always come from the reloaded FileRecord.
    """
    task_log = logger.bind(
        task_id=self.request.id,
        file_id=file_id,
        processing_type=processing_type,
        attempt=self.request.retries + 1,
    )
    task_log.info("Processing task started")

    try:
        outcome = asyncio.run(_process(file_id))
    except FileRecordNotFoundError:
        task_log.error("File record not found, dropping task")
        return {"file_id": file_id, "status": None, "dropped": True}
    except SoftTimeLimitExceeded as exc:
        task_log.error("Processing task hit its soft time limit")
        if self.request.retries >= self.max_retries:
            asyncio.run(_record_failure(file_id, "Processing exceeded the task time limit"))
            raise
        raise self.retry(exc=exc, countdown=retry_countdown(self.request.retries))
    except Exception as exc:
        task_log.warning("Processing attempt failed", error=str(exc), error_type=type(exc).__name__)
        raise self.retry(exc=exc, countdown=retry_countdown(self.request.retries))

    if outcome.retryable and self.request.retries < self.max_retries:
        task_log.info("Requeueing after retryable failure", error=outcome.error)
        asyncio.run(_requeue(file_id))
        raise self.retry(countdown=retry_countdown(self.request.retries))

    task_log.info("Processing task finished", status=outcome.status, skipped=outcome.skipped)
    return asdict(outcome)
