"""
Queue dispatch endpoints: notification and log jobs.
"""

from __future__ import annotations

from fastapi import APIRouter, status

from fileproc.api.schemas.queue import DispatchResponse, LogRequest, NotificationRequest
from fileproc.pipeline.errors import QueueUnavailableError
from fileproc.tasks.notification_tasks import send_notification, write_log

router = APIRouter(prefix="/queue", tags=["Queue"])


def _dispatch(task, payload: dict):
    try:
        return task.apply_async(kwargs=payload)
    except Exception as exc:
        raise QueueUnavailableError(f"Could not enqueue {task.name}: {exc}") from exc


@router.post(
    "/dispatch-notification",
    status_code=status.HTTP_201_CREATED,
    response_model=DispatchResponse,
)
async def dispatch_notification(body: NotificationRequest) -> DispatchResponse:
    """Queue a (stubbed) notification delivery."""
    payload = body.model_dump(mode="json")
    result = _dispatch(send_notification, payload)
    return DispatchResponse(
        message="Notification job dispatched successfully",
        task_id=result.id,
        data=payload,
    )


@router.post(
    "/dispatch-log",
    status_code=status.HTTP_201_CREATED,
    response_model=DispatchResponse,
)
async def dispatch_log(body: LogRequest) -> DispatchResponse:
    """Queue a structured log entry."""
    payload = {**body.model_dump(mode="json"), "source": "api"}
    result = _dispatch(write_log, payload)
    return DispatchResponse(
        message="Log job dispatched successfully",
        task_id=result.id,
        data=payload,
    )
