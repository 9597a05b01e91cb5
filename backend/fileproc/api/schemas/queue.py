"""Notification / log dispatch request and response schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from fileproc.core.constants import LogLevel, NotificationChannel


class NotificationRequest(BaseModel):
    """Request payload for POST /queue/dispatch-notification."""

    user_id: int
    type: NotificationChannel
    message: str = Field(..., min_length=1, max_length=1000)
    metadata: dict[str, Any] = Field(default_factory=dict)


class LogRequest(BaseModel):
    """Request payload for POST /queue/dispatch-log."""

    message: str = Field(..., min_length=1, max_length=1000)
    level: LogLevel = LogLevel.INFO
    context: dict[str, Any] = Field(default_factory=dict)


class DispatchResponse(BaseModel):
    status: str = "success"
    message: str
    task_id: str | None = None
    data: dict[str, Any]
