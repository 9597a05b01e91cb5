"""API schema package."""

from fileproc.api.schemas.files import (
    FileListResponse,
    FileRecordResponse,
    StatisticsResponse,
    UploadResponse,
)
from fileproc.api.schemas.queue import DispatchResponse, LogRequest, NotificationRequest

__all__ = [
    "DispatchResponse",
    "FileListResponse",
    "FileRecordResponse",
    "LogRequest",
    "NotificationRequest",
    "StatisticsResponse",
    "UploadResponse",
]
