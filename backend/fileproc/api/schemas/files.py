"""File upload / status / statistics response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from fileproc.core.constants import FileStatus


class UploadResponse(BaseModel):
    """Returned by POST /files/upload."""

    file_id: str
    status: FileStatus
    status_url: str
    download_url: str


class FileRecordResponse(BaseModel):
    """Full FileRecord projection."""

    model_config = ConfigDict(from_attributes=True)

    file_id: str
    user_id: int | None = None
    status: FileStatus
    processing_type: str
    progress: int
    retry_count: int
    original_name: str
    mime_type: str | None = None
    file_size_bytes: int
    processed_mime_type: str | None = None
    download_ready: bool = False
    error_message: str | None = None
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("metadata_", "metadata"),
    )
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    cancelled_at: datetime | None = None
    updated_at: datetime | None = None


class FileListResponse(BaseModel):
    data: list[FileRecordResponse]
    total: int
    offset: int
    limit: int


class FailureSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    file_id: str
    processing_type: str
    error_message: str | None = None
    retry_count: int
    failed_at: datetime | None = None


class StatisticsResponse(BaseModel):
    """Aggregate status counts and queue health."""

    model_config = ConfigDict(from_attributes=True)

    counts_by_status: dict[str, int]
    counts_by_type: dict[str, int]
    queue_depth: int
    stale_processing_count: int
    total: int
    recent_failures: list[FailureSummaryResponse] = Field(default_factory=list)
