"""
File processing endpoints: upload, status, download, retry, cancel,
history and statistics.

Domain errors (FileProcessingError subclasses) propagate to the
exception handler registered in main.py, which maps them to their
status code.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import Response

from fileproc.api.deps import get_orchestrator
from fileproc.api.schemas.files import (
    FileListResponse,
    FileRecordResponse,
    StatisticsResponse,
    UploadResponse,
)
from fileproc.core.config import settings
from fileproc.core.constants import FileStatus
from fileproc.pipeline.orchestrator import FileProcessingOrchestrator

router = APIRouter(prefix="/files", tags=["Files"])


def _file_url(file_id: str, action: str) -> str:
    return f"{settings.PUBLIC_BASE_URL}{settings.API_PREFIX}/files/{file_id}/{action}"


def _parse_metadata(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"metadata must be a JSON object: {exc}",
        ) from None
    if not isinstance(value, dict):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="metadata must be a JSON object",
        )
    return value


# ─── Upload ───────────────────────────────────────────────
@router.post("/upload", status_code=status.HTTP_202_ACCEPTED, response_model=UploadResponse)
async def upload_file(
    file: UploadFile = File(...),
    processing_type: str = Form(...),
    user_id: int | None = Form(None),
    metadata: str | None = Form(None),
    orchestrator: FileProcessingOrchestrator = Depends(get_orchestrator),
) -> UploadResponse:
    """
    Accept a file for asynchronous processing.

    Reads at most UPLOAD_MAX_SIZE + 1 bytes so an oversized upload is
    rejected without buffering all of it.
    """
    tags = _parse_metadata(metadata)
    data = await file.read(settings.UPLOAD_MAX_SIZE + 1)

    record = await orchestrator.upload(
        data,
        file.filename or "",
        processing_type,
        user_id=user_id,
        metadata=tags,
        mime_type=file.content_type,
    )
    return UploadResponse(
        file_id=record.file_id,
        status=record.status,
        status_url=_file_url(record.file_id, "status"),
        download_url=_file_url(record.file_id, "download"),
    )


# ─── History / Statistics ─────────────────────────────────
@router.get("", response_model=FileListResponse)
async def list_files(
    user_id: int | None = None,
    status_filter: FileStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    orchestrator: FileProcessingOrchestrator = Depends(get_orchestrator),
) -> FileListResponse:
    """List file records, newest first."""
    records = await orchestrator.list_files(
        user_id=user_id,
        status=status_filter.value if status_filter else None,
        offset=offset,
        limit=limit,
    )
    return FileListResponse(
        data=[FileRecordResponse.model_validate(r) for r in records],
        total=len(records),
        offset=offset,
        limit=limit,
    )


@router.get("/statistics", response_model=StatisticsResponse)
async def get_statistics(
    orchestrator: FileProcessingOrchestrator = Depends(get_orchestrator),
) -> StatisticsResponse:
    """Status / type counts and queue health."""
    stats = await orchestrator.get_statistics()
    return StatisticsResponse.model_validate(stats.to_dict())


# ─── Single file ──────────────────────────────────────────
@router.get("/{file_id}/status", response_model=FileRecordResponse)
async def get_file_status(
    file_id: str,
    orchestrator: FileProcessingOrchestrator = Depends(get_orchestrator),
) -> FileRecordResponse:
    record = await orchestrator.get_status(file_id)
    return FileRecordResponse.model_validate(record)


@router.get("/{file_id}/download")
async def download_file(
    file_id: str,
    orchestrator: FileProcessingOrchestrator = Depends(get_orchestrator),
) -> Response:
    """Serve the processed artifact of a completed file."""
    target = await orchestrator.resolve_download(file_id)
    content = await orchestrator.read_artifact(target)
    return Response(
        content=content,
        media_type=target.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{target.suggested_file_name}"'},
    )


@router.post("/{file_id}/retry", response_model=FileRecordResponse)
async def retry_file(
    file_id: str,
    orchestrator: FileProcessingOrchestrator = Depends(get_orchestrator),
) -> FileRecordResponse:
    """Re-queue a failed file."""
    record = await orchestrator.retry(file_id)
    return FileRecordResponse.model_validate(record)


@router.post("/{file_id}/cancel", response_model=FileRecordResponse)
async def cancel_file(
    file_id: str,
    orchestrator: FileProcessingOrchestrator = Depends(get_orchestrator),
) -> FileRecordResponse:
    """Cancel a pending or processing file."""
    record = await orchestrator.cancel(file_id)
    return FileRecordResponse.model_validate(record)
