"""
FileProcessingOrchestrator: coordinates upload, processing, and the
status / retry / cancel / download operations for uploaded files.

Responsibilities:
    - Validate and intake uploads (blob + pending record + one queued task)
    - Run one file through its processor on behalf of a queue worker
    - Own every FileRecord status transition
    - Resolve downloads from the persisted artifact reference
    - Aggregate statistics and purge expired records

Every mutation runs in its own database transaction.  Status writes are
compare-and-swap (see repositories.file_records.transition_status), so
a retry or cancel racing with a worker cannot tear a record.

Blob I/O and processor execution run in dedicated threads (run_bounded)
and are bounded by STORAGE_TIMEOUT_SECONDS / PROCESSING_TIMEOUT_SECONDS;
a timed-out call is abandoned, never waited for.

Usage::

    orchestrator = FileProcessingOrchestrator(
        session_factory=async_session,
        storage=build_blob_storage(),
        registry=build_default_registry(),
        enqueue=enqueue_processing,
    )
    record = await orchestrator.upload(data, "report.csv", "csv_analyze")
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from pathlib import PurePosixPath
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fileproc.core.config import Settings, settings as default_settings
from fileproc.core.constants import FileStatus
from fileproc.core.logging import get_logger
from fileproc.db.models.base import generate_uuid, utcnow
from fileproc.db.models.file_record import FileRecord
from fileproc.pipeline.errors import (
    BlobNotFoundError,
    DownloadNotReadyError,
    EmptyUploadError,
    FileRecordNotFoundError,
    FileTooLargeError,
    IneligibleOperationError,
    ProcessingTimeoutError,
    QueueUnavailableError,
    StorageError,
    UnsupportedProcessingTypeError,
)
from fileproc.pipeline.results import DownloadTarget, FailureSummary, FileStatistics, ProcessOutcome
from fileproc.processing.processors.base import FileMeta, ProcessingResult
from fileproc.processing.registry import ProcessorRegistry
from fileproc.repositories import file_records as repo
from fileproc.storage.base import BlobStorage, original_key, processed_key

logger = get_logger(__name__)

Enqueue = Callable[[dict[str, Any]], Any]

PROGRESS_STARTED = 10
PROGRESS_PROCESSED = 60

_SKIP_STATUSES = {FileStatus.COMPLETED, FileStatus.CANCELLED, FileStatus.FAILED}
_CANCELLABLE = {FileStatus.PENDING, FileStatus.PROCESSING}


async def run_bounded(func: Callable[..., Any], *args: Any, timeout: float) -> Any:
    """
    Run a blocking call in its own thread, waiting at most `timeout`.

    On timeout the thread is abandoned, not joined: the caller (and the
    event loop's shutdown in asyncio.run) returns immediately while an
    overrunning call finishes in the background.  Raises
    asyncio.TimeoutError.
    """
    loop = asyncio.get_running_loop()
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="fileproc-bounded")
    try:
        return await asyncio.wait_for(loop.run_in_executor(executor, func, *args), timeout=timeout)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


class FileProcessingOrchestrator:
    """Single owner of FileRecord lifecycle and blob layout."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        storage: BlobStorage,
        registry: ProcessorRegistry,
        enqueue: Enqueue,
        settings: Settings | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.storage = storage
        self.registry = registry
        self._enqueue = enqueue
        self.settings = settings or default_settings

    # ═══════════════════════════════════════════════════════
    #  Upload
    # ═══════════════════════════════════════════════════════

    async def upload(
        self,
        file_bytes: bytes,
        original_name: str,
        processing_type: str,
        *,
        user_id: int | None = None,
        metadata: dict[str, Any] | None = None,
        mime_type: str | None = None,
    ) -> FileRecord:
        """
        Accept an upload: one blob + one pending record + one queued task,
        or none of them.
        """
        if not file_bytes:
            raise EmptyUploadError("No file content was uploaded")

        limit = self.settings.UPLOAD_MAX_SIZE
        if len(file_bytes) > limit:
            raise FileTooLargeError(
                f"File is {len(file_bytes)} bytes; the limit is {limit} bytes",
                size=len(file_bytes),
                limit=limit,
            )

        if not self.registry.supports(processing_type):
            supported = sorted(self.registry.list_types())
            raise UnsupportedProcessingTypeError(
                f"Unsupported processing type '{processing_type}'",
                processing_type=processing_type,
                supported=supported,
                details={"supported": supported},
            )

        file_id = generate_uuid()
        blob_key = original_key(file_id)
        log = logger.bind(file_id=file_id, processing_type=processing_type)

        await self._storage_call(self.storage.write, blob_key, file_bytes, mime_type)

        try:
            async with self.session_factory() as db, db.begin():
                record = await repo.create_file_record(
                    db,
                    file_id=file_id,
                    processing_type=processing_type,
                    original_name=original_name or file_id,
                    stored_file_name=file_id,
                    file_size_bytes=len(file_bytes),
                    mime_type=mime_type,
                    user_id=user_id,
                    metadata=metadata,
                )
        except Exception:
            log.error("Record creation failed, discarding uploaded blob")
            await self._discard_blob(blob_key)
            raise

        try:
            await self._send_task(record)
        except QueueUnavailableError:
            log.error("Enqueue failed, rolling back upload")
            async with self.session_factory() as db, db.begin():
                await repo.delete_file_record(db, file_id)
            await self._discard_blob(blob_key)
            raise

        log.info("Upload accepted", size=len(file_bytes), user_id=user_id)
        return record

    # ═══════════════════════════════════════════════════════
    #  Processing (queue worker entry point)
    # ═══════════════════════════════════════════════════════

    async def process_one(self, file_id: str) -> ProcessOutcome:
        """
        Run one file through its processor.

        Safe to call more than once for the same file: completed,
        cancelled and failed records are left untouched.  Processor-
        reported failures settle the record in `failed` and return;
        faults (storage, timeouts, processor exceptions) propagate with
        the record still in `processing`.
        """
        log = logger.bind(file_id=file_id)

        # ── Claim the record ──────────────────────────────
        async with self.session_factory() as db, db.begin():
            record = await repo.get_file_record(db, file_id, for_update=True)
            if record is None:
                raise FileRecordNotFoundError(f"No file record for {file_id}", file_id=file_id)

            if record.status in _SKIP_STATUSES:
                log.info("Record already settled, skipping", status=record.status)
                return ProcessOutcome(file_id=file_id, status=record.status, skipped=True)

            if not await repo.transition_status(db, record, FileStatus.PROCESSING, progress=PROGRESS_STARTED):
                return ProcessOutcome(file_id=file_id, status=record.status, skipped=True)

        log = log.bind(processing_type=record.processing_type)
        log.info("Processing started", attempt_version=record.version)

        # ── Load the original ─────────────────────────────
        try:
            data, meta = await self._load_original(record)
        except BlobNotFoundError:
            message = f"Original file is missing from storage ({original_key(file_id)})"
            log.warning("Original blob missing", key=original_key(file_id))
            status = await self._settle_failed(file_id, message)
            return ProcessOutcome(file_id=file_id, status=status, retryable=True, error=message)

        # ── Run the processor ─────────────────────────────
        processor = self.registry.resolve(record.processing_type)
        result = await self._run_processor(processor.process, data, meta)

        if not result.success:
            log.info("Processor reported failure", error=result.error)
            status = await self._settle_failed(file_id, result.error or "Processing failed", result.metadata)
            return ProcessOutcome(file_id=file_id, status=status, error=result.error)

        await self._set_progress(file_id, PROGRESS_PROCESSED)

        # ── Persist the artifact, then complete ───────────
        artifact_key = processed_key(file_id, result.file_extension)
        await self._storage_call(self.storage.write, artifact_key, result.content, result.mime_type)

        async with self.session_factory() as db, db.begin():
            current = await repo.get_file_record(db, file_id, for_update=True)
            completed = False
            if current is not None and current.status == FileStatus.PROCESSING:
                completed = await repo.transition_status(
                    db,
                    current,
                    FileStatus.COMPLETED,
                    processed_artifact_ref=artifact_key,
                    processed_mime_type=result.mime_type,
                    metadata_=repo.merge_metadata(current.metadata_, result.metadata),
                )
            final_status = current.status if current is not None else None

        if not completed:
            # Cancelled (or otherwise settled) while the processor ran
            log.info("Completion skipped", status=final_status)
            if final_status != FileStatus.COMPLETED:
                await self._discard_blob(artifact_key)
            return ProcessOutcome(file_id=file_id, status=final_status or "deleted", skipped=True)

        log.info("Processing completed", artifact=artifact_key, size=len(result.content))
        return ProcessOutcome(file_id=file_id, status=FileStatus.COMPLETED.value, artifact_ref=artifact_key)

    async def record_terminal_failure(self, file_id: str, error: str) -> FileRecord | None:
        """
        Settle a record in `failed` after the queue gave up on it.

        Runs on the final attempt, so the record never stays in
        `pending` / `processing` forever.  Settled records are left alone.
        """
        async with self.session_factory() as db, db.begin():
            record = await repo.get_file_record(db, file_id, for_update=True)
            if record is None:
                logger.warning("Terminal failure for unknown record", file_id=file_id)
                return None
            if record.status in _CANCELLABLE:
                await repo.transition_status(db, record, FileStatus.FAILED, error_message=error)
                logger.error("Processing failed permanently", file_id=file_id, error=error)
            return record

    async def requeue_for_redelivery(self, file_id: str) -> FileRecord | None:
        """failed -> pending without enqueueing; the queue redelivers itself."""
        async with self.session_factory() as db, db.begin():
            record = await repo.get_file_record(db, file_id, for_update=True)
            if record is None:
                return None
            if record.status == FileStatus.FAILED:
                await repo.transition_status(db, record, FileStatus.PENDING)
            return record

    # ═══════════════════════════════════════════════════════
    #  Queries
    # ═══════════════════════════════════════════════════════

    async def get_status(self, file_id: str) -> FileRecord:
        async with self.session_factory() as db:
            record = await repo.get_file_record(db, file_id)
        if record is None:
            raise FileRecordNotFoundError(f"File {file_id} not found", file_id=file_id)
        return record

    async def list_files(
        self,
        *,
        user_id: int | None = None,
        status: str | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> list[FileRecord]:
        async with self.session_factory() as db:
            return await repo.list_file_records(
                db, user_id=user_id, status=status, offset=offset, limit=limit
            )

    async def get_statistics(self) -> FileStatistics:
        stale_before = utcnow() - timedelta(minutes=self.settings.STALE_PROCESSING_MINUTES)
        async with self.session_factory() as db:
            by_status = await repo.count_by_status(db)
            by_type = await repo.count_by_type(db)
            stale = await repo.count_stale_processing(db, stale_before)
            failures = await repo.list_recent_failures(db)

        return FileStatistics(
            counts_by_status=by_status,
            counts_by_type=by_type,
            queue_depth=by_status.get(FileStatus.PENDING.value, 0),
            stale_processing_count=stale,
            recent_failures=[
                FailureSummary(
                    file_id=r.file_id,
                    processing_type=r.processing_type,
                    error_message=r.error_message,
                    retry_count=r.retry_count,
                    failed_at=r.failed_at,
                )
                for r in failures
            ],
        )

    # ═══════════════════════════════════════════════════════
    #  Retry / Cancel
    # ═══════════════════════════════════════════════════════

    async def retry(self, file_id: str) -> FileRecord:
        """failed -> pending, then enqueue a fresh task."""
        async with self.session_factory() as db, db.begin():
            record = await self._require(db, file_id)
            if record.status != FileStatus.FAILED:
                raise IneligibleOperationError(
                    f"Only failed files can be retried (current status: {record.status})",
                    file_id=file_id,
                    operation="retry",
                    current_status=record.status,
                )
            previous_error = record.error_message
            previous_retries = record.retry_count
            if not await repo.transition_status(db, record, FileStatus.PENDING):
                raise IneligibleOperationError(
                    f"File changed state during retry (current status: {record.status})",
                    file_id=file_id,
                    operation="retry",
                    current_status=record.status,
                )

        try:
            await self._send_task(record)
        except QueueUnavailableError:
            async with self.session_factory() as db, db.begin():
                current = await repo.get_file_record(db, file_id, for_update=True)
                if current is not None and current.status == FileStatus.PENDING:
                    await repo.transition_status(
                        db,
                        current,
                        FileStatus.FAILED,
                        error_message=previous_error,
                        retry_count=previous_retries,
                    )
            raise

        logger.info("Retry queued", file_id=file_id, retry_count=record.retry_count)
        return record

    async def cancel(self, file_id: str) -> FileRecord:
        """
        pending / processing -> cancelled.

        Cancelling an already-cancelled file succeeds without a write;
        completed and failed files are rejected.  Blobs are kept until
        cleanup.
        """
        async with self.session_factory() as db, db.begin():
            record = await self._require(db, file_id)
            if record.status == FileStatus.CANCELLED:
                return record
            if record.status not in _CANCELLABLE:
                raise IneligibleOperationError(
                    f"Cannot cancel a file in status '{record.status}'",
                    file_id=file_id,
                    operation="cancel",
                    current_status=record.status,
                )
            won = await repo.transition_status(db, record, FileStatus.CANCELLED)
            if not won and record.status != FileStatus.CANCELLED:
                raise IneligibleOperationError(
                    f"Cannot cancel a file in status '{record.status}'",
                    file_id=file_id,
                    operation="cancel",
                    current_status=record.status,
                )

        logger.info("File cancelled", file_id=file_id)
        return record

    # ═══════════════════════════════════════════════════════
    #  Download
    # ═══════════════════════════════════════════════════════

    async def resolve_download(self, file_id: str) -> DownloadTarget:
        """Locate a completed file's artifact from its persisted reference."""
        record = await self.get_status(file_id)
        if not record.download_ready:
            raise DownloadNotReadyError(
                f"File is not ready for download (status: {record.status})",
                file_id=file_id,
                operation="download",
                current_status=record.status,
            )

        ref = record.processed_artifact_ref
        extension = PurePosixPath(ref).suffix.lstrip(".")
        stem = PurePosixPath(record.original_name).stem or file_id
        suggested = f"processed_{stem}.{extension}" if extension else f"processed_{stem}"

        return DownloadTarget(
            blob_ref=ref,
            suggested_file_name=suggested,
            mime_type=record.processed_mime_type or "application/octet-stream",
        )

    async def read_artifact(self, target: DownloadTarget) -> bytes:
        return await self._storage_call(self.storage.read, target.blob_ref)

    # ═══════════════════════════════════════════════════════
    #  Cleanup
    # ═══════════════════════════════════════════════════════

    async def cleanup(self, retention_days: int | None = None, *, batch_size: int = 500) -> int:
        """
        Delete settled records (completed / failed / cancelled) older
        than `retention_days`, with their blobs.  Pending and processing
        records are never touched.  Returns the number of records removed.
        """
        days = self.settings.RETENTION_DAYS if retention_days is None else retention_days
        cutoff = utcnow() - timedelta(days=days)
        log = logger.bind(retention_days=days, cutoff=cutoff.isoformat())

        removed = 0
        while True:
            async with self.session_factory() as db, db.begin():
                candidates = await repo.list_expired_records(db, cutoff, limit=batch_size, for_update=True)
                if not candidates:
                    break
                ids = [r.file_id for r in candidates]
                await repo.delete_expired_records(db, ids, cutoff)
                survivors = await repo.existing_file_ids(db, ids)

            deleted = [r for r in candidates if r.file_id not in survivors]
            for record in deleted:
                await self._discard_blob(original_key(record.file_id))
                if record.processed_artifact_ref:
                    await self._discard_blob(record.processed_artifact_ref)

            removed += len(deleted)
            if not deleted or len(candidates) < batch_size:
                break

        log.info("Cleanup finished", removed=removed)
        return removed

    # ═══════════════════════════════════════════════════════
    #  Internal helpers
    # ═══════════════════════════════════════════════════════

    async def _require(self, db: AsyncSession, file_id: str) -> FileRecord:
        record = await repo.get_file_record(db, file_id, for_update=True)
        if record is None:
            raise FileRecordNotFoundError(f"File {file_id} not found", file_id=file_id)
        return record

    async def _storage_call(self, func, *args):
        timeout = self.settings.STORAGE_TIMEOUT_SECONDS
        try:
            return await run_bounded(func, *args, timeout=timeout)
        except asyncio.TimeoutError:
            raise ProcessingTimeoutError(
                f"Storage operation {getattr(func, '__name__', func)} timed out after {timeout}s",
                timeout_seconds=timeout,
            ) from None

    async def _run_processor(self, func, data: bytes, meta: FileMeta) -> ProcessingResult:
        timeout = self.settings.PROCESSING_TIMEOUT_SECONDS
        try:
            return await run_bounded(func, data, meta, timeout=timeout)
        except asyncio.TimeoutError:
            raise ProcessingTimeoutError(
                f"Processor timed out after {timeout}s",
                file_id=meta.file_id,
                timeout_seconds=timeout,
            ) from None

    async def _load_original(self, record: FileRecord) -> tuple[bytes, FileMeta]:
        key = original_key(record.file_id)
        data = await self._storage_call(self.storage.read, key)
        info = await self._storage_call(self.storage.stat, key)
        meta = FileMeta(
            file_id=record.file_id,
            original_name=record.original_name,
            mime_type=record.mime_type,
            size_bytes=len(data),
            stored_at=info.modified_at,
            uploaded_at=record.created_at,
        )
        return data, meta

    async def _settle_failed(
        self,
        file_id: str,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> str | None:
        """processing -> failed.  Returns the record's resulting status."""
        async with self.session_factory() as db, db.begin():
            record = await repo.get_file_record(db, file_id, for_update=True)
            if record is None:
                return None
            if record.status != FileStatus.PROCESSING:
                return record.status
            values: dict[str, Any] = {"error_message": message}
            if metadata:
                values["metadata_"] = repo.merge_metadata(record.metadata_, metadata)
            await repo.transition_status(db, record, FileStatus.FAILED, **values)
            return record.status

    async def _set_progress(self, file_id: str, progress: int) -> None:
        async with self.session_factory() as db, db.begin():
            await repo.update_progress(db, file_id, progress)

    async def _send_task(self, record: FileRecord) -> None:
        payload = {
            "file_id": record.file_id,
            "stored_file_name": record.stored_file_name,
            "processing_type": record.processing_type,
            "user_id": record.user_id,
        }
        try:
            await asyncio.to_thread(self._enqueue, payload)
        except Exception as exc:
            raise QueueUnavailableError(
                f"Could not enqueue processing task: {exc}",
                file_id=record.file_id,
            ) from exc

    async def _discard_blob(self, key: str) -> None:
        """Best-effort blob removal used by compensation and cleanup."""
        try:
            await self._storage_call(self.storage.delete, key)
        except (StorageError, ProcessingTimeoutError) as exc:
            logger.warning("Blob removal failed", key=key, error=str(exc))
