"""
Domain-specific exception hierarchy for the file-processing pipeline.

All exceptions inherit from FileProcessingError so callers can catch
broadly or narrowly as needed.  Each exception carries structured
context (file ID, details) for logging, plus the HTTP status code the
API layer maps it to.
"""

from __future__ import annotations


class FileProcessingError(Exception):
    """Base exception for all pipeline errors."""

    error_code: str = "file_processing_error"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        file_id: str | None = None,
        details: dict | None = None,
    ) -> None:
        self.message = message
        self.file_id = file_id
        self.details = details or {}
        super().__init__(message)


# ─── Client errors ────────────────────────────────────────

class UnsupportedProcessingTypeError(FileProcessingError):
    """The requested processing type is not registered."""

    error_code = "unsupported_processing_type"
    status_code = 422

    def __init__(
        self,
        message: str,
        *,
        processing_type: str | None = None,
        supported: list[str] | None = None,
        **kwargs,
    ) -> None:
        self.processing_type = processing_type
        self.supported = supported or []
        super().__init__(message, **kwargs)


class FileTooLargeError(FileProcessingError):
    """Upload exceeds the configured size cap."""

    error_code = "file_too_large"
    status_code = 413

    def __init__(self, message: str, *, size: int = 0, limit: int = 0, **kwargs) -> None:
        self.size = size
        self.limit = limit
        super().__init__(message, **kwargs)


class EmptyUploadError(FileProcessingError):
    """No file content was supplied."""

    error_code = "file_missing"
    status_code = 422


class FileRecordNotFoundError(FileProcessingError):
    """No FileRecord exists for the given file ID."""

    error_code = "file_not_found"
    status_code = 404


class IneligibleOperationError(FileProcessingError):
    """The operation is not allowed from the record's current status."""

    error_code = "ineligible_operation"
    status_code = 409

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        current_status: str | None = None,
        **kwargs,
    ) -> None:
        self.operation = operation
        self.current_status = current_status
        super().__init__(message, **kwargs)


class DownloadNotReadyError(IneligibleOperationError):
    """Download requested before processing completed."""

    error_code = "download_not_ready"


# ─── Transient system faults ──────────────────────────────

class StorageError(FileProcessingError):
    """Blob storage operation (local disk / S3 / MinIO) failed."""

    error_code = "storage_error"
    status_code = 503


class BlobNotFoundError(StorageError):
    """The addressed blob does not exist."""

    error_code = "blob_not_found"

    def __init__(self, message: str, *, key: str | None = None, **kwargs) -> None:
        self.key = key
        super().__init__(message, **kwargs)


class QueueUnavailableError(FileProcessingError):
    """The processing task could not be enqueued."""

    error_code = "queue_unavailable"
    status_code = 503


class ProcessingTimeoutError(FileProcessingError):
    """Processor execution or blob I/O exceeded its time limit."""

    error_code = "processing_timeout"
    status_code = 504

    def __init__(self, message: str, *, timeout_seconds: float = 0, **kwargs) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(message, **kwargs)
