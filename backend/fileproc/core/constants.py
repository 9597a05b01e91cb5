"""Shared constants and enums used across the application."""

from enum import StrEnum


class FileStatus(StrEnum):
    """Lifecycle status of an uploaded file."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ProcessingType(StrEnum):
    """Processor identifiers accepted on upload."""

    TEXT_TRANSFORM = "text_transform"
    CSV_ANALYZE = "csv_analyze"
    JSON_FORMAT = "json_format"
    IMAGE_METADATA = "image_metadata"
    METADATA = "metadata"


# Older clients still send the image processor under its original name.
LEGACY_IMAGE_TYPE = "image_resize"


# Allowed status edges.  processing -> processing is a redelivered task
# reclaiming its record; pending -> failed is the terminal failure recorded
# when every attempt ran out before the record left pending.
ALLOWED_TRANSITIONS: dict[FileStatus, frozenset[FileStatus]] = {
    FileStatus.PENDING: frozenset({FileStatus.PROCESSING, FileStatus.CANCELLED, FileStatus.FAILED}),
    FileStatus.PROCESSING: frozenset({
        FileStatus.PROCESSING,
        FileStatus.COMPLETED,
        FileStatus.FAILED,
        FileStatus.CANCELLED,
    }),
    FileStatus.FAILED: frozenset({FileStatus.PENDING}),
    FileStatus.COMPLETED: frozenset(),
    FileStatus.CANCELLED: frozenset(),
}

# Records cleanup is allowed to remove.
REMOVABLE_STATUSES = frozenset({FileStatus.COMPLETED, FileStatus.FAILED, FileStatus.CANCELLED})


def can_transition(current: str, target: str) -> bool:
    """True when ``current -> target`` is a legal status edge."""
    try:
        return FileStatus(target) in ALLOWED_TRANSITIONS[FileStatus(current)]
    except (KeyError, ValueError):
        return False


class NotificationChannel(StrEnum):
    """Delivery channels for the notification dispatch job."""

    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"
    ALERT = "alert"


class LogLevel(StrEnum):
    """Levels accepted by the log-writing job."""

    EMERGENCY = "emergency"
    ALERT = "alert"
    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"
    NOTICE = "notice"
    INFO = "info"
    DEBUG = "debug"


# Storage key layout
ORIGINALS_PREFIX = "uploads"
PROCESSED_PREFIX = "processed"
