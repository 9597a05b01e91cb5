"""
Value objects returned by the orchestrator.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class ProcessOutcome:
    """What one process_one() call did."""

    file_id: str
    status: str
    skipped: bool = False
    retryable: bool = False
    error: str | None = None
    artifact_ref: str | None = None


@dataclass(frozen=True)
class DownloadTarget:
    """Where a completed file's artifact lives and how to serve it."""

    blob_ref: str
    suggested_file_name: str
    mime_type: str


@dataclass
class FailureSummary:
    file_id: str
    processing_type: str
    error_message: str | None
    retry_count: int
    failed_at: datetime | None


@dataclass
class FileStatistics:
    """Aggregate queue / status health."""

    counts_by_status: dict[str, int] = field(default_factory=dict)
    counts_by_type: dict[str, int] = field(default_factory=dict)
    queue_depth: int = 0
    stale_processing_count: int = 0
    recent_failures: list[FailureSummary] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(self.counts_by_status.values())

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["total"] = self.total
        return data
