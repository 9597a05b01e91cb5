"""
Processor: abstract base class for all file processors.

A processor turns the raw bytes of one uploaded file into a report plus
a metadata bag.  Processors are pure: they never write blobs, never
touch the FileRecord, and report bad input through a failed
ProcessingResult instead of raising.  Only real faults (bugs, memory
pressure) escape process().
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

REPORT_SEPARATOR = "=" * 60


@dataclass(frozen=True)
class FileMeta:
    """What a processor may know about its input besides the bytes."""

    file_id: str
    original_name: str
    mime_type: str | None = None
    size_bytes: int = 0
    stored_at: datetime | None = None
    uploaded_at: datetime | None = None


@dataclass
class ProcessingResult:
    """Outcome of a single process() call."""

    success: bool
    content: bytes = b""
    mime_type: str = "text/plain"
    file_extension: str = "txt"
    metadata: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @classmethod
    def ok(
        cls,
        content: bytes | str,
        *,
        mime_type: str = "text/plain",
        file_extension: str = "txt",
        metadata: dict[str, Any] | None = None,
    ) -> ProcessingResult:
        if isinstance(content, str):
            content = content.encode("utf-8")
        return cls(
            success=True,
            content=content,
            mime_type=mime_type,
            file_extension=file_extension,
            metadata=metadata or {},
        )

    @classmethod
    def failure(cls, error: str, metadata: dict[str, Any] | None = None) -> ProcessingResult:
        return cls(success=False, error=error or "Processing failed", metadata=metadata or {})


class Processor(ABC):
    """
    Base class for every processor.

    Subclasses MUST implement:
        - processing_type (str) : registry identifier, e.g. "csv_analyze"
        - title (str)           : report heading
        - process(data, meta)   : the transformation
    """

    processing_type: str = "unnamed"
    title: str = "File Report"

    @abstractmethod
    def process(self, data: bytes, meta: FileMeta) -> ProcessingResult:
        ...

    # ─── Helpers available to all processors ───────────

    def _header(self, meta: FileMeta, *extra: str) -> list[str]:
        """Report header lines: title, source, timestamp, separator."""
        lines = [
            self.title,
            f"Source File: {meta.original_name}",
            f"Processed At: {self._now().isoformat()}",
            *extra,
            REPORT_SEPARATOR,
            "",
        ]
        return lines

    def _now(self) -> datetime:
        """UTC-aware now."""
        return datetime.now(timezone.utc)


def decode_text(data: bytes) -> str:
    """Decode bytes as UTF-8 (BOM tolerant), replacing undecodable bytes."""
    return data.decode("utf-8-sig", errors="replace")
