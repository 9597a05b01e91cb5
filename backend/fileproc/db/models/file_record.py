"""
FileRecord: durable status row for one uploaded file.

One row per upload, keyed by the file ID handed back to the client.
The row is the single source of truth for status, timestamps, error,
processed-artifact reference, progress and retry count.

`version` is bumped on every status write and used as the
compare-and-swap token, so two writers racing on the same file cannot
interleave their updates.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Column, DateTime, Index, Integer, String, Text

from fileproc.core.constants import FileStatus
from fileproc.db.models.base import Base, JSONType, generate_uuid, utcnow


class FileRecord(Base):
    """One row per uploaded file."""

    __tablename__ = "file_records"

    file_id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(Integer, nullable=True, index=True)

    # ── Status / Progress ────────────────────
    status = Column(String(20), nullable=False, default=FileStatus.PENDING.value, index=True)
    processing_type = Column(String(50), nullable=False, index=True)
    progress = Column(Integer, nullable=False, default=0)
    retry_count = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=0)

    # ── Upload metadata (set once) ───────────
    original_name = Column(String(500), nullable=False)
    stored_file_name = Column(String(255), nullable=False)
    mime_type = Column(String(100), nullable=True)
    file_size_bytes = Column(BigInteger, nullable=False, default=0)

    # ── Output ────────────────────────────────
    processed_artifact_ref = Column(String(1000), nullable=True)
    processed_mime_type = Column(String(100), nullable=True)

    # ── Error ─────────────────────────────────
    error_message = Column(Text, nullable=True)

    # ── Producer tags + processor-derived metadata ──
    metadata_ = Column("metadata", JSONType, nullable=False, default=dict)

    # ── Timing (UTC) ─────────────────────────
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_file_records_status_created_at", "status", "created_at"),
        Index("ix_file_records_user_id_status", "user_id", "status"),
        Index("ix_file_records_processing_type_status", "processing_type", "status"),
    )

    @property
    def is_completed(self) -> bool:
        return self.status == FileStatus.COMPLETED

    @property
    def download_ready(self) -> bool:
        return self.is_completed and self.processed_artifact_ref is not None

    def __repr__(self) -> str:
        return f"<FileRecord {self.file_id} type={self.processing_type} status={self.status} v={self.version}>"
