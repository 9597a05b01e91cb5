"""
FileRecord repository containing all data-access operations for the
file_records table (the status store).

Repository rules:
- Pure data-access logic only
- Every function receives AsyncSession explicitly
- Functions flush, but never commit
- Status writes are compare-and-swap on (file_id, status, version)
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fileproc.core.constants import REMOVABLE_STATUSES, FileStatus, can_transition
from fileproc.core.logging import get_logger
from fileproc.db.models.base import utcnow
from fileproc.db.models.file_record import FileRecord
from fileproc.pipeline.errors import IneligibleOperationError

logger = get_logger(__name__)


async def create_file_record(
    db: AsyncSession,
    *,
    file_id: str,
    processing_type: str,
    original_name: str,
    stored_file_name: str,
    file_size_bytes: int,
    mime_type: str | None = None,
    user_id: int | None = None,
    metadata: dict[str, Any] | None = None,
) -> FileRecord:
    """Insert a new record in `pending`."""
    now = utcnow()
    record = FileRecord(
        file_id=file_id,
        user_id=user_id,
        status=FileStatus.PENDING.value,
        processing_type=processing_type,
        original_name=original_name,
        stored_file_name=stored_file_name,
        mime_type=mime_type,
        file_size_bytes=file_size_bytes,
        progress=0,
        retry_count=0,
        version=0,
        metadata_=dict(metadata or {}),
        created_at=now,
        updated_at=now,
    )
    db.add(record)
    await db.flush()
    return record


async def get_file_record(
    db: AsyncSession,
    file_id: str,
    *,
    for_update: bool = False,
) -> FileRecord | None:
    """
    Fetch a record by file ID.

    `for_update=True` takes a row lock on PostgreSQL (ignored by SQLite).
    The row is always re-read from the database, never served stale
    from the identity map.
    """
    stmt = select(FileRecord).where(FileRecord.file_id == file_id).execution_options(populate_existing=True)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_file_records(
    db: AsyncSession,
    *,
    user_id: int | None = None,
    status: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> list[FileRecord]:
    """List records newest first, optionally filtered by owner/status."""
    stmt = select(FileRecord).order_by(FileRecord.created_at.desc())
    if user_id is not None:
        stmt = stmt.where(FileRecord.user_id == user_id)
    if status is not None:
        stmt = stmt.where(FileRecord.status == status)
    stmt = stmt.offset(offset).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


def merge_metadata(current: dict[str, Any] | None, extra: dict[str, Any] | None) -> dict[str, Any]:
    """Merge `extra` over `current` without mutating either."""
    merged = dict(current or {})
    merged.update(extra or {})
    return merged


def _timestamp_values(record: FileRecord, target: FileStatus) -> dict[str, Any]:
    """Columns stamped automatically when entering `target`."""
    now = utcnow()
    if target == FileStatus.PROCESSING:
        # A redelivered task keeps the original start time
        if record.status == FileStatus.PROCESSING and record.started_at is not None:
            return {}
        return {"started_at": now}
    if target == FileStatus.COMPLETED:
        return {"completed_at": now, "progress": 100, "error_message": None}
    if target == FileStatus.FAILED:
        return {
            "failed_at": now,
            "retry_count": FileRecord.retry_count + 1,
            "processed_artifact_ref": None,
            "processed_mime_type": None,
        }
    if target == FileStatus.CANCELLED:
        return {"cancelled_at": now, "error_message": None}
    if target == FileStatus.PENDING:
        return {
            "error_message": None,
            "progress": 0,
            "started_at": None,
            "failed_at": None,
        }
    return {}


async def transition_status(
    db: AsyncSession,
    record: FileRecord,
    target: FileStatus | str,
    **values: Any,
) -> bool:
    """
    Move `record` to `target` with a compare-and-swap update.

    The UPDATE only matches when the row still has the status and
    version `record` was loaded with.  Returns True when this writer
    won; False when another writer changed the row first (the record
    is then refreshed to the winner's state).

    Raises IneligibleOperationError for an edge the state machine
    does not allow.
    """
    target = FileStatus(target)
    if not can_transition(record.status, target):
        raise IneligibleOperationError(
            f"Cannot move file from '{record.status}' to '{target}'",
            file_id=record.file_id,
            current_status=record.status,
            operation=f"transition:{target}",
        )

    payload = _timestamp_values(record, target)
    payload.update(values)
    payload["status"] = target.value
    payload["version"] = FileRecord.version + 1
    payload["updated_at"] = utcnow()

    stmt = (
        update(FileRecord)
        .where(
            FileRecord.file_id == record.file_id,
            FileRecord.status == record.status,
            FileRecord.version == record.version,
        )
        .values(**payload)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    await db.flush()
    await db.refresh(record)

    if result.rowcount != 1:
        logger.warning(
            "Status write lost compare-and-swap",
            file_id=record.file_id,
            target=target.value,
            current_status=record.status,
        )
        return False
    return True


async def update_progress(db: AsyncSession, file_id: str, progress: int) -> bool:
    """Best-effort progress update; only applies while processing."""
    stmt = (
        update(FileRecord)
        .where(FileRecord.file_id == file_id, FileRecord.status == FileStatus.PROCESSING.value)
        .values(progress=max(0, min(100, progress)), updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    await db.flush()
    return result.rowcount == 1


async def delete_file_record(db: AsyncSession, file_id: str) -> bool:
    """Hard-delete one record regardless of status (upload compensation)."""
    result = await db.execute(delete(FileRecord).where(FileRecord.file_id == file_id))
    await db.flush()
    return result.rowcount == 1


# ─── Aggregates ───────────────────────────────


async def count_by_status(db: AsyncSession) -> dict[str, int]:
    """Record counts keyed by status; every status is present."""
    result = await db.execute(
        select(FileRecord.status, func.count()).group_by(FileRecord.status)
    )
    counts = {status.value: 0 for status in FileStatus}
    for status, count in result.all():
        counts[status] = count
    return counts


async def count_by_type(db: AsyncSession) -> dict[str, int]:
    """Record counts keyed by processing type."""
    result = await db.execute(
        select(FileRecord.processing_type, func.count()).group_by(FileRecord.processing_type)
    )
    return {processing_type: count for processing_type, count in result.all()}


async def count_stale_processing(db: AsyncSession, started_before: datetime) -> int:
    """Records stuck in `processing` since before `started_before`."""
    result = await db.execute(
        select(func.count())
        .select_from(FileRecord)
        .where(
            FileRecord.status == FileStatus.PROCESSING.value,
            FileRecord.started_at < started_before,
        )
    )
    return int(result.scalar_one())


async def list_recent_failures(db: AsyncSession, limit: int = 10) -> list[FileRecord]:
    """Most recently failed records."""
    result = await db.execute(
        select(FileRecord)
        .where(FileRecord.status == FileStatus.FAILED.value)
        .order_by(FileRecord.failed_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


def _settled_at():
    return func.coalesce(
        FileRecord.completed_at,
        FileRecord.failed_at,
        FileRecord.cancelled_at,
        FileRecord.created_at,
    )


async def list_expired_records(
    db: AsyncSession,
    cutoff: datetime,
    *,
    limit: int = 500,
    for_update: bool = False,
) -> list[FileRecord]:
    """Settled records whose terminal timestamp is older than `cutoff`."""
    stmt = (
        select(FileRecord)
        .where(
            FileRecord.status.in_([s.value for s in REMOVABLE_STATUSES]),
            _settled_at() < cutoff,
        )
        .order_by(FileRecord.created_at)
        .limit(limit)
    )
    if for_update:
        stmt = stmt.with_for_update(skip_locked=True)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def existing_file_ids(db: AsyncSession, file_ids: list[str]) -> set[str]:
    """Subset of `file_ids` that still have a row."""
    if not file_ids:
        return set()
    result = await db.execute(select(FileRecord.file_id).where(FileRecord.file_id.in_(file_ids)))
    return set(result.scalars().all())


async def delete_expired_records(
    db: AsyncSession,
    file_ids: list[str],
    cutoff: datetime,
) -> int:
    """
    Delete the given records, re-checking status and age in the WHERE
    clause so a record that moved back to pending in the meantime
    survives.
    """
    if not file_ids:
        return 0
    result = await db.execute(
        delete(FileRecord)
        .where(
            FileRecord.file_id.in_(file_ids),
            FileRecord.status.in_([s.value for s in REMOVABLE_STATUSES]),
            _settled_at() < cutoff,
        )
        .execution_options(synchronize_session=False)
    )
    await db.flush()
    return result.rowcount
