"""
Tests for the Celery processing / maintenance tasks.

Tasks are executed in-process with `task.run()` under a pushed request
context; the worker's engine, blob storage and registry builders are
patched to the test fixtures.
"""

import asyncio
from datetime import timedelta
from unittest.mock import patch

import pytest
from celery.exceptions import Retry, SoftTimeLimitExceeded
from sqlalchemy import update

import celeryconfig
from fileproc.core.config import settings
from fileproc.core.constants import FileStatus
from fileproc.db.models import FileRecord
from fileproc.db.models.base import utcnow
from fileproc.processing.processors import Processor
from fileproc.storage.base import original_key
from fileproc.tasks.maintenance_tasks import cleanup_expired_files
from fileproc.tasks.processing_tasks import (
    PROCESS_FILE_TASK,
    enqueue_processing,
    process_file,
    retry_countdown,
)


class ExplodingProcessor(Processor):
    processing_type = "explode"

    def process(self, data, meta):
        raise RuntimeError("disk on fire")


@pytest.fixture
def worker(db_engine, storage, registry):
    """Point the worker-side builders at the test database and storage."""
    with patch("fileproc.tasks.processing_tasks.make_session_factory", return_value=db_engine), \
         patch("fileproc.tasks.processing_tasks.build_blob_storage", return_value=storage), \
         patch("fileproc.tasks.processing_tasks.build_default_registry", return_value=registry):
        yield


def _run_task(task, *args, retries=0, **kwargs):
    task.push_request(id="task-1", retries=retries)
    try:
        return task.run(*args, **kwargs)
    finally:
        task.pop_request()


def _upload(orchestrator, data=b"hello\nworld", name="notes.txt", processing_type="text_transform"):
    return asyncio.run(orchestrator.upload(data, name, processing_type))


def _status(orchestrator, file_id):
    return asyncio.run(orchestrator.get_status(file_id))


class TestEnqueue:

    def test_enqueue_sends_payload_as_kwargs(self):
        payload = {"file_id": "f-1", "stored_file_name": "f-1", "processing_type": "metadata", "user_id": None}

        with patch.object(process_file, "apply_async") as apply_async:
            enqueue_processing(payload)

        apply_async.assert_called_once_with(kwargs=payload)

    def test_retry_countdown_backs_off_and_caps(self):
        assert retry_countdown(0) == 10
        assert retry_countdown(1) == 20
        assert retry_countdown(3) == 80
        assert retry_countdown(20) == 600


class TestProcessFileTask:

    def test_completes_file(self, worker, orchestrator):
        record = _upload(orchestrator)

        result = _run_task(process_file, record.file_id, processing_type="text_transform")

        assert result["status"] == FileStatus.COMPLETED
        assert result["artifact_ref"] == f"processed/{record.file_id}_processed.txt"
        assert _status(orchestrator, record.file_id).status == FileStatus.COMPLETED

    def test_second_delivery_is_a_no_op(self, worker, orchestrator):
        record = _upload(orchestrator)
        _run_task(process_file, record.file_id)

        result = _run_task(process_file, record.file_id)

        assert result["skipped"] is True
        assert result["status"] == FileStatus.COMPLETED

    def test_missing_record_is_dropped(self, worker):
        result = _run_task(process_file, "no-such-file")

        assert result == {"file_id": "no-such-file", "status": None, "dropped": True}

    def test_processor_fault_is_retried_with_backoff(self, worker, orchestrator, registry):
        registry.register("explode", ExplodingProcessor())
        record = _upload(orchestrator, processing_type="explode")

        with patch.object(process_file, "retry", side_effect=Retry("again")) as retry:
            with pytest.raises(Retry):
                _run_task(process_file, record.file_id, retries=1)

        _, kwargs = retry.call_args
        assert isinstance(kwargs["exc"], RuntimeError)
        assert kwargs["countdown"] == 20
        assert _status(orchestrator, record.file_id).status == FileStatus.PROCESSING

    def test_missing_original_is_requeued_while_attempts_remain(self, worker, orchestrator, storage):
        record = _upload(orchestrator)
        storage.delete(original_key(record.file_id))

        with patch.object(process_file, "retry", side_effect=Retry("again")) as retry:
            with pytest.raises(Retry):
                _run_task(process_file, record.file_id)

        retry.assert_called_once_with(countdown=10)
        assert _status(orchestrator, record.file_id).status == FileStatus.PENDING

    def test_missing_original_settles_failed_on_last_attempt(self, worker, orchestrator, storage):
        record = _upload(orchestrator)
        storage.delete(original_key(record.file_id))

        with patch.object(process_file, "retry") as retry:
            result = _run_task(process_file, record.file_id, retries=process_file.max_retries)

        retry.assert_not_called()
        assert result["status"] == FileStatus.FAILED
        assert result["retryable"] is True
        assert _status(orchestrator, record.file_id).status == FileStatus.FAILED

    def test_soft_time_limit_is_retried_while_attempts_remain(self, worker, orchestrator):
        record = _upload(orchestrator)

        with patch("fileproc.tasks.processing_tasks._process", side_effect=SoftTimeLimitExceeded()), \
             patch.object(process_file, "retry", side_effect=Retry("again")) as retry:
            with pytest.raises(Retry):
                _run_task(process_file, record.file_id)

        _, kwargs = retry.call_args
        assert isinstance(kwargs["exc"], SoftTimeLimitExceeded)
        assert kwargs["countdown"] == 10

    def test_soft_time_limit_settles_failed_on_last_attempt(self, worker, orchestrator):
        record = _upload(orchestrator)

        with patch("fileproc.tasks.processing_tasks._process", side_effect=SoftTimeLimitExceeded()), \
             patch.object(process_file, "retry") as retry:
            with pytest.raises(SoftTimeLimitExceeded):
                _run_task(process_file, record.file_id, retries=process_file.max_retries)

        retry.assert_not_called()
        failed = _status(orchestrator, record.file_id)
        assert failed.status == FileStatus.FAILED
        assert failed.error_message == "Processing exceeded the task time limit"

    def test_on_failure_records_terminal_failure(self, worker, orchestrator, registry):
        registry.register("explode", ExplodingProcessor())
        record = _upload(orchestrator, processing_type="explode")
        with patch.object(process_file, "retry", side_effect=Retry("again")):
            with pytest.raises(Retry):
                _run_task(process_file, record.file_id)

        process_file.on_failure(
            RuntimeError("disk on fire"), "task-1", (), {"file_id": record.file_id}, None
        )

        failed = _status(orchestrator, record.file_id)
        assert failed.status == FileStatus.FAILED
        assert failed.error_message == "RuntimeError: disk on fire"

    def test_on_failure_reads_positional_file_id(self, worker, orchestrator):
        record = _upload(orchestrator)

        process_file.on_failure(TimeoutError("slow"), "task-1", (record.file_id,), {}, None)

        assert _status(orchestrator, record.file_id).status == FileStatus.FAILED


class TestTimeLimits:

    def test_process_file_soft_limit_outlasts_inner_timeouts(self):
        limits = celeryconfig.task_annotations[PROCESS_FILE_TASK]
        inner = settings.PROCESSING_TIMEOUT_SECONDS + 2 * settings.STORAGE_TIMEOUT_SECONDS

        assert limits["soft_time_limit"] > inner
        assert limits["time_limit"] > limits["soft_time_limit"]


class TestCleanupTask:

    def test_removes_expired_records(self, worker, orchestrator, session_factory):
        record = _upload(orchestrator)
        _run_task(process_file, record.file_id)

        async def age_record():
            old = utcnow() - timedelta(days=90)
            async with session_factory() as db, db.begin():
                await db.execute(
                    update(FileRecord)
                    .where(FileRecord.file_id == record.file_id)
                    .values(created_at=old, completed_at=old)
                )

        asyncio.run(age_record())

        result = _run_task(cleanup_expired_files, retention_days=30)

        assert result == {"removed": 1, "retention_days": 30}
