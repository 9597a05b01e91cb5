"""
Property-based tests for the FileRecord lifecycle.

Random sequences of worker / client operations are applied to a single
upload; after every step the record must stay internally consistent.
"""

import asyncio
import tempfile
from pathlib import Path

from hypothesis import given, settings
from hypothesis import strategies as st

from fileproc.core.config import Settings
from fileproc.core.constants import FileStatus
from fileproc.pipeline.errors import IneligibleOperationError
from fileproc.pipeline.orchestrator import FileProcessingOrchestrator
from fileproc.processing.registry import build_default_registry
from fileproc.storage.local import LocalBlobStorage

from conftest import make_database


UPLOADS = st.sampled_from(
    [
        (b'{"a": [1, 2]}', "good.json", "json_format"),
        (b"{", "bad.json", "json_format"),
        (b"x,y\n1,2\n", "table.csv", "csv_analyze"),
        (b"   \n", "blank.csv", "csv_analyze"),
        (b"plain words\n", "notes.txt", "text_transform"),
    ]
)

OPERATIONS = st.lists(
    st.sampled_from(["process", "retry", "cancel", "give_up", "requeue"]),
    max_size=8,
)


def _assert_consistent(record):
    if record.status == FileStatus.COMPLETED:
        assert record.processed_artifact_ref is not None
        assert record.completed_at is not None
        assert record.progress == 100
    else:
        assert record.processed_artifact_ref is None

    if record.status == FileStatus.FAILED:
        assert record.error_message
        assert record.failed_at is not None
    else:
        assert record.error_message is None


async def _run(workdir: Path, upload, operations):
    factory, engine = make_database(workdir / "fileproc.db")
    orchestrator = FileProcessingOrchestrator(
        session_factory=factory,
        storage=LocalBlobStorage(workdir / "blobs"),
        registry=build_default_registry(),
        enqueue=lambda payload: None,
        settings=Settings(PROCESSING_TIMEOUT_SECONDS=5.0, STORAGE_TIMEOUT_SECONDS=5.0),
    )
    data, name, processing_type = upload

    try:
        record = await orchestrator.upload(data, name, processing_type)
        _assert_consistent(record)
        last_version = record.version
        last_retries = record.retry_count

        for operation in operations:
            try:
                if operation == "process":
                    await orchestrator.process_one(record.file_id)
                elif operation == "retry":
                    await orchestrator.retry(record.file_id)
                elif operation == "cancel":
                    await orchestrator.cancel(record.file_id)
                elif operation == "give_up":
                    await orchestrator.record_terminal_failure(record.file_id, "worker gave up")
                else:
                    await orchestrator.requeue_for_redelivery(record.file_id)
            except IneligibleOperationError:
                pass

            current = await orchestrator.get_status(record.file_id)
            _assert_consistent(current)
            assert current.version >= last_version
            assert current.retry_count >= last_retries
            last_version = current.version
            last_retries = current.retry_count
    finally:
        await engine.dispose()


class TestLifecycleInvariants:

    @settings(max_examples=30, deadline=None)
    @given(UPLOADS, OPERATIONS)
    def test_record_stays_consistent(self, upload, operations):
        with tempfile.TemporaryDirectory() as workdir:
            asyncio.run(_run(Path(workdir), upload, operations))
