"""Shared dependencies for API routes."""

from __future__ import annotations

from functools import lru_cache

from fileproc.db.session import async_session
from fileproc.pipeline.orchestrator import FileProcessingOrchestrator
from fileproc.processing.registry import build_default_registry
from fileproc.storage import build_blob_storage
from fileproc.tasks.processing_tasks import enqueue_processing


@lru_cache(maxsize=1)
def get_orchestrator() -> FileProcessingOrchestrator:
    """Process-wide orchestrator bound to the pooled app engine."""
    return FileProcessingOrchestrator(
        session_factory=async_session,
        storage=build_blob_storage(),
        registry=build_default_registry(),
        enqueue=enqueue_processing,
    )
