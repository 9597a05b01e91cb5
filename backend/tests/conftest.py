"""
Pytest configuration and fixtures for fileproc tests.

Database: a throwaway SQLite file per test.  Tables are created with a
sync engine; the code under test talks to it through aiosqlite.
Storage: LocalBlobStorage under tmp_path.
Queue: enqueued task payloads are collected in a list.
"""

import asyncio
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from fileproc.core.config import Settings
from fileproc.db.models import Base
from fileproc.pipeline.orchestrator import FileProcessingOrchestrator
from fileproc.processing.registry import build_default_registry
from fileproc.storage.local import LocalBlobStorage


# =======================
# DATABASE
# =======================

def make_database(path: Path):
    """Create the schema at `path` and return (session factory, async engine)."""
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    engine = create_async_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return factory, engine


@pytest.fixture
def db_engine(tmp_path):
    factory, engine = make_database(tmp_path / "fileproc.db")
    yield factory, engine
    asyncio.run(engine.dispose())


@pytest.fixture
def session_factory(db_engine):
    return db_engine[0]


# =======================
# STORAGE / QUEUE / SETTINGS
# =======================

@pytest.fixture
def storage(tmp_path) -> LocalBlobStorage:
    return LocalBlobStorage(tmp_path / "blobs")


@pytest.fixture
def enqueued() -> list[dict]:
    """Payloads handed to the queue, in order."""
    return []


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        UPLOAD_MAX_SIZE=64 * 1024,
        PROCESSING_TIMEOUT_SECONDS=5.0,
        STORAGE_TIMEOUT_SECONDS=5.0,
        STALE_PROCESSING_MINUTES=30,
        RETENTION_DAYS=30,
        PUBLIC_BASE_URL="",
    )


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def orchestrator(session_factory, storage, registry, enqueued, test_settings):
    return FileProcessingOrchestrator(
        session_factory=session_factory,
        storage=storage,
        registry=registry,
        enqueue=enqueued.append,
        settings=test_settings,
    )
