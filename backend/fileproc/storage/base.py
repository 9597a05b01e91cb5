"""
Abstract base class for blob storage backends.

Blobs are opaque byte payloads addressed by a key.  The pipeline uses a
fixed layout:

    uploads/{file_id}                         original upload
    processed/{file_id}_processed.{ext}       processor output

Backends are synchronous; the orchestrator runs them in a worker thread
under a timeout.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from fileproc.core.constants import ORIGINALS_PREFIX, PROCESSED_PREFIX


@dataclass(frozen=True)
class BlobInfo:
    """Stat-like facts about a stored blob."""

    key: str
    size: int
    modified_at: datetime | None = None


def original_key(file_id: str) -> str:
    """Storage key for an uploaded original."""
    return f"{ORIGINALS_PREFIX}/{file_id}"


def processed_key(file_id: str, extension: str) -> str:
    """Storage key for a processed artifact."""
    return f"{PROCESSED_PREFIX}/{file_id}_processed.{extension.lstrip('.')}"


class BlobStorage(ABC):
    """Base interface for blob storage backends."""

    name: str = "abstract"

    @abstractmethod
    def write(self, key: str, content: bytes, content_type: str | None = None) -> None:
        """Store `content` under `key`, replacing any existing blob."""
        ...

    @abstractmethod
    def read(self, key: str) -> bytes:
        """Return the blob's bytes.  Raise BlobNotFoundError if absent."""
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete a blob.  Returns False when it did not exist."""
        ...

    @abstractmethod
    def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    def stat(self, key: str) -> BlobInfo:
        """Return size / modification time.  Raise BlobNotFoundError if absent."""
        ...
