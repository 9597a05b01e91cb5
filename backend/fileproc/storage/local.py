"""
Local filesystem blob storage.

Keys map to paths under a root directory.  Writes go to a temp file in
the target directory and are moved into place with os.replace(), so a
reader never sees a half-written blob.
"""

from __future__ import annotations

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from fileproc.core.logging import get_logger
from fileproc.pipeline.errors import BlobNotFoundError, StorageError
from fileproc.storage.base import BlobInfo, BlobStorage

logger = get_logger(__name__)


class LocalBlobStorage(BlobStorage):
    """Blob storage rooted at a local directory."""

    name = "local"

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if path != self.root and self.root not in path.parents:
            raise StorageError(f"Storage key escapes root: {key}", details={"key": key})
        return path

    def write(self, key: str, content: bytes, content_type: str | None = None) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(content)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.remove(tmp_name)
                raise
        except OSError as exc:
            raise StorageError(f"Failed to write blob {key}: {exc}", details={"key": key}) from exc
        logger.debug("Blob written", key=key, size=len(content))

    def read(self, key: str) -> bytes:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise BlobNotFoundError(f"Blob not found: {key}", key=key) from None
        except OSError as exc:
            raise StorageError(f"Failed to read blob {key}: {exc}", details={"key": key}) from exc

    def delete(self, key: str) -> bool:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StorageError(f"Failed to delete blob {key}: {exc}", details={"key": key}) from exc
        return True

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def stat(self, key: str) -> BlobInfo:
        path = self._path(key)
        try:
            st = path.stat()
        except FileNotFoundError:
            raise BlobNotFoundError(f"Blob not found: {key}", key=key) from None
        return BlobInfo(
            key=key,
            size=st.st_size,
            modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        )
