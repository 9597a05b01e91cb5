"""
Blob storage package: originals and processed artifacts.

`build_blob_storage()` picks the backend from settings:
    STORAGE_BACKEND=local  -> LocalBlobStorage(STORAGE_LOCAL_ROOT)
    STORAGE_BACKEND=s3     -> S3BlobStorage(STORAGE_BUCKET_NAME @ STORAGE_ENDPOINT)
"""

from fileproc.core.config import Settings, settings as default_settings
from fileproc.storage.base import BlobInfo, BlobStorage, original_key, processed_key
from fileproc.storage.local import LocalBlobStorage
from fileproc.storage.s3 import S3BlobStorage


def build_blob_storage(settings: Settings | None = None) -> BlobStorage:
    """Construct the configured storage backend."""
    settings = settings or default_settings
    backend = settings.STORAGE_BACKEND.lower()
    if backend == "s3":
        return S3BlobStorage(
            settings.STORAGE_BUCKET_NAME,
            endpoint_url=settings.STORAGE_ENDPOINT,
            access_key=settings.STORAGE_ACCESS_KEY,
            secret_key=settings.STORAGE_SECRET_KEY,
            region=settings.STORAGE_REGION,
        )
    if backend == "local":
        return LocalBlobStorage(settings.STORAGE_LOCAL_ROOT)
    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND}")


__all__ = [
    "BlobInfo",
    "BlobStorage",
    "LocalBlobStorage",
    "S3BlobStorage",
    "build_blob_storage",
    "original_key",
    "processed_key",
]
