"""
S3 / MinIO blob storage (boto3).
"""

from __future__ import annotations

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from fileproc.core.logging import get_logger
from fileproc.pipeline.errors import BlobNotFoundError, StorageError
from fileproc.storage.base import BlobInfo, BlobStorage

logger = get_logger(__name__)

_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}


class S3BlobStorage(BlobStorage):
    """Blob storage in an S3-compatible bucket."""

    name = "s3"

    def __init__(
        self,
        bucket: str,
        *,
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        region: str | None = None,
        client=None,
    ) -> None:
        self.bucket = bucket
        self.client = client or boto3.client(
            "s3",
            endpoint_url=endpoint_url or None,
            aws_access_key_id=access_key or None,
            aws_secret_access_key=secret_key or None,
            region_name=region or None,
        )

    @staticmethod
    def _error_code(exc: ClientError) -> str:
        return exc.response.get("Error", {}).get("Code", "Unknown")

    def write(self, key: str, content: bytes, content_type: str | None = None) -> None:
        extra = {"ContentType": content_type} if content_type else {}
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=content, **extra)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"S3 upload failed for {key}: {exc}", details={"key": key}) from exc
        logger.debug("Blob written", key=key, bucket=self.bucket, size=len(content))

    def read(self, key: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except ClientError as exc:
            if self._error_code(exc) in _MISSING_CODES:
                raise BlobNotFoundError(f"Blob not found: {key}", key=key) from None
            raise StorageError(f"S3 download failed for {key}: {exc}", details={"key": key}) from exc
        except BotoCoreError as exc:
            raise StorageError(f"S3 download failed for {key}: {exc}", details={"key": key}) from exc

    def delete(self, key: str) -> bool:
        if not self.exists(key):
            return False
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"S3 delete failed for {key}: {exc}", details={"key": key}) from exc
        return True

    def exists(self, key: str) -> bool:
        try:
            self.stat(key)
        except BlobNotFoundError:
            return False
        return True

    def stat(self, key: str) -> BlobInfo:
        try:
            head = self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if self._error_code(exc) in _MISSING_CODES:
                raise BlobNotFoundError(f"Blob not found: {key}", key=key) from None
            raise StorageError(f"S3 head failed for {key}: {exc}", details={"key": key}) from exc
        except BotoCoreError as exc:
            raise StorageError(f"S3 head failed for {key}: {exc}", details={"key": key}) from exc
        return BlobInfo(
            key=key,
            size=int(head.get("ContentLength", 0)),
            modified_at=head.get("LastModified"),
        )
