"""
Tests for the blob storage backends.
"""

import boto3
import pytest
from moto import mock_aws

from fileproc.core.config import Settings
from fileproc.pipeline.errors import BlobNotFoundError, StorageError
from fileproc.storage import LocalBlobStorage, S3BlobStorage, build_blob_storage
from fileproc.storage.base import original_key, processed_key


class TestKeyLayout:

    def test_original_key(self):
        assert original_key("abc") == "uploads/abc"

    def test_processed_key(self):
        assert processed_key("abc", "json") == "processed/abc_processed.json"
        assert processed_key("abc", ".txt") == "processed/abc_processed.txt"


class TestLocalBlobStorage:

    def test_write_read_stat_delete(self, tmp_path):
        storage = LocalBlobStorage(tmp_path)

        storage.write("uploads/one", b"payload")

        assert storage.exists("uploads/one")
        assert storage.read("uploads/one") == b"payload"
        info = storage.stat("uploads/one")
        assert info.size == 7
        assert info.modified_at is not None
        assert storage.delete("uploads/one") is True
        assert storage.delete("uploads/one") is False
        assert not storage.exists("uploads/one")

    def test_overwrite_replaces_content(self, tmp_path):
        storage = LocalBlobStorage(tmp_path)
        storage.write("k", b"first")
        storage.write("k", b"second")

        assert storage.read("k") == b"second"
        assert [p.name for p in tmp_path.iterdir()] == ["k"]

    def test_missing_blob(self, tmp_path):
        storage = LocalBlobStorage(tmp_path)

        with pytest.raises(BlobNotFoundError):
            storage.read("uploads/missing")
        with pytest.raises(BlobNotFoundError):
            storage.stat("uploads/missing")

    def test_key_cannot_escape_root(self, tmp_path):
        storage = LocalBlobStorage(tmp_path / "root")

        with pytest.raises(StorageError):
            storage.write("../outside", b"x")


class TestS3BlobStorage:

    @pytest.fixture
    def s3_storage(self, monkeypatch):
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
        monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
        with mock_aws():
            client = boto3.client("s3", region_name="us-east-1")
            client.create_bucket(Bucket="fileproc-test")
            yield S3BlobStorage("fileproc-test", client=client)

    def test_round_trip(self, s3_storage):
        s3_storage.write("processed/a_processed.txt", b"report", content_type="text/plain")

        assert s3_storage.exists("processed/a_processed.txt")
        assert s3_storage.read("processed/a_processed.txt") == b"report"
        assert s3_storage.stat("processed/a_processed.txt").size == 6

    def test_missing_object(self, s3_storage):
        with pytest.raises(BlobNotFoundError):
            s3_storage.read("uploads/nope")
        assert s3_storage.exists("uploads/nope") is False
        assert s3_storage.delete("uploads/nope") is False

    def test_delete(self, s3_storage):
        s3_storage.write("uploads/x", b"1")

        assert s3_storage.delete("uploads/x") is True
        assert not s3_storage.exists("uploads/x")


class TestBuildBlobStorage:

    def test_local_backend(self, tmp_path):
        storage = build_blob_storage(Settings(STORAGE_BACKEND="local", STORAGE_LOCAL_ROOT=str(tmp_path)))

        assert isinstance(storage, LocalBlobStorage)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            build_blob_storage(Settings(STORAGE_BACKEND="ftp"))
