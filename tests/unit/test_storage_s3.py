"""Unit tests for `backup_disks.lib.storage.S3Storage` using a mock boto3 client."""

import io
from typing import List

import pytest
from botocore.exceptions import EndpointConnectionError

from backup_disks.lib.storage import S3Storage, StorageBackend

AWS_BUCKET = "backups"
AWS_PREFIX = "node-1/"


@pytest.fixture
def s3_storage(dummy_s3_client) -> S3Storage:
    return S3Storage(dummy_s3_client, AWS_BUCKET, prefix=AWS_PREFIX)


def write_test_files(storage: S3Storage, paths: List[str]):
    for path in paths:
        storage.write(path, f"data-{path}".encode("utf-8"))


def test_is_a_storage_backend(s3_storage: S3Storage):
    assert isinstance(s3_storage, StorageBackend)
    assert s3_storage.scheme == "s3"
    assert repr(s3_storage) == "S3Storage(bucket='backups', prefix='node-1/')"


def test_write_uses_prefixed_key(s3_storage: S3Storage, dummy_s3_client):
    info = s3_storage.write("3f1c.tar.gz", b"hello")

    assert info.path == "3f1c.tar.gz"
    assert info.size == 5
    assert dummy_s3_client.objects == {"node-1/3f1c.tar.gz": b"hello"}


def test_write_and_read(s3_storage: S3Storage):
    s3_storage.write("data/test.txt", b"hello")
    assert s3_storage.read("data/test.txt") == b"hello"


def test_read_missing_raises_file_not_found(s3_storage: S3Storage):
    with pytest.raises(FileNotFoundError, match="not found"):
        s3_storage.read("missing.tar.gz")


def test_size(s3_storage: S3Storage):
    s3_storage.write("a.bin", b"12345")
    assert s3_storage.size("a.bin") == 5
    with pytest.raises(FileNotFoundError):
        s3_storage.size("missing.bin")


def test_exists_object_and_directory(s3_storage: S3Storage):
    s3_storage.write("mydir/file.txt", b"content")

    assert s3_storage.exists("mydir/file.txt")
    assert s3_storage.exists("mydir")
    assert s3_storage.exists("")
    assert not s3_storage.exists("mydi")
    assert not s3_storage.exists("other/file.txt")


def test_list_is_relative_sorted_and_paginated(s3_storage: S3Storage, dummy_s3_client):
    write_test_files(s3_storage, ["dir/b.txt", "dir/a.txt", "dir/sub/c.csv", "top.txt"])
    dummy_s3_client.objects["node-2/elsewhere.txt"] = b"x"

    files = s3_storage.list()

    assert [f.path for f in files] == ["dir/a.txt", "dir/b.txt", "dir/sub/c.csv", "top.txt"]
    assert files[0].size == len(b"data-dir/a.txt")
    assert files[0].metadata == {"etag": '"etag"'}


def test_list_with_prefix(s3_storage: S3Storage):
    write_test_files(s3_storage, ["dir/a.txt", "dir/sub/b.txt", "other/c.txt"])

    names = [f.path for f in s3_storage.list("dir/")]
    assert names == ["dir/a.txt", "dir/sub/b.txt"]


def test_list_empty(s3_storage: S3Storage):
    assert s3_storage.list() == []


def test_delete_file(s3_storage: S3Storage):
    s3_storage.write("delete/me.txt", b"x")

    assert s3_storage.delete("delete/me.txt")
    assert not s3_storage.exists("delete/me.txt")
    assert s3_storage.delete("delete/me.txt") is False


def test_delete_directory(s3_storage: S3Storage):
    write_test_files(s3_storage, ["mydir/a.txt", "mydir/b.txt", "mydir/sub/c.txt", "keep.txt"])

    assert s3_storage.delete("mydir")
    assert [f.path for f in s3_storage.list()] == ["keep.txt"]


def test_delete_root_is_refused(s3_storage: S3Storage):
    s3_storage.write("a.txt", b"x")
    assert s3_storage.delete("") is False
    assert s3_storage.exists("a.txt")


def test_copy_file(s3_storage: S3Storage):
    s3_storage.write("original.txt", b"payload")
    info = s3_storage.copy("original.txt", "copied.txt")

    assert info.path == "copied.txt"
    assert info.size == 7
    assert s3_storage.read("copied.txt") == b"payload"


def test_streams(dummy_s3_client):
    storage = S3Storage(dummy_s3_client, AWS_BUCKET, options={"StorageClass": "STANDARD_IA"})
    info = storage.write_stream("big.tar.gz", io.BytesIO(b"streamed"))

    assert info.size == 8
    assert storage.read_stream("big.tar.gz").read() == b"streamed"
    assert dummy_s3_client.put_kwargs[-1] == {"StorageClass": "STANDARD_IA"}


def test_no_prefix_uses_bare_keys(dummy_s3_client):
    storage = S3Storage(dummy_s3_client, AWS_BUCKET)
    storage.write("a.txt", b"x")
    assert "a.txt" in dummy_s3_client.objects


def test_transient_errors_are_retried(dummy_s3_client, monkeypatch):
    """Connection failures are retried before surfacing."""
    monkeypatch.setattr("tenacity.nap.time.sleep", lambda seconds: None)
    calls = []
    original = dummy_s3_client.put_object

    def flaky_put(**kwargs):
        calls.append(1)
        if len(calls) < 3:
            raise EndpointConnectionError(endpoint_url="https://s3.local")
        return original(**kwargs)

    dummy_s3_client.put_object = flaky_put
    storage = S3Storage(dummy_s3_client, AWS_BUCKET, max_attempts=3)

    storage.write("a.txt", b"x")

    assert len(calls) == 3
    assert dummy_s3_client.objects["a.txt"] == b"x"


def test_non_transient_errors_are_not_retried(dummy_s3_client):
    calls = []

    def broken_put(**kwargs):
        calls.append(1)
        raise PermissionError("AccessDenied")

    dummy_s3_client.put_object = broken_put
    storage = S3Storage(dummy_s3_client, AWS_BUCKET, max_attempts=5)

    with pytest.raises(PermissionError):
        storage.write("a.txt", b"x")
    assert len(calls) == 1
