"""Pytest configuration and fixtures."""

from __future__ import annotations

import io
from datetime import datetime, timezone
from typing import Any, Dict, List

import pytest

from backup_disks.lib.config import ConfigRepository


class MockClientError(Exception):
    """Mock botocore ClientError for testing."""

    def __init__(self, code: str, message: str = "Error"):
        self.response = {"Error": {"Code": code, "Message": message}}
        super().__init__(message)


class DummyPaginator:
    """Mock paginator for list_objects_v2."""

    def __init__(self, client: "DummyS3Client", page_size: int = 2):
        self.client = client
        self.page_size = page_size

    def paginate(self, Bucket: str, Prefix: str = "", **kwargs) -> List[Dict[str, Any]]:
        keys = sorted(k for k in self.client.objects if k.startswith(Prefix))
        pages = []
        for start in range(0, len(keys), self.page_size):
            chunk = keys[start:start + self.page_size]
            pages.append(
                {
                    "Contents": [
                        {
                            "Key": key,
                            "Size": len(self.client.objects[key]),
                            "LastModified": self.client.modified,
                            "ETag": '"etag"',
                        }
                        for key in chunk
                    ],
                    "KeyCount": len(chunk),
                }
            )
        return pages or [{"KeyCount": 0}]


class DummyS3Client:
    """In-memory approximation of a boto3 S3 client for testing."""

    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.objects: Dict[str, bytes] = {}
        self.put_kwargs: List[Dict[str, Any]] = []
        self.modified = datetime(2025, 1, 15, tzinfo=timezone.utc)

    def get_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        if Key not in self.objects:
            raise MockClientError("NoSuchKey", "Not found")
        return {"Body": io.BytesIO(self.objects[Key])}

    def put_object(self, Bucket: str, Key: str, Body: bytes, **kwargs) -> Dict[str, Any]:
        self.objects[Key] = Body
        self.put_kwargs.append(kwargs)
        return {}

    def upload_fileobj(self, Fileobj, Bucket: str, Key: str, ExtraArgs=None) -> None:
        self.objects[Key] = Fileobj.read()
        self.put_kwargs.append(ExtraArgs or {})

    def head_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        if Key not in self.objects:
            raise MockClientError("404", "Not found")
        return {"ContentLength": len(self.objects[Key])}

    def delete_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        self.objects.pop(Key, None)
        return {}

    def delete_objects(self, Bucket: str, Delete: Dict[str, List]) -> Dict[str, Any]:
        for obj in Delete.get("Objects", []):
            self.objects.pop(obj["Key"], None)
        return {}

    def copy_object(self, Bucket: str, CopySource: Dict[str, str], Key: str) -> Dict[str, Any]:
        src_key = CopySource["Key"]
        if src_key not in self.objects:
            raise MockClientError("NoSuchKey", "Not found")
        self.objects[Key] = self.objects[src_key]
        return {}

    def list_objects_v2(self, Bucket: str, Prefix: str = "", MaxKeys: int = 1000, **kwargs) -> Dict[str, Any]:
        keys = sorted(k for k in self.objects if k.startswith(Prefix))[:MaxKeys]
        return {
            "Contents": [{"Key": k, "Size": len(self.objects[k])} for k in keys],
            "KeyCount": len(keys),
        }

    def get_paginator(self, operation: str) -> DummyPaginator:
        assert operation == "list_objects_v2"
        return DummyPaginator(self)


@pytest.fixture
def dummy_s3_client() -> DummyS3Client:
    return DummyS3Client()


@pytest.fixture
def boto3_clients(monkeypatch) -> List[DummyS3Client]:
    """Replace boto3.client in the constructors module; collects created clients."""
    created: List[DummyS3Client] = []

    def fake_client(service_name: str, **kwargs: Any) -> DummyS3Client:
        assert service_name == "s3"
        client = DummyS3Client(**kwargs)
        created.append(client)
        return client

    monkeypatch.setattr("backup_disks.lib.constructors.boto3.client", fake_client)
    for var in ("AWS_REGION", "AWS_DEFAULT_REGION", "AWS_ENDPOINT_URL", "AWS_S3_VERIFY_SSL", "AWS_S3_SIGNATURE_VERSION"):
        monkeypatch.delenv(var, raising=False)
    return created


@pytest.fixture
def backups_config() -> ConfigRepository:
    """Configuration with an S3 default disk and an in-memory disk."""
    return ConfigRepository(
        {
            "backups": {
                "default": "s3-main",
                "disks": {
                    "s3-main": {"kind": "s3", "bucket": "backups", "prefix": "node-1/"},
                    "local": {"kind": "memory"},
                },
            }
        }
    )
