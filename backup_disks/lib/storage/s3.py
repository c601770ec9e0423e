"""S3-compatible object storage backend."""

from __future__ import annotations

import logging
from typing import Any, BinaryIO, Dict, List, Optional

from botocore.exceptions import (
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from backup_disks.lib.resilience import with_retry
from backup_disks.lib.storage.base import FileInfo, StorageBackend

logger = logging.getLogger(__name__)

__all__ = ["S3Storage", "TRANSIENT_ERRORS"]

# Network failures worth retrying; anything else surfaces immediately
TRANSIENT_ERRORS = (
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}

# delete_objects accepts at most 1000 keys per request
_DELETE_BATCH = 1000


def _is_not_found(exc: BaseException) -> bool:
    response = getattr(exc, "response", None)
    code = response.get("Error", {}).get("Code") if isinstance(response, dict) else None
    return code in _NOT_FOUND_CODES


class S3Storage(StorageBackend):
    """Backup disk on an S3 bucket, scoped to a key prefix.

    Wraps an already-built boto3 S3 client; credentials, region and
    endpoint are the client's business.

    Example:
        >>> client = boto3.client("s3", region_name="us-east-1")
        >>> storage = S3Storage(client, "backups", prefix="node-1/")
        >>> storage.write("3f1c.tar.gz", archive_bytes)
        >>> [f.path for f in storage.list()]
        ['3f1c.tar.gz']

    Options:
        Extra arguments merged into every put_object/upload_fileobj call
        (e.g. ServerSideEncryption, StorageClass, ACL).
    """

    def __init__(
        self,
        client: Any,
        bucket: str,
        prefix: str = "",
        options: Optional[Dict[str, Any]] = None,
        *,
        max_attempts: int = 3,
    ) -> None:
        super().__init__(prefix or "", **(options or {}))
        self.bucket = bucket
        self._client = client
        self._call = with_retry(
            max_attempts=max(1, int(max_attempts)),
            retry_exceptions=TRANSIENT_ERRORS,
        )(self._invoke)

    @property
    def scheme(self) -> str:
        return "s3"

    @property
    def client(self) -> Any:
        return self._client

    @property
    def prefix(self) -> str:
        return self.base_path

    def _invoke(self, operation: str, **kwargs: Any) -> Any:
        return getattr(self._client, operation)(**kwargs)

    def _key(self, path: str) -> str:
        return self.get_full_path(path)

    def _relative(self, key: str) -> str:
        base = self.base_path.strip("/")
        if base and key.startswith(base + "/"):
            return key[len(base) + 1:]
        return key

    def write(self, path: str, data: bytes) -> FileInfo:
        """Upload bytes as a single object."""
        key = self._key(path)
        self._call("put_object", Bucket=self.bucket, Key=key, Body=data, **self.options)
        logger.debug("Wrote %d bytes to s3://%s/%s", len(data), self.bucket, key)
        return FileInfo(path=self._relative(key), size=len(data))

    def write_stream(self, path: str, stream: BinaryIO) -> FileInfo:
        """Upload a file object using a managed (multipart) transfer."""
        key = self._key(path)
        extra_args = dict(self.options) or None
        self._call(
            "upload_fileobj",
            Fileobj=stream,
            Bucket=self.bucket,
            Key=key,
            ExtraArgs=extra_args,
        )
        return FileInfo(path=self._relative(key), size=self.size(path))

    def read(self, path: str) -> bytes:
        """Download an object's contents."""
        return self.read_stream(path).read()

    def read_stream(self, path: str) -> BinaryIO:
        """Return the streaming body of an object."""
        key = self._key(path)
        try:
            response = self._call("get_object", Bucket=self.bucket, Key=key)
        except Exception as e:
            if _is_not_found(e):
                raise FileNotFoundError(f"Object not found: s3://{self.bucket}/{key}") from e
            raise
        return response["Body"]

    def size(self, path: str) -> int:
        """Return the size of an object without downloading it."""
        key = self._key(path)
        try:
            response = self._call("head_object", Bucket=self.bucket, Key=key)
        except Exception as e:
            if _is_not_found(e):
                raise FileNotFoundError(f"Object not found: s3://{self.bucket}/{key}") from e
            raise
        return int(response.get("ContentLength") or 0)

    def exists(self, path: str) -> bool:
        """Check for an object, then for any object under the path as a directory."""
        key = self._key(path)
        if key:
            try:
                self._call("head_object", Bucket=self.bucket, Key=key)
                return True
            except Exception as e:
                if not _is_not_found(e):
                    raise

        dir_prefix = f"{key.rstrip('/')}/" if key else ""
        response = self._call(
            "list_objects_v2", Bucket=self.bucket, Prefix=dir_prefix, MaxKeys=1
        )
        return bool(response.get("KeyCount") or response.get("Contents"))

    def list(self, prefix: str = "") -> List[FileInfo]:
        """List every object under a prefix."""
        key_prefix = self._key(prefix)
        paginator = self._client.get_paginator("list_objects_v2")

        files: List[FileInfo] = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=key_prefix):
            for obj in page.get("Contents", []):
                files.append(
                    FileInfo(
                        path=self._relative(obj["Key"]),
                        size=obj.get("Size", 0),
                        modified=obj.get("LastModified"),
                        metadata={"etag": obj["ETag"]} if obj.get("ETag") else {},
                    )
                )

        return sorted(files, key=lambda f: f.path)

    def delete(self, path: str) -> bool:
        """Delete an object, or every object under a directory-like path."""
        if not path.strip("/"):
            return False
        key = self._key(path)

        try:
            self._call("head_object", Bucket=self.bucket, Key=key)
        except Exception as e:
            if not _is_not_found(e):
                raise
        else:
            self._call("delete_object", Bucket=self.bucket, Key=key)
            logger.debug("Deleted s3://%s/%s", self.bucket, key)
            return True

        keys = [f.path for f in self.list(path.rstrip("/") + "/")]
        if not keys:
            return False

        full_keys = [self._key(k) for k in keys]
        for start in range(0, len(full_keys), _DELETE_BATCH):
            batch = full_keys[start:start + _DELETE_BATCH]
            self._call(
                "delete_objects",
                Bucket=self.bucket,
                Delete={"Objects": [{"Key": k} for k in batch], "Quiet": True},
            )
        logger.debug("Deleted %d objects under s3://%s/%s/", len(full_keys), self.bucket, key)
        return True

    def copy(self, src: str, dst: str) -> FileInfo:
        """Copy an object server-side."""
        src_key = self._key(src)
        dst_key = self._key(dst)
        self._call(
            "copy_object",
            Bucket=self.bucket,
            CopySource={"Bucket": self.bucket, "Key": src_key},
            Key=dst_key,
        )
        return FileInfo(path=self._relative(dst_key), size=self.size(dst))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(bucket={self.bucket!r}, prefix={self.base_path!r})"
