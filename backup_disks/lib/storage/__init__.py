"""Storage backends for backup disks.

Every backup disk handle offers the same capability set: write, read,
delete, exists and list objects addressed by a path string.

Usage:
    from backup_disks.lib.storage import MemoryStorage

    storage = MemoryStorage()
    storage.write("node-1/backup.tar.gz", data)
    storage.read("node-1/backup.tar.gz")
"""

from backup_disks.lib.storage.base import (
    REQUIRED_METHODS,
    FileInfo,
    StorageBackend,
    is_backend_handle,
)
from backup_disks.lib.storage.memory import MemoryStorage
from backup_disks.lib.storage.s3 import S3Storage

__all__ = [
    "REQUIRED_METHODS",
    "FileInfo",
    "StorageBackend",
    "MemoryStorage",
    "S3Storage",
    "is_backend_handle",
]
