"""Named, lazily-constructed storage disks for backups.

This package resolves a ready-to-use storage handle for a configured
backup disk (S3-compatible bucket, in-memory store, or any kind
registered at runtime) and caches it for reuse.

Usage:
    python -m backup_disks --config ./backups.yaml list
    python -m backup_disks --config ./backups.yaml check s3-main --probe
"""

from backup_disks.lib.config import ConfigRepository, load_config
from backup_disks.lib.errors import (
    BackupDiskError,
    ConfigError,
    ConstructionError,
    ContractViolationError,
    UnsupportedKindError,
)
from backup_disks.lib.manager import BackupManager
from backup_disks.lib.storage import FileInfo, MemoryStorage, S3Storage, StorageBackend

__all__ = [
    "BackupManager",
    "ConfigRepository",
    "load_config",
    "BackupDiskError",
    "ConfigError",
    "ConstructionError",
    "ContractViolationError",
    "UnsupportedKindError",
    "FileInfo",
    "MemoryStorage",
    "S3Storage",
    "StorageBackend",
]
