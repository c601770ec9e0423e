"""Process-local in-memory storage backend."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, List, Tuple

from backup_disks.lib.storage.base import FileInfo, StorageBackend

logger = logging.getLogger(__name__)

__all__ = ["MemoryStorage"]


class MemoryStorage(StorageBackend):
    """Storage backend that keeps objects in process memory.

    Nothing survives the process. Meant for tests, ephemeral environments
    and disks whose archives live elsewhere (the node daemon keeps the
    real files for ``wings`` disks).

    Example:
        >>> storage = MemoryStorage()
        >>> storage.write("node-1/backup.tar.gz", b"...")
        >>> storage.exists("node-1/backup.tar.gz")
        True
    """

    def __init__(self, base_path: str = "", **options) -> None:
        super().__init__(base_path, **options)
        self._objects: Dict[str, Tuple[bytes, datetime]] = {}
        self._lock = threading.Lock()

    @property
    def scheme(self) -> str:
        return "memory"

    def _key(self, path: str) -> str:
        return self.get_full_path(path).rstrip("/")

    def _relative(self, key: str) -> str:
        base = self.base_path.strip("/")
        if base and key.startswith(base + "/"):
            return key[len(base) + 1:]
        return key

    def write(self, path: str, data: bytes) -> FileInfo:
        """Store bytes at a path."""
        key = self._key(path)
        modified = datetime.now(timezone.utc)
        with self._lock:
            self._objects[key] = (bytes(data), modified)
        return FileInfo(path=self._relative(key), size=len(data), modified=modified)

    def read(self, path: str) -> bytes:
        """Read an object's contents."""
        key = self._key(path)
        with self._lock:
            try:
                return self._objects[key][0]
            except KeyError:
                raise FileNotFoundError(f"Object not found: {path}") from None

    def delete(self, path: str) -> bool:
        """Delete an object or every object under a directory-like path."""
        if not path.strip("/"):
            return False
        key = self._key(path)
        dir_prefix = key + "/"
        with self._lock:
            doomed = [k for k in self._objects if k == key or k.startswith(dir_prefix)]
            for k in doomed:
                del self._objects[k]
        return bool(doomed)

    def exists(self, path: str) -> bool:
        """Check if an object or directory-like prefix exists."""
        key = self._key(path)
        dir_prefix = key + "/" if key else ""
        with self._lock:
            if key in self._objects:
                return True
            return any(k.startswith(dir_prefix) for k in self._objects)

    def list(self, prefix: str = "") -> List[FileInfo]:
        """List objects under a prefix."""
        key_prefix = self.get_full_path(prefix)
        with self._lock:
            items = [
                (k, data, modified)
                for k, (data, modified) in self._objects.items()
                if k.startswith(key_prefix)
            ]
        files = [
            FileInfo(path=self._relative(k), size=len(data), modified=modified)
            for k, data, modified in items
        ]
        return sorted(files, key=lambda f: f.path)

    def clear(self) -> None:
        """Drop every stored object."""
        with self._lock:
            self._objects.clear()
