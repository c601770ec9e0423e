"""Abstract base class for backup disk storage backends.

Defines the interface that every backup disk handle must implement.
"""

from __future__ import annotations

import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, BinaryIO, Dict, List, Optional

logger = logging.getLogger(__name__)

__all__ = ["StorageBackend", "FileInfo", "REQUIRED_METHODS", "is_backend_handle"]

# Capabilities every backup disk handle must expose
REQUIRED_METHODS = ("write", "read", "delete", "exists", "list")


@dataclass
class FileInfo:
    """Information about an object in storage."""

    path: str
    size: int
    modified: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "path": self.path,
            "size": self.size,
            "modified": self.modified.isoformat() if self.modified else None,
            "metadata": self.metadata,
        }


def is_backend_handle(obj: Any) -> bool:
    """Check whether an object satisfies the backup disk capability set.

    StorageBackend instances always qualify; any other object qualifies
    when it exposes callable write/read/delete/exists/list attributes.
    Classes never qualify, since their methods are unbound.
    """
    if isinstance(obj, StorageBackend):
        return True
    if obj is None or isinstance(obj, type):
        return False
    return all(callable(getattr(obj, name, None)) for name in REQUIRED_METHODS)


class StorageBackend(ABC):
    """Abstract base class for backup disk storage backends.

    Provides a unified interface for storing and retrieving backup archives
    on different storage systems (S3-compatible object storage, memory).

    Paths are relative to the disk root and use forward slashes.
    """

    def __init__(self, base_path: str = "", **options: Any) -> None:
        """Initialize the storage backend.

        Args:
            base_path: Path prefix every object lives under
            **options: Backend-specific options
        """
        self.base_path = base_path
        self.options = options

    @property
    @abstractmethod
    def scheme(self) -> str:
        """Return the scheme for this backend (e.g., 'memory', 's3')."""
        pass

    @abstractmethod
    def write(self, path: str, data: bytes) -> FileInfo:
        """Store bytes at a path, replacing any existing object.

        Returns:
            FileInfo describing the stored object
        """
        pass

    @abstractmethod
    def read(self, path: str) -> bytes:
        """Read an object's contents.

        Raises:
            FileNotFoundError: If nothing is stored at the path
        """
        pass

    @abstractmethod
    def delete(self, path: str) -> bool:
        """Delete an object, or every object under a directory-like path.

        Returns:
            True if anything was deleted, False if not found
        """
        pass

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check if an object (or directory-like prefix) exists."""
        pass

    @abstractmethod
    def list(self, prefix: str = "") -> List[FileInfo]:
        """List every object under a prefix, recursively, sorted by path."""
        pass

    # Convenience methods (can be overridden for efficiency)

    def read_stream(self, path: str) -> BinaryIO:
        """Open an object for reading as a binary file object."""
        return io.BytesIO(self.read(path))

    def write_stream(self, path: str, stream: BinaryIO) -> FileInfo:
        """Store the remaining contents of a binary file object."""
        return self.write(path, stream.read())

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        """Read an object as text."""
        return self.read(path).decode(encoding)

    def write_text(self, path: str, data: str, encoding: str = "utf-8") -> FileInfo:
        """Write text to an object."""
        return self.write(path, data.encode(encoding))

    def size(self, path: str) -> int:
        """Return the size in bytes of an object."""
        return len(self.read(path))

    def copy(self, src: str, dst: str) -> FileInfo:
        """Copy an object.

        Default implementation reads and writes. Subclasses may override
        for more efficient server-side copy.
        """
        return self.write(dst, self.read(src))

    def get_full_path(self, path: str) -> str:
        """Get the full path including base_path."""
        base = self.base_path.strip("/")
        path = path.lstrip("/")
        if not base:
            return path
        if not path:
            return f"{base}/"
        return f"{base}/{path}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(base_path={self.base_path!r})"
