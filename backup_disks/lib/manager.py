"""Backup disk manager.

Resolves backup disks by name from configuration, caches each handle for
the life of the process, and lets callers register constructors for new
disk kinds at runtime.

Usage:
    from backup_disks import BackupManager, load_config

    manager = BackupManager(load_config("./backups.yaml"))
    disk = manager.disk()            # the default disk
    disk = manager.disk("s3-main")   # a named disk

    manager.extend("dropbox", lambda context, config: DropboxStorage(config["token"]))
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import backup_disks.lib.constructors  # noqa: F401 register built-in constructors
from backup_disks.lib.config import DEFAULT_KEY, DISKS_KEY, ConfigRepository
from backup_disks.lib.env import expand_options, unresolved_references
from backup_disks.lib.errors import (
    BackupDiskError,
    ConfigError,
    ConstructionError,
    ContractViolationError,
    UnsupportedKindError,
)
from backup_disks.lib.registry import Constructor, get_builtin, list_builtins
from backup_disks.lib.storage.base import REQUIRED_METHODS, is_backend_handle

logger = logging.getLogger(__name__)

__all__ = ["BackupManager"]


class BackupManager:
    """Resolve and cache backup disk handles by name.

    Disk configuration lives at ``backups.disks.<name>`` and the default
    disk name at ``backups.default``. A disk's ``kind`` picks the
    constructor: constructors registered with ``extend()`` win over the
    built-in ones (s3, memory, wings).

    Safe to share between threads. Concurrent first requests for the same
    disk wait on a single construction and all receive the same handle,
    or the same exception.
    """

    def __init__(
        self,
        config: Union[ConfigRepository, Mapping[str, Any], None] = None,
        context: Any = None,
    ) -> None:
        """Initialize the manager.

        Args:
            config: Configuration source; plain mappings are wrapped in a
                ConfigRepository
            context: Application context handed to every constructor
        """
        if config is None or isinstance(config, Mapping):
            config = ConfigRepository(config)
        self.config = config
        self.context = context
        self._disks: Dict[str, Any] = {}
        self._custom_creators: Dict[str, Constructor] = {}
        self._pending: Dict[str, "Future[Any]"] = {}
        self._lock = threading.Lock()
        # Names each thread is constructing, outermost first
        self._local = threading.local()

    def disk(self, name: Optional[str] = None) -> Any:
        """Return the handle for a disk, resolving it on first use.

        Args:
            name: Disk name; empty or None means the default disk

        Raises:
            ConfigError: No usable configuration, or no default disk set
            UnsupportedKindError: No constructor handles the disk's kind
            ContractViolationError: The constructor returned a non-disk
            ConstructionError: The constructor itself failed
        """
        if not name:
            name = self.get_default_name()
            if not name:
                raise ConfigError(
                    "No backup disk name given and no default disk is configured.",
                    field=DEFAULT_KEY,
                    suggestion=f"Set '{DEFAULT_KEY}' or pass a disk name.",
                )
        return self.get(name)

    def get(self, name: str) -> Any:
        """Return the cached handle for ``name``, resolving it on a miss.

        Raises:
            ConfigError: A constructor on this thread asked, directly or
                through other disks, for the disk it is building
        """
        if not name:
            return self.disk(name)

        chain = self._chain()
        with self._lock:
            if name in self._disks:
                logger.debug("Reusing backup disk: %s", name)
                return self._disks[name]

            if name in chain:
                cycle = chain[chain.index(name):] + [name]
                raise ConfigError(
                    f"Circular backup disk resolution: {' -> '.join(cycle)}.",
                    disk=name,
                    details={"chain": cycle},
                    suggestion="A disk's constructor must not resolve the disk it is building.",
                )

            future = self._pending.get(name)
            leader = future is None
            if leader:
                future = Future()
                self._pending[name] = future

        if not leader:
            logger.debug("Waiting for in-flight resolution of backup disk: %s", name)
            return future.result()

        chain.append(name)
        try:
            handle = self._resolve(name)
        except BaseException as e:
            with self._lock:
                if self._pending.get(name) is future:
                    del self._pending[name]
            future.set_exception(e)
            raise
        finally:
            chain.pop()

        with self._lock:
            # set() or forget() may have detached this construction meanwhile
            if self._pending.get(name) is future:
                del self._pending[name]
                self._disks[name] = handle
        future.set_result(handle)
        return handle

    def set(self, name: str, disk: Any) -> "BackupManager":
        """Install a pre-built handle under ``name``, bypassing construction."""
        with self._lock:
            self._disks[name] = disk
            self._pending.pop(name, None)
        return self

    def forget(self, names: Union[str, Iterable[str]]) -> "BackupManager":
        """Evict one or more cached disks. Unknown names are ignored."""
        if isinstance(names, str):
            names = [names]

        with self._lock:
            for name in names:
                self._disks.pop(name, None)
                self._pending.pop(name, None)
        return self

    def extend(self, kind: str, constructor: Constructor) -> "BackupManager":
        """Register a constructor for a disk kind.

        Replaces any earlier registration for the kind and overrides a
        built-in constructor of the same name. Already cached disks are
        left as they are.
        """
        if not callable(constructor):
            raise TypeError(f"Constructor for kind [{kind}] must be callable")

        with self._lock:
            self._custom_creators[kind.lower()] = constructor
        logger.debug("Registered custom backup disk constructor: %s", kind)
        return self

    @property
    def default_name(self) -> Optional[str]:
        return self.get_default_name()

    @default_name.setter
    def default_name(self, name: str) -> None:
        self.set_default_name(name)

    def get_default_name(self) -> Optional[str]:
        """Return the name of the default backup disk."""
        return self.config.get(DEFAULT_KEY)

    def set_default_name(self, name: str) -> None:
        """Change the default disk. Cached disks are not touched."""
        self.config.set(DEFAULT_KEY, name)

    def resolved_names(self) -> List[str]:
        """Names of the disks currently cached."""
        with self._lock:
            return sorted(self._disks)

    def available_kinds(self) -> List[str]:
        """All kinds this manager can construct."""
        with self._lock:
            custom = set(self._custom_creators)
        return sorted(custom.union(list_builtins()))

    def get_config(self, name: str) -> Dict[str, Any]:
        """Return the configuration of a disk, or an empty dict."""
        disks = self.config.get(DISKS_KEY) or {}
        config = disks.get(name) if isinstance(disks, Mapping) else None
        return dict(config) if isinstance(config, Mapping) else {}

    def _find_constructor(self, kind: str) -> Optional[Constructor]:
        with self._lock:
            custom = self._custom_creators.get(kind.lower())
        return custom if custom is not None else get_builtin(kind)

    def _chain(self) -> List[str]:
        chain = getattr(self._local, "chain", None)
        if chain is None:
            chain = self._local.chain = []
        return chain

    def _resolve(self, name: str) -> Any:
        config = expand_options(self.get_config(name))

        kind = config.get("kind") or config.get("adapter")
        if not kind:
            raise ConfigError(
                f"Backup disk [{name}] does not have a configured kind.",
                disk=name,
                field="kind",
                suggestion=f"Set '{DISKS_KEY}.{name}.kind' to one of: "
                + ", ".join(self.available_kinds()),
            )
        if not isinstance(kind, str):
            raise ConfigError(
                f"Backup disk [{name}] kind must be a string, got {kind!r}.",
                disk=name,
                field="kind",
                details={"found": type(kind).__name__},
            )

        constructor = self._find_constructor(kind)
        if constructor is None:
            raise UnsupportedKindError(kind, disk=name, available=self.available_kinds())

        unresolved = unresolved_references(config)
        if unresolved:
            field, variable = unresolved[0]
            raise ConfigError(
                f"Backup disk [{name}] field '{field}' references unset "
                f"environment variable ${{{variable}}}.",
                disk=name,
                field=field,
                details={"variable": variable},
                suggestion=f"Export {variable} or define it in a .env file.",
            )

        log_extra = {"disk": name, "kind": kind}
        logger.info("Creating backup disk %s (kind=%s)", name, kind, extra=log_extra)
        try:
            handle = constructor(self.context, config)
        except BackupDiskError as e:
            if e.disk is None:
                e.disk = name
                e.args = (f"[{name}] {e}",)
            logger.error("Backup disk %s is misconfigured: %s", name, e.message, extra=log_extra)
            raise
        except Exception as e:
            logger.error(
                "Failed to create backup disk %s (kind=%s): %s",
                name,
                kind,
                e,
                exc_info=True,
                extra=log_extra,
            )
            raise ConstructionError(
                f"Backup disk [{name}] could not be created.",
                disk=name,
                kind=kind,
                cause=e,
            ) from e

        if not is_backend_handle(handle):
            raise ContractViolationError(
                f"Constructor for kind [{kind}] returned {type(handle).__name__}, "
                f"which does not provide {', '.join(REQUIRED_METHODS)}.",
                disk=name,
                kind=kind,
                returned=handle,
            )

        return handle

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(default={self.get_default_name()!r}, resolved={self.resolved_names()!r})"
