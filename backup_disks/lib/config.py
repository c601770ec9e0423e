"""Configuration source for backup disks.

Backup disks are declared under a ``backups`` section:

    backups:
      default: s3-main
      disks:
        s3-main:
          kind: s3
          bucket: backups
          prefix: node-1/
          key: ${AWS_ACCESS_KEY_ID}
          secret: ${AWS_SECRET_ACCESS_KEY}
        local:
          kind: memory

Usage:
    from backup_disks.lib.config import load_config
    config = load_config("./backups.yaml")
    config.get("backups.default")
"""

from __future__ import annotations

import copy
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from backup_disks.lib.env import expand_options, load_env_file
from backup_disks.lib.errors import ConfigError

logger = logging.getLogger(__name__)

__all__ = [
    "ConfigRepository",
    "load_config",
    "get_config_value",
    "get_bool_config_value",
    "CONFIG_ENV_VAR",
    "DEFAULT_KEY",
    "DISKS_KEY",
]

CONFIG_ENV_VAR = "BACKUP_DISKS_CONFIG"
DEFAULT_KEY = "backups.default"
DISKS_KEY = "backups.disks"

_MISSING = object()


class ConfigRepository:
    """Nested key-value store addressed with dotted paths.

    Example:
        >>> config = ConfigRepository({"backups": {"default": "local"}})
        >>> config.get("backups.default")
        'local'
        >>> config.set("backups.disks.local.kind", "memory")
        >>> config.get("backups.disks.local")
        {'kind': 'memory'}
    """

    def __init__(self, items: Optional[Mapping[str, Any]] = None) -> None:
        self._items: Dict[str, Any] = copy.deepcopy(dict(items or {}))
        self._lock = threading.RLock()

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "ConfigRepository":
        """Load a YAML file, expanding ${VAR} references in string values."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(
                f"Configuration file not found: {path}",
                suggestion=f"Create the file or point {CONFIG_ENV_VAR} at an existing one.",
            )

        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ConfigError(
                f"Configuration file must contain a mapping: {path}",
                details={"found": type(data).__name__},
            )

        logger.debug("Loaded backup configuration from %s", path)
        return cls(expand_options(data))

    def get(self, path: str, default: Any = None) -> Any:
        """Return the value at a dotted path, or ``default`` if absent."""
        with self._lock:
            node: Any = self._items
            for part in path.split("."):
                if not isinstance(node, Mapping) or part not in node:
                    return default
                node = node[part]
            return copy.deepcopy(node)

    def has(self, path: str) -> bool:
        """Check whether a dotted path is present."""
        return self.get(path, _MISSING) is not _MISSING

    def set(self, path: str, value: Any) -> None:
        """Set the value at a dotted path, creating intermediate mappings."""
        parts = path.split(".")
        with self._lock:
            node = self._items
            for part in parts[:-1]:
                child = node.get(part)
                if not isinstance(child, dict):
                    child = {}
                    node[part] = child
                node = child
            node[parts[-1]] = value

    def all(self) -> Dict[str, Any]:
        """Return a copy of the whole configuration tree."""
        with self._lock:
            return copy.deepcopy(self._items)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(keys={sorted(self._items)!r})"


def get_config_value(
    options: Optional[Mapping[str, Any]],
    key: str,
    env_var: Optional[str] = None,
    default: Any = None,
) -> Any:
    """Get a value from a disk config, falling back to an environment variable.

    Example:
        >>> os.environ["AWS_REGION"] = "eu-west-1"
        >>> get_config_value({"bucket": "b"}, "region", "AWS_REGION")
        'eu-west-1'
    """
    value = options.get(key) if options else None
    if value in (None, "") and env_var:
        value = os.environ.get(env_var)
    if value in (None, ""):
        return default
    return value


def get_bool_config_value(
    options: Optional[Mapping[str, Any]],
    key: str,
    env_var: Optional[str] = None,
    default: bool = False,
) -> bool:
    """Get a boolean from a disk config or environment variable.

    Handles truthy strings ('true', '1', 'yes', 'on') case-insensitively.
    """
    value = options.get(key) if options else None

    if isinstance(value, bool):
        return value

    if value is not None:
        return str(value).strip().lower() in ("true", "1", "yes", "on")

    env_value = os.environ.get(env_var, "").strip().lower() if env_var else ""
    if env_value:
        return env_value in ("true", "1", "yes", "on")

    return default


def load_config(path: Optional[Union[str, Path]] = None) -> ConfigRepository:
    """Load backup configuration.

    Loads a .env file first (preferring one beside ``path``, else the nearest
    one above the working directory, which may also set BACKUP_DISKS_CONFIG)
    so ${VAR} references can resolve. Then reads the YAML file at ``path``
    or at the path named by BACKUP_DISKS_CONFIG. References left unresolved
    are reported when the disk using them is resolved.

    Raises:
        ConfigError: If no path is given and BACKUP_DISKS_CONFIG is unset,
            or the file does not exist.
    """
    load_env_file(path)

    path = path or os.environ.get(CONFIG_ENV_VAR)
    if not path:
        raise ConfigError(
            "No backup configuration file given.",
            suggestion=f"Pass --config or set {CONFIG_ENV_VAR}.",
        )

    return ConfigRepository.from_yaml(path)
