"""Environment references in backup disk configuration.

Disk credentials are usually kept out of the configuration file and
written as ``${VAR}`` references instead:

    s3-main:
      kind: s3
      key: ${AWS_ACCESS_KEY_ID}
      secret: ${AWS_SECRET_ACCESS_KEY}

References to unset variables are left in place so the manager can name
them when the disk is resolved. Only the braced form is recognised; a bare
``$`` is common in secrets and is never touched.

Uses python-dotenv for .env file loading.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

__all__ = ["expand_env_vars", "expand_options", "load_env_file", "unresolved_references"]

ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def load_env_file(config_path: Optional[Union[str, Path]] = None) -> bool:
    """Load a .env file without overriding variables that are already set.

    A .env beside the configuration file is preferred; otherwise the
    nearest .env at or above the working directory is used.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    if config_path is not None:
        candidate = Path(config_path).parent / ".env"
        if candidate.is_file():
            logger.debug("Loading environment from %s", candidate)
            return load_dotenv(candidate)

    found = find_dotenv(usecwd=True)
    if not found:
        return False
    logger.debug("Loading environment from %s", found)
    return load_dotenv(found)


def expand_env_vars(value: str) -> str:
    """Replace ``${VAR}`` references with their environment values.

    Example:
        >>> os.environ["BACKUP_BUCKET"] = "panel-backups"
        >>> expand_env_vars("${BACKUP_BUCKET}")
        'panel-backups'
    """

    def replacer(match: re.Match[str]) -> str:
        return os.environ.get(match.group(1), match.group(0))

    return ENV_VAR_PATTERN.sub(replacer, value)


def expand_options(options: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively expand references in a configuration mapping.

    Returns a new dictionary; the input is not modified.
    """
    return {key: _expand_value(value) for key, value in options.items()}


def _expand_value(value: Any) -> Any:
    if isinstance(value, str):
        return expand_env_vars(value)
    if isinstance(value, dict):
        return expand_options(value)
    if isinstance(value, list):
        return [_expand_value(item) for item in value]
    return value


def unresolved_references(options: Dict[str, Any], prefix: str = "") -> List[Tuple[str, str]]:
    """List ``(field, variable)`` pairs for references no expansion resolved.

    Fields are dotted paths relative to ``options``, in mapping order.
    """
    found: List[Tuple[str, str]] = []
    for key, value in options.items():
        field = f"{prefix}{key}"
        if isinstance(value, str):
            found.extend((field, name) for name in ENV_VAR_PATTERN.findall(value))
        elif isinstance(value, dict):
            found.extend(unresolved_references(value, f"{field}."))
        elif isinstance(value, list):
            for index, item in enumerate(value):
                if isinstance(item, str):
                    found.extend((f"{field}.{index}", name) for name in ENV_VAR_PATTERN.findall(item))
    return found
