"""Logging setup for the backup-disks command line.

Library modules only call ``logging.getLogger(__name__)``; handlers are
installed by ``setup_logging`` when the CLI starts.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from backup_disks.lib.errors import BackupDiskError

__all__ = ["setup_logging", "JSONFormatter"]

# Set through ``extra=`` by the manager when a disk is constructed
CONTEXT_FIELDS = ("disk", "kind")


class JSONFormatter(logging.Formatter):
    """Formatter that outputs log records as one JSON object per line.

    Example output:
        {"timestamp": "2025-01-15T10:30:00.123Z", "level": "ERROR",
         "logger": "backup_disks.lib.manager", "message": "...",
         "disk": "s3-main", "kind": "s3", "error": {"error_type": "ConfigError", ...}}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        if record.exc_info:
            exc = record.exc_info[1]
            log_data["exception"] = self.formatException(record.exc_info)
            if isinstance(exc, BackupDiskError):
                log_data["error"] = exc.to_dict()

        return json.dumps(log_data, default=str)


def setup_logging(verbose: bool = False, json_format: bool = False) -> None:
    """Configure root logging to stderr, keeping stdout for command output.

    Args:
        verbose: Enable debug-level logging
        json_format: Use JSON output format (for log aggregation)
    """
    level = logging.DEBUG if verbose else logging.INFO

    if json_format:
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # boto3 logs every request at DEBUG
    for name in ("botocore", "boto3", "urllib3", "s3transfer"):
        logging.getLogger(name).setLevel(logging.WARNING)
