"""CLI entry point for inspecting backup disks.

Usage:
    python -m backup_disks --config ./backups.yaml list
    python -m backup_disks --config ./backups.yaml check
    python -m backup_disks --config ./backups.yaml check s3-main --probe

The configuration file may also be given through BACKUP_DISKS_CONFIG.
"""

from __future__ import annotations

import argparse
import logging
import sys
import uuid
from typing import List, Optional

from backup_disks.lib.config import CONFIG_ENV_VAR, DISKS_KEY, load_config
from backup_disks.lib.errors import BackupDiskError
from backup_disks.lib.logging import setup_logging
from backup_disks.lib.manager import BackupManager

logger = logging.getLogger(__name__)

PROBE_PAYLOAD = b"backup-disks probe"


def list_disks(manager: BackupManager) -> int:
    """Print every configured disk with its kind, marking the default."""
    disks = manager.config.get(DISKS_KEY) or {}
    default = manager.get_default_name()

    if not disks:
        print("No backup disks configured.")
        return 0

    print(f"\nConfigured backup disks ({len(disks)}):\n")
    for name in sorted(disks):
        config = manager.get_config(name)
        kind = config.get("kind") or config.get("adapter") or "<missing kind>"
        marker = "*" if name == default else " "
        print(f"  {marker} {name:<24} {kind}")

    if default and default not in disks:
        print(f"\nWarning: default disk '{default}' is not configured.")
    print()
    return 0


def check_disk(manager: BackupManager, name: Optional[str], probe: bool = False) -> int:
    """Resolve a disk and optionally round-trip a small object through it."""
    try:
        disk = manager.disk(name)
    except BackupDiskError as e:
        print(f"FAILED: {e}", file=sys.stderr)
        return 1

    label = name or manager.get_default_name()
    print(f"OK: {label} -> {disk!r}")

    if not probe:
        return 0

    path = f".backup-disks-probe/{uuid.uuid4().hex}"
    try:
        disk.write(path, PROBE_PAYLOAD)
        intact = disk.read(path) == PROBE_PAYLOAD
    except Exception as e:
        logger.debug("Probe failed", exc_info=True)
        print(f"FAILED: probe of {label} failed: {e}", file=sys.stderr)
        try:
            disk.delete(path)
        except Exception as cleanup_error:
            logger.warning("Could not remove probe object %s: %s", path, cleanup_error)
        return 1

    try:
        disk.delete(path)
    except Exception as e:
        logger.debug("Probe cleanup failed", exc_info=True)
        print(f"FAILED: could not delete probe object {path}: {e}", file=sys.stderr)
        return 1

    if not intact:
        print(f"FAILED: probe object {path} did not read back intact", file=sys.stderr)
        return 1

    print(f"OK: wrote, read and deleted {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="backup-disks",
        description="Inspect configured backup disks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # List configured disks (default marked with *)
    python -m backup_disks --config ./backups.yaml list

    # Resolve the default disk
    python -m backup_disks --config ./backups.yaml check

    # Resolve a disk and write/read/delete a probe object
    python -m backup_disks --config ./backups.yaml check s3-main --probe
        """,
    )
    parser.add_argument(
        "--config",
        "-c",
        help=f"Path to the YAML configuration (default: ${CONFIG_ENV_VAR})",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--json-log",
        action="store_true",
        help="Output logs in JSON format (for log aggregation systems)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List configured backup disks")

    check = subparsers.add_parser("check", help="Resolve a backup disk")
    check.add_argument("name", nargs="?", help="Disk name (default: the configured default)")
    check.add_argument(
        "--probe",
        action="store_true",
        help="Write, read back and delete a small probe object",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)
    setup_logging(verbose=args.verbose, json_format=args.json_log)

    try:
        manager = BackupManager(load_config(args.config))
    except BackupDiskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.command == "list":
        return list_disks(manager)
    return check_disk(manager, args.name, probe=args.probe)


if __name__ == "__main__":
    sys.exit(main())
