"""Structured exception hierarchy for backup disks.

Every failure raised while resolving a disk derives from BackupDiskError,
carrying the disk name and extra context for debugging.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

__all__ = [
    "BackupDiskError",
    "ConfigError",
    "UnsupportedKindError",
    "ContractViolationError",
    "ConstructionError",
]


class BackupDiskError(Exception):
    """Base exception for all backup disk errors.

    Provides structured error information for debugging.
    """

    def __init__(
        self,
        message: str,
        *,
        disk: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.disk = disk
        self.message = message
        self.details = details or {}
        self.suggestion = suggestion

        parts = [message]

        if disk:
            parts.insert(0, f"[{disk}]")

        if details:
            parts.append("\nDetails:")
            parts.extend(f"  {k}: {v}" for k, v in details.items())

        if suggestion:
            parts.append(f"\nSuggestion: {suggestion}")

        super().__init__("\n".join(parts) if len(parts) > 1 else message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "disk": self.disk,
            "details": self.details,
            "suggestion": self.suggestion,
        }


class ConfigError(BackupDiskError):
    """A backup disk has no usable configuration.

    Raised when the disk has no `kind`, a constructor finds a required
    field missing, or no default disk is configured.
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.field = field

        details = kwargs.pop("details", None) or {}
        if field:
            details["field"] = field

        super().__init__(message, details=details, **kwargs)


class UnsupportedKindError(BackupDiskError):
    """No built-in or registered constructor handles a disk kind."""

    def __init__(
        self,
        kind: str,
        *,
        available: Optional[Iterable[str]] = None,
        **kwargs: Any,
    ) -> None:
        self.kind = kind
        self.available = sorted(available or [])

        details = kwargs.pop("details", None) or {}
        details["kind"] = kind

        suggestion = kwargs.pop("suggestion", None)
        if not suggestion and self.available:
            suggestion = (
                f"Use one of: {', '.join(self.available)}, "
                "or register a constructor with BackupManager.extend()."
            )

        super().__init__(
            f"Backup disk kind [{kind}] is not supported.",
            details=details,
            suggestion=suggestion,
            **kwargs,
        )


class ContractViolationError(BackupDiskError):
    """A constructor returned an object that is not a storage backend.

    This is a defect in the constructor, not in the configuration.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: Optional[str] = None,
        returned: Any = None,
        **kwargs: Any,
    ) -> None:
        self.kind = kind
        self.returned_type = type(returned).__name__

        details = kwargs.pop("details", None) or {}
        if kind:
            details["kind"] = kind
        details["returned_type"] = self.returned_type

        super().__init__(message, details=details, **kwargs)


class ConstructionError(BackupDiskError):
    """The chosen constructor failed while building a backup disk."""

    def __init__(
        self,
        message: str,
        *,
        kind: Optional[str] = None,
        cause: Optional[BaseException] = None,
        **kwargs: Any,
    ) -> None:
        self.kind = kind
        self.cause = cause

        details = kwargs.pop("details", None) or {}
        if kind:
            details["kind"] = kind
        if cause:
            details["cause"] = str(cause)
            details["cause_type"] = type(cause).__name__

        suggestion = kwargs.pop("suggestion", None)
        if not suggestion:
            suggestion = (
                "Check that the endpoint is reachable and credentials are correct. "
                "Verify environment variables are set."
            )

        super().__init__(message, details=details, suggestion=suggestion, **kwargs)
