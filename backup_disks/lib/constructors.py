"""Built-in backup disk constructors.

Each constructor takes ``(context, config)`` and returns a ready-to-use
storage handle. Constructors never touch BackupManager state; caching
belongs to the manager.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

import boto3
from botocore.config import Config as BotoConfig

from backup_disks.lib.config import get_bool_config_value, get_config_value
from backup_disks.lib.errors import ConfigError
from backup_disks.lib.registry import register_backend
from backup_disks.lib.storage import MemoryStorage, S3Storage

logger = logging.getLogger(__name__)

__all__ = ["create_s3_disk", "create_memory_disk", "create_wings_disk", "build_s3_client"]


def build_s3_client(config: Dict[str, Any]) -> Any:
    """Build a boto3 S3 client from a disk config.

    Credentials are passed explicitly only when both ``key`` and ``secret``
    are set; otherwise boto3 resolves them from the environment, shared
    credentials file or instance profile.
    """
    client_kwargs: Dict[str, Any] = {}

    region = get_config_value(config, "region", "AWS_REGION") or get_config_value(
        config, "region", "AWS_DEFAULT_REGION"
    )
    if region:
        client_kwargs["region_name"] = region

    endpoint_url = get_config_value(config, "endpoint") or get_config_value(
        config, "endpoint_url", "AWS_ENDPOINT_URL"
    )
    if endpoint_url:
        client_kwargs["endpoint_url"] = endpoint_url

    if config.get("key") and config.get("secret"):
        client_kwargs["aws_access_key_id"] = config["key"]
        client_kwargs["aws_secret_access_key"] = config["secret"]
        if config.get("token"):
            client_kwargs["aws_session_token"] = config["token"]

    if not get_bool_config_value(config, "verify_ssl", "AWS_S3_VERIFY_SSL", default=True):
        client_kwargs["verify"] = False

    s3_settings: Dict[str, Any] = {}
    if get_bool_config_value(config, "use_path_style_endpoint"):
        s3_settings["addressing_style"] = "path"

    boto_config_kwargs: Dict[str, Any] = {}
    if s3_settings:
        boto_config_kwargs["s3"] = s3_settings
    signature_version = get_config_value(config, "signature_version", "AWS_S3_SIGNATURE_VERSION")
    if signature_version:
        boto_config_kwargs["signature_version"] = signature_version
    if boto_config_kwargs:
        client_kwargs["config"] = BotoConfig(**boto_config_kwargs)

    logger.debug(
        "Creating S3 client (region=%s, endpoint=%s, explicit_credentials=%s)",
        client_kwargs.get("region_name", "default"),
        client_kwargs.get("endpoint_url", "default"),
        "aws_access_key_id" in client_kwargs,
    )
    return boto3.client("s3", **client_kwargs)


@register_backend("s3")
def create_s3_disk(context: Any, config: Dict[str, Any]) -> S3Storage:
    """Create a backup disk on an S3-compatible bucket.

    Config:
        bucket: Bucket name (required)
        prefix: Key prefix every archive lives under (default: "")
        region, endpoint, use_path_style_endpoint, verify_ssl, signature_version
        key, secret, token: Explicit credentials
        options: Extra put_object arguments (e.g. ServerSideEncryption)
        max_attempts: Retries for transient network errors (default: 3)
    """
    bucket = config.get("bucket")
    if not bucket:
        raise ConfigError(
            "S3 backup disk requires a bucket.",
            field="bucket",
            suggestion="Set 'bucket' in the disk configuration.",
        )

    options = config.get("options") or {}
    if not isinstance(options, dict):
        raise ConfigError(
            "S3 backup disk 'options' must be a mapping.",
            field="options",
            details={"found": type(options).__name__},
        )

    client = build_s3_client(config)
    return S3Storage(
        client,
        bucket,
        prefix=config.get("prefix") or "",
        options=options,
        max_attempts=config.get("max_attempts", 3),
    )


@register_backend("memory")
def create_memory_disk(context: Any, config: Dict[str, Any]) -> MemoryStorage:
    """Create a non-persistent, process-local backup disk."""
    return MemoryStorage()


@register_backend("wings")
def create_wings_disk(context: Any, config: Dict[str, Any]) -> MemoryStorage:
    """Create the placeholder disk for backups stored on the node daemon.

    The daemon keeps the archives on its own disk, so the panel side only
    needs a handle that satisfies the interface.
    """
    return MemoryStorage()
