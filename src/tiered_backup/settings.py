"""
Settings and configuration for tiered backups.

Centralizes configuration values and provides validation with fail-fast behavior.
Loads settings from environment variables at entry point time.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import ConfigurationError
from .storage.uri import parse_store_uri

__all__ = ["Settings", "create_settings_from_env"]


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for a backup run.

    Backup Settings:
        store_uri: Store location, s3://bucket[/prefix] or az://container[/prefix] (required)
        database_url: postgres:// connection URL of the database to dump (required)
        daily_retention_days: Age in days after which daily backups are pruned
        prune_on_skip: Prune the daily tier even when the run was skipped as unchanged

    Dump Producer Settings:
        pg_dump_path: Explicit pg_dump binary (searched for when unset)
        pg_bin_dirs: Directories searched for pg_dump before PATH
        pg_lib_dirs: Directories prepended to LD_LIBRARY_PATH for the child process
        exclude_schemas: Schemas passed to pg_dump --exclude-schema
        dump_timeout_s: Maximum pg_dump runtime

    Store Settings:
        store_timeout_s: Connect/read timeout for store requests
        s3_region: AWS region for the S3 client
        s3_endpoint: Custom endpoint for S3-compatible services (MinIO, R2)
        az_connection_string: Azure storage connection string
        az_account: Azure storage account name
        az_key: Azure storage account key
        az_blob_endpoint: Custom Azure blob endpoint (for Azurite/private endpoints)
    """
    store_uri: str
    database_url: str
    daily_retention_days: int = 7
    prune_on_skip: bool = True

    pg_dump_path: Optional[str] = None
    pg_bin_dirs: Tuple[str, ...] = ("/opt/opt/bin",)
    pg_lib_dirs: Tuple[str, ...] = ("/opt/opt/lib",)
    exclude_schemas: Tuple[str, ...] = ("supabase_migrations",)
    dump_timeout_s: float = 600.0

    store_timeout_s: float = 60.0
    s3_region: Optional[str] = None
    s3_endpoint: Optional[str] = None
    az_connection_string: Optional[str] = None
    az_account: Optional[str] = None
    az_key: Optional[str] = None
    az_blob_endpoint: Optional[str] = None

    def __post_init__(self):
        """Validate settings on construction."""
        if not self.store_uri:
            raise ConfigurationError("store_uri is required")
        try:
            location = parse_store_uri(self.store_uri)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        if not self.database_url:
            raise ConfigurationError("database_url is required")

        if self.daily_retention_days < 1:
            raise ConfigurationError(f"daily_retention_days must be at least 1, got {self.daily_retention_days}")

        if self.dump_timeout_s <= 0:
            raise ConfigurationError(f"dump_timeout_s must be positive, got {self.dump_timeout_s}")

        if self.store_timeout_s <= 0:
            raise ConfigurationError(f"store_timeout_s must be positive, got {self.store_timeout_s}")

        has_conn_str = bool(self.az_connection_string)
        has_account_key = bool(self.az_account and self.az_key)

        if has_conn_str and has_account_key:
            raise ConfigurationError("Specify either az_connection_string OR (az_account + az_key), not both")

        if self.az_account and not self.az_key:
            raise ConfigurationError("az_account specified but az_key is missing")
        if self.az_key and not self.az_account:
            raise ConfigurationError("az_key specified but az_account is missing")

        if location.scheme == "az" and not (has_conn_str or has_account_key):
            raise ConfigurationError(
                "Azure store requires AZURE_STORAGE_CONNECTION_STRING or "
                "(AZURE_STORAGE_ACCOUNT + AZURE_STORAGE_KEY)"
            )


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        Backup:
        - BACKUP_URI (required unless BACKUP_BUCKET is set)
        - BACKUP_BUCKET (legacy: S3 bucket name, same as BACKUP_URI=s3://<bucket>)
        - DATABASE_URL (required)
        - BACKUP_RETENTION_DAYS (default: 7)
        - BACKUP_PRUNE_ON_SKIP (default: true)

        Dump producer:
        - PG_DUMP_PATH (optional)
        - PG_BIN_DIRS (default: /opt/opt/bin, colon separated)
        - PG_LIB_DIRS (default: /opt/opt/lib, colon separated)
        - BACKUP_EXCLUDE_SCHEMAS (default: supabase_migrations, comma separated)
        - BACKUP_DUMP_TIMEOUT (default: 600)

        Store:
        - BACKUP_STORE_TIMEOUT (default: 60)
        - AWS_REGION (optional)
        - BACKUP_S3_ENDPOINT (optional, for S3-compatible services)
        - AZURE_STORAGE_CONNECTION_STRING (optional)
        - AZURE_STORAGE_ACCOUNT (optional)
        - AZURE_STORAGE_KEY (optional)
        - BACKUP_AZURE_BLOB_ENDPOINT (optional, for Azurite/custom endpoints)

    Returns:
        Settings object with validated configuration

    Raises:
        ConfigurationError: If configuration is invalid or required values missing

    Note:
        Creates a fresh Settings instance every time (no caching).
    """
    def str_to_bool(value: str) -> bool:
        return value.lower() in ('true', '1', 'yes', 'on')

    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        try:
            return float(value) if value else default
        except ValueError:
            raise ConfigurationError(f"{key} must be a number, got {value!r}")

    def get_int(key: str, default: int) -> int:
        value = os.getenv(key)
        try:
            return int(value) if value else default
        except ValueError:
            raise ConfigurationError(f"{key} must be an integer, got {value!r}")

    def get_list(key: str, default: Tuple[str, ...], sep: str) -> Tuple[str, ...]:
        value = os.getenv(key)
        if value is None:
            return default
        return tuple(item.strip() for item in value.split(sep) if item.strip())

    store_uri = os.getenv("BACKUP_URI")
    if not store_uri:
        bucket = os.getenv("BACKUP_BUCKET")
        if not bucket:
            raise ConfigurationError("BACKUP_URI or BACKUP_BUCKET environment variable is required")
        store_uri = f"s3://{bucket}"

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise ConfigurationError("DATABASE_URL environment variable is required")

    return Settings(
        store_uri=store_uri,
        database_url=database_url,
        daily_retention_days=get_int("BACKUP_RETENTION_DAYS", 7),
        prune_on_skip=str_to_bool(os.getenv("BACKUP_PRUNE_ON_SKIP", "true")),
        pg_dump_path=os.getenv("PG_DUMP_PATH") or None,
        pg_bin_dirs=get_list("PG_BIN_DIRS", ("/opt/opt/bin",), ":"),
        pg_lib_dirs=get_list("PG_LIB_DIRS", ("/opt/opt/lib",), ":"),
        exclude_schemas=get_list("BACKUP_EXCLUDE_SCHEMAS", ("supabase_migrations",), ","),
        dump_timeout_s=get_float("BACKUP_DUMP_TIMEOUT", 600.0),
        store_timeout_s=get_float("BACKUP_STORE_TIMEOUT", 60.0),
        s3_region=os.getenv("AWS_REGION") or None,
        s3_endpoint=os.getenv("BACKUP_S3_ENDPOINT") or None,
        az_connection_string=os.getenv("AZURE_STORAGE_CONNECTION_STRING") or None,
        az_account=os.getenv("AZURE_STORAGE_ACCOUNT") or None,
        az_key=os.getenv("AZURE_STORAGE_KEY") or None,
        az_blob_endpoint=os.getenv("BACKUP_AZURE_BLOB_ENDPOINT") or None,
    )
