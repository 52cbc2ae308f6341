"""
Azure Blob Storage adapter for the artifact store.

Uses azure-storage-blob SDK with connection string or account+key authentication.
Supports custom endpoints for Azurite and private Azure clouds.
"""
from __future__ import annotations

import logging
import math
import re
from typing import Dict, List, Optional

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient, ContentSettings

from ..deadline import Deadline
from ..errors import RunTimeoutError
from ..settings import Settings
from .base import CONTENT_TYPE, ArtifactStore, ObjectHead, ObjectInfo
from .uri import StoreLocation, parse_store_uri

__all__ = ["AzureArtifactStore"]

logger = logging.getLogger(__name__)


class AzureArtifactStore(ArtifactStore):
    """
    ArtifactStore backed by an Azure blob container.

    Reads object metadata from blob properties without downloading content.
    Azure stores custom metadata with lowercase keys, which matches the
    ``sha256`` field written by the backup run.
    """

    def __init__(self, *, settings: Settings) -> None:
        """
        Initialize Azure adapter with settings.

        Args:
            settings: Settings containing Azure authentication and configuration

        Raises:
            ValueError: If the URI is not az:// or Azure authentication is not configured
        """
        self._settings = settings
        self._location: StoreLocation = parse_store_uri(settings.store_uri)
        if self._location.scheme != "az":
            raise ValueError(f"Expected az:// URI, got {settings.store_uri}")
        self._validate_azure_auth()
        self.deadline: Optional[Deadline] = None

        if settings.az_connection_string:
            if settings.az_blob_endpoint:
                logger.debug(f"Azure store using connection string auth with custom endpoint: {settings.az_blob_endpoint}")
            else:
                logger.debug("Azure store using connection string auth")
        else:
            logger.debug(f"Azure store using account+key auth for {settings.az_account}")

        self._container = self._service_client().get_container_client(self._location.container_or_bucket)

    def _validate_azure_auth(self) -> None:
        """Validate Azure authentication configuration."""
        has_conn_str = bool(self._settings.az_connection_string)
        has_account_key = bool(self._settings.az_account and self._settings.az_key)

        if not has_conn_str and not has_account_key:
            raise ValueError("Azure authentication not configured: need AZURE_STORAGE_CONNECTION_STRING or (AZURE_STORAGE_ACCOUNT + AZURE_STORAGE_KEY)")

    def _service_client(self) -> BlobServiceClient:
        """
        Build the blob service client.

        Handles four connection patterns:

        1. Connection string (Azure cloud)
        2. Connection string + custom endpoint: account name is taken from the
           connection string and the endpoint overridden (Azurite, private clouds)
        3. Account+key against https://{account}.blob.core.windows.net
        4. Account+key against {endpoint}/{account}

        All patterns include retry configuration (5 retries, 0.4s backoff).
        """
        timeout = self._settings.store_timeout_s
        endpoint = self._settings.az_blob_endpoint
        conn_str = self._settings.az_connection_string

        if conn_str:
            account_match = re.search(r'AccountName=([^;]+)', conn_str) if endpoint else None
            if account_match:
                account_key_match = re.search(r'AccountKey=([^;]+)', conn_str)
                return BlobServiceClient(
                    account_url=f"{endpoint.rstrip('/')}/{account_match.group(1)}",
                    credential=(
                        {"account_name": account_match.group(1), "account_key": account_key_match.group(1)}
                        if account_key_match else None
                    ),
                    connection_timeout=timeout,
                    read_timeout=timeout,
                    retry_total=5,
                    retry_backoff_factor=0.4,
                )
            return BlobServiceClient.from_connection_string(
                conn_str,
                connection_timeout=timeout,
                read_timeout=timeout,
                retry_total=5,
                retry_backoff_factor=0.4,
            )

        if endpoint:
            account_url = f"{endpoint.rstrip('/')}/{self._settings.az_account}"
        else:
            account_url = f"https://{self._settings.az_account}.blob.core.windows.net"
        return BlobServiceClient(
            account_url=account_url,
            credential={"account_name": self._settings.az_account, "account_key": self._settings.az_key},
            connection_timeout=timeout,
            read_timeout=timeout,
            retry_total=5,
            retry_backoff_factor=0.4,
        )

    def _options(self, operation: str) -> Dict[str, int]:
        """Per-request options; the server-side timeout is capped by the run deadline."""
        if self.deadline is None:
            return {}
        self.deadline.check(f"Azure {operation}")
        return {"timeout": max(1, math.ceil(self.deadline.remaining()))}

    def _error(self, message: str, error: AzureError) -> Exception:
        if self.deadline is not None and self.deadline.expired:
            return RunTimeoutError(f"run deadline expired, {message}: {error}")
        return OSError(f"{message}: {error}")

    def put(self, key: str, data: bytes, *, metadata: Optional[Dict[str, str]] = None) -> None:
        blob_client = self._container.get_blob_client(self._location.full_key(key))
        try:
            blob_client.upload_blob(
                data,
                metadata=dict(metadata or {}),
                content_settings=ContentSettings(content_type=CONTENT_TYPE),
                overwrite=True,
                **self._options("upload"),
            )
        except AzureError as e:
            raise self._error(f"Azure blob upload error for {key}", e) from e

    def head(self, key: str) -> ObjectHead:
        blob_client = self._container.get_blob_client(self._location.full_key(key))
        try:
            properties = blob_client.get_blob_properties(**self._options("properties"))
        except ResourceNotFoundError as e:
            raise FileNotFoundError(f"Blob not found: {key}") from e
        except AzureError as e:
            raise self._error(f"Azure blob properties error for {key}", e) from e

        metadata = {k.lower(): v for k, v in (properties.metadata or {}).items()}
        return ObjectHead(
            key=key,
            size=properties.size,
            metadata=metadata,
            last_modified=properties.last_modified,
        )

    def get(self, key: str) -> bytes:
        blob_client = self._container.get_blob_client(self._location.full_key(key))
        try:
            return blob_client.download_blob(**self._options("download")).readall()
        except ResourceNotFoundError as e:
            raise FileNotFoundError(f"Blob not found: {key}") from e
        except AzureError as e:
            raise self._error(f"Azure blob download error for {key}", e) from e

    def list(self, prefix: str) -> List[ObjectInfo]:
        blobs = self._container.list_blobs(
            name_starts_with=self._location.full_key(prefix), **self._options("list")
        )
        try:
            return [
                ObjectInfo(
                    key=self._location.relative_key(blob.name),
                    last_modified=blob.last_modified,
                    size=blob.size or 0,
                )
                for blob in blobs
            ]
        except AzureError as e:
            raise self._error(f"Azure blob list error for prefix {prefix}", e) from e

    def delete(self, key: str) -> None:
        try:
            self._container.delete_blob(self._location.full_key(key), **self._options("delete"))
        except AzureError as e:
            raise self._error(f"Azure blob delete error for {key}", e) from e
