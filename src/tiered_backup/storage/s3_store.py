"""
S3 adapter for the artifact store.

Works against AWS S3 and S3-compatible services (MinIO, Cloudflare R2) through
boto3. Not-found responses surface as FileNotFoundError; every other client
failure surfaces as OSError.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)
from tenacity import RetryCallState, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..deadline import Deadline
from ..errors import RunTimeoutError
from ..settings import Settings
from .base import CONTENT_TYPE, ArtifactStore, ObjectHead, ObjectInfo
from .uri import StoreLocation, parse_store_uri

__all__ = ["S3ArtifactStore"]

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}
_TRANSIENT_ERRORS = (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError)


def _is_not_found(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES


def _deadline_expired(retry_state: RetryCallState) -> bool:
    deadline = retry_state.args[0].deadline
    return deadline is not None and deadline.expired


class S3ArtifactStore(ArtifactStore):
    """
    ArtifactStore backed by an S3 bucket.

    Keys are stored under the optional prefix of the store URI, so
    ``s3://backups/prod`` puts the daily tier at ``prod/daily/...``.
    Connection failures and timeouts are retried before being reported, but
    never past the run deadline once one is bound to ``deadline``.
    """

    def __init__(self, *, settings: Settings, client=None) -> None:
        """
        Initialize S3 adapter with settings.

        Args:
            settings: Settings containing the store URI and S3 configuration
            client: Prebuilt boto3 S3 client (created from settings when None)

        Raises:
            ValueError: If the store URI is not an s3:// URI
        """
        self._location: StoreLocation = parse_store_uri(settings.store_uri)
        if self._location.scheme != "s3":
            raise ValueError(f"Expected s3:// URI, got {settings.store_uri}")
        self._bucket = self._location.container_or_bucket
        self.deadline: Optional[Deadline] = None

        if client is None:
            client = boto3.client(
                "s3",
                endpoint_url=settings.s3_endpoint,
                region_name=settings.s3_region,
                config=Config(
                    signature_version="s3v4",
                    connect_timeout=settings.store_timeout_s,
                    read_timeout=settings.store_timeout_s,
                ),
            )
        self._client = client

        if settings.s3_endpoint:
            logger.debug(f"S3 store for bucket {self._bucket} using custom endpoint: {settings.s3_endpoint}")
        else:
            logger.debug(f"S3 store for bucket {self._bucket}")

    def _call(self, operation: str, **kwargs) -> Any:
        """
        Invoke a client operation against the configured bucket.

        Raises:
            RunTimeoutError: If the run deadline passed before or while retrying
        """
        try:
            return self._request(operation, **kwargs)
        except _TRANSIENT_ERRORS as e:
            if self.deadline is not None and self.deadline.expired:
                raise RunTimeoutError(f"run deadline expired during S3 {operation}: {e}") from e
            raise

    @retry(
        stop=stop_after_attempt(3) | _deadline_expired,
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(_TRANSIENT_ERRORS),
        reraise=True,
    )
    def _request(self, operation: str, **kwargs) -> Any:
        if self.deadline is not None:
            self.deadline.check(f"S3 {operation}")
        return getattr(self._client, operation)(Bucket=self._bucket, **kwargs)

    def put(self, key: str, data: bytes, *, metadata: Optional[Dict[str, str]] = None) -> None:
        try:
            self._call(
                "put_object",
                Key=self._location.full_key(key),
                Body=data,
                ContentType=CONTENT_TYPE,
                Metadata=dict(metadata or {}),
            )
        except (ClientError, BotoCoreError) as e:
            raise OSError(f"S3 upload error for {key}: {e}") from e

    def head(self, key: str) -> ObjectHead:
        try:
            resp = self._call("head_object", Key=self._location.full_key(key))
        except ClientError as e:
            if _is_not_found(e):
                raise FileNotFoundError(f"Object not found: {key}") from e
            raise OSError(f"S3 head error for {key}: {e}") from e
        except BotoCoreError as e:
            raise OSError(f"S3 head error for {key}: {e}") from e

        # boto3 already lowercases user metadata keys; normalize anyway for other S3 servers
        metadata = {k.lower(): v for k, v in (resp.get("Metadata") or {}).items()}
        return ObjectHead(
            key=key,
            size=resp.get("ContentLength", 0),
            metadata=metadata,
            last_modified=resp.get("LastModified"),
        )

    def get(self, key: str) -> bytes:
        try:
            resp = self._call("get_object", Key=self._location.full_key(key))
            return resp["Body"].read()
        except ClientError as e:
            if _is_not_found(e):
                raise FileNotFoundError(f"Object not found: {key}") from e
            raise OSError(f"S3 download error for {key}: {e}") from e
        except BotoCoreError as e:
            raise OSError(f"S3 download error for {key}: {e}") from e

    def list(self, prefix: str) -> List[ObjectInfo]:
        objects: List[ObjectInfo] = []
        token: Optional[str] = None
        try:
            while True:
                kwargs: Dict[str, Any] = {"Prefix": self._location.full_key(prefix)}
                if token:
                    kwargs["ContinuationToken"] = token
                page = self._call("list_objects_v2", **kwargs)
                for obj in page.get("Contents", []):
                    objects.append(ObjectInfo(
                        key=self._location.relative_key(obj["Key"]),
                        last_modified=obj["LastModified"],
                        size=obj.get("Size", 0),
                    ))
                if not page.get("IsTruncated"):
                    break
                token = page.get("NextContinuationToken")
        except (ClientError, BotoCoreError) as e:
            raise OSError(f"S3 list error for prefix {prefix}: {e}") from e
        return objects

    def delete(self, key: str) -> None:
        try:
            self._call("delete_object", Key=self._location.full_key(key))
        except (ClientError, BotoCoreError) as e:
            raise OSError(f"S3 delete error for {key}: {e}") from e
