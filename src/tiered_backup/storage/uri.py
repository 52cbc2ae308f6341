"""
URI parsing for backup store locations.

A store location names the provider, the bucket/container and an optional key
prefix under which the tier folders live, e.g. ``s3://backups`` or
``az://dumps/prod``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

__all__ = ["StoreLocation", "parse_store_uri"]

_URI_RE = re.compile(r"^(az|s3)://(.+)$")


@dataclass(frozen=True)
class StoreLocation:
    """
    Parsed components of a store URI.

    Attributes:
        scheme: Storage provider scheme (az, s3)
        container_or_bucket: Container/bucket name
        prefix: Key prefix without leading/trailing slash ("" for the root)
        original: Original URI string for error messages
    """
    scheme: Literal["az", "s3"]
    container_or_bucket: str
    prefix: str
    original: str

    def full_key(self, key: str) -> str:
        """Join the location prefix with a store-relative key."""
        return f"{self.prefix}/{key}" if self.prefix else key

    def relative_key(self, full_key: str) -> str:
        """Strip the location prefix from a backend key."""
        if self.prefix and full_key.startswith(self.prefix + "/"):
            return full_key[len(self.prefix) + 1:]
        return full_key


def parse_store_uri(uri: str) -> StoreLocation:
    """
    Parse and validate a store URI.

    Accepts URIs in the form: {az|s3}://container[/prefix]

    Validation:
    - Rejects URIs containing ".." (path traversal)
    - Rejects URIs with backslashes (non-POSIX paths)
    - Rejects URIs starting with "//" after scheme
    - Rejects an empty container/bucket

    Raises:
        ValueError: If URI format is invalid or contains unsafe patterns

    Examples:
        >>> parse_store_uri("s3://backups")
        StoreLocation(scheme='s3', container_or_bucket='backups', prefix='', original='s3://backups')

        >>> parse_store_uri("az://dumps/prod/")
        StoreLocation(scheme='az', container_or_bucket='dumps', prefix='prod', original='az://dumps/prod/')
    """
    if not uri:
        raise ValueError("Store URI cannot be empty")

    if ".." in uri:
        raise ValueError(f"Store URI contains path traversal: {uri}")

    if "\\" in uri:
        raise ValueError(f"Store URI contains backslashes (use forward slashes): {uri}")

    match = _URI_RE.match(uri)
    if not match:
        raise ValueError(f"Invalid store URI, expected s3://bucket[/prefix] or az://container[/prefix]: {uri}")

    scheme, remainder = match.groups()

    if remainder.startswith("/"):
        raise ValueError(f"Store URI path cannot start with '/': {uri}")

    container, _, prefix = remainder.partition("/")
    if not container:
        raise ValueError(f"Container/bucket name cannot be empty: {uri}")

    return StoreLocation(
        scheme=scheme,  # type: ignore  # validated by the regex
        container_or_bucket=container,
        prefix=prefix.strip("/"),
        original=uri,
    )
