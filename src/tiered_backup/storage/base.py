"""
Storage interface for backup artifacts.

This protocol defines the boundary between the backup core and blob storage
implementations, enabling clean dependency injection and testing with fakes.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Protocol, runtime_checkable

from ..deadline import Deadline

__all__ = [
    "ObjectInfo",
    "ObjectHead",
    "ArtifactStore",
    "DeadlineBoundStore",
    "SHA256_METADATA_KEY",
    "CONTENT_TYPE",
]

SHA256_METADATA_KEY = "sha256"
CONTENT_TYPE = "application/sql"


@dataclass(frozen=True)
class ObjectInfo:
    """
    One entry of a prefix listing.

    Invariants:
    - key: full object key relative to the store root (e.g. "daily/2025-08-01-backup.sql")
    - last_modified: timezone-aware write time tracked by the store
    """
    key: str
    last_modified: datetime
    size: int = 0


@dataclass(frozen=True)
class ObjectHead:
    """
    Metadata of a stored object, read without downloading content.

    ``metadata`` holds user metadata with lowercase keys; ``sha256`` is absent
    for objects written before fingerprints were recorded.
    """
    key: str
    size: int
    metadata: Dict[str, str] = field(default_factory=dict)
    last_modified: Optional[datetime] = None

    @property
    def sha256(self) -> Optional[str]:
        return self.metadata.get(SHA256_METADATA_KEY)


@runtime_checkable
class ArtifactStore(Protocol):
    """Protocol for key/value blob storage addressed by hierarchical keys."""

    def put(self, key: str, data: bytes, *, metadata: Optional[Dict[str, str]] = None) -> None:
        """
        Store an object, replacing any existing object at key.

        Args:
            key: Object key
            data: Object content bytes
            metadata: User metadata stored with the object

        Raises:
            OSError: For backend or network errors
        """
        ...

    def head(self, key: str) -> ObjectHead:
        """
        Read object metadata without fetching content.

        Raises:
            FileNotFoundError: If object does not exist
            OSError: For other backend or network errors
        """
        ...

    def get(self, key: str) -> bytes:
        """
        Retrieve object content.

        Raises:
            FileNotFoundError: If object does not exist
            OSError: For other backend or network errors
        """
        ...

    def list(self, prefix: str) -> List[ObjectInfo]:
        """
        Enumerate all objects whose key starts with prefix.

        Raises:
            OSError: For backend or network errors
        """
        ...

    def delete(self, key: str) -> None:
        """
        Delete an object.

        Raises:
            OSError: For backend or network errors
        """
        ...


@runtime_checkable
class DeadlineBoundStore(Protocol):
    """
    A store whose requests stop once the run deadline has passed.

    Adapters check ``deadline`` before every request and retry attempt and
    raise RunTimeoutError once it has expired. Where the SDK takes a
    per-request timeout it is capped by the time remaining.
    """
    deadline: Optional[Deadline]
