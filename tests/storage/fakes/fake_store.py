"""
Fake artifact store implementation for testing.

This implementation explicitly subclasses ArtifactStore to ensure interface changes
break CI immediately, preventing silent drift.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Set, Tuple

from tiered_backup.storage.base import ArtifactStore, ObjectHead, ObjectInfo

__all__ = ["FakeArtifactStore", "EPOCH"]

EPOCH = datetime(2025, 1, 1, tzinfo=timezone.utc)


class FakeArtifactStore(ArtifactStore):
    """
    In-memory object store keyed by object key for testing.

    This is a test double; not for production use.
    Every write advances an internal clock by one second, so last_modified
    follows write order unless a test seeds explicit timestamps.

    Failures are injected per operation with ``fail(op, key)``; ``key="*"``
    fails the operation for every key.
    """

    def __init__(self) -> None:
        self._objects: Dict[str, bytes] = {}
        self._metadata: Dict[str, Dict[str, str]] = {}
        self._modified: Dict[str, datetime] = {}
        self._clock = EPOCH
        self._failures: Dict[str, Set[str]] = {}
        self.calls: List[Tuple[str, str]] = []

    # Test utilities

    def seed(self, key: str, data: bytes, *, metadata: Optional[Dict[str, str]] = None,
             last_modified: Optional[datetime] = None) -> None:
        """Store an object without recording a call."""
        self._objects[key] = data
        self._metadata[key] = dict(metadata or {})
        self._modified[key] = last_modified or self._tick()

    def fail(self, op: str, key: str = "*") -> None:
        """Make ``op`` ("put", "head", "get", "list", "delete") raise OSError."""
        self._failures.setdefault(op, set()).add(key)

    def keys(self) -> List[str]:
        return sorted(self._objects)

    def data(self, key: str) -> bytes:
        return self._objects[key]

    def metadata(self, key: str) -> Dict[str, str]:
        return dict(self._metadata[key])

    def calls_for(self, op: str) -> List[str]:
        return [key for name, key in self.calls if name == op]

    def clear(self) -> None:
        """Clear all stored data (test utility)."""
        self._objects.clear()
        self._metadata.clear()
        self._modified.clear()
        self.calls.clear()

    # ArtifactStore

    def put(self, key: str, data: bytes, *, metadata: Optional[Dict[str, str]] = None) -> None:
        self._record("put", key)
        self._objects[key] = data
        self._metadata[key] = dict(metadata or {})
        self._modified[key] = self._tick()

    def head(self, key: str) -> ObjectHead:
        self._record("head", key)
        if key not in self._objects:
            raise FileNotFoundError(key)
        return ObjectHead(
            key=key,
            size=len(self._objects[key]),
            metadata=dict(self._metadata[key]),
            last_modified=self._modified[key],
        )

    def get(self, key: str) -> bytes:
        self._record("get", key)
        if key not in self._objects:
            raise FileNotFoundError(key)
        return self._objects[key]

    def list(self, prefix: str) -> List[ObjectInfo]:
        self._record("list", prefix)
        return [
            ObjectInfo(key=key, last_modified=self._modified[key], size=len(data))
            for key, data in sorted(self._objects.items())
            if key.startswith(prefix)
        ]

    def delete(self, key: str) -> None:
        self._record("delete", key)
        self._objects.pop(key, None)
        self._metadata.pop(key, None)
        self._modified.pop(key, None)

    def _record(self, op: str, key: str) -> None:
        self.calls.append((op, key))
        failing = self._failures.get(op, set())
        if "*" in failing or key in failing:
            raise OSError(f"injected {op} failure for {key}")

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock
