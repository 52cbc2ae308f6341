"""
Dedup gate: skip runs whose dump is identical to the latest daily backup.

Only the most recently written daily object is compared. Recency comes from
the store's modification time, never from the date in the key. Any failure
while looking up the previous fingerprint means "assume changed".
"""
from __future__ import annotations

import logging
from typing import List, Optional

from .fingerprint import fingerprint, is_fingerprint
from .models import DAILY, DedupResult, RetentionTier
from .storage.base import ArtifactStore, ObjectInfo

__all__ = ["DedupGate", "most_recent"]

logger = logging.getLogger(__name__)


def most_recent(objects: List[ObjectInfo]) -> Optional[ObjectInfo]:
    """Latest object by last_modified; equal times fall back to the key."""
    if not objects:
        return None
    return max(objects, key=lambda obj: (obj.last_modified, obj.key))


class DedupGate:
    """Compares a new fingerprint with the one of the latest daily backup."""

    def __init__(self, store: ArtifactStore, tier: RetentionTier = DAILY) -> None:
        self.store = store
        self.tier = tier

    def should_skip(self, new_fingerprint: str) -> bool:
        return self.check(new_fingerprint).skip

    def check(self, new_fingerprint: str) -> DedupResult:
        """
        Decide whether the run can be skipped.

        Args:
            new_fingerprint: Fingerprint of the new dump

        Returns:
            DedupResult with skip=True only when the latest daily backup has
            exactly the same fingerprint
        """
        try:
            latest = most_recent(self.store.list(self.tier.prefix))
        except OSError as e:
            warning = f"couldn't find most recent {self.tier.name} backup: {e}"
            logger.warning(warning)
            return DedupResult(skip=False, warnings=(warning,))

        if latest is None:
            logger.info(f"No previous {self.tier.name} backup, content treated as new")
            return DedupResult(skip=False)

        try:
            existing = self.existing_fingerprint(latest.key)
        except OSError as e:
            warning = f"couldn't get checksum for {latest.key}: {e}"
            logger.warning(warning)
            return DedupResult(skip=False, compared_key=latest.key, warnings=(warning,))

        skip = existing == new_fingerprint
        if skip:
            logger.info(f"Backup content unchanged from {latest.key}, skipping all uploads")
        else:
            logger.info(f"Backup content changed since {latest.key}")
        return DedupResult(skip=skip, compared_key=latest.key, existing_fingerprint=existing)

    def existing_fingerprint(self, key: str) -> str:
        """
        Fingerprint of a stored backup.

        Uses the sha256 metadata field when present and well formed.
        Otherwise downloads the object and re-hashes it, which covers
        backups written before fingerprints were recorded.

        Raises:
            FileNotFoundError: If the object vanished
            OSError: For other store errors
        """
        head = self.store.head(key)
        stored = head.sha256.lower() if head.sha256 else None
        if is_fingerprint(stored):
            return stored

        if stored:
            logger.warning(f"Ignoring malformed sha256 metadata on {key}: {head.sha256}")
        logger.info(f"No checksum metadata on {key}, downloading to compute it")
        return fingerprint(self.store.get(key))
