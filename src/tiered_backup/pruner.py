"""
Retention pruner for the daily tier.

Best effort: malformed keys and failed deletions are reported as warnings and
never stop the remaining objects from being processed.
"""
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import List, Optional

from .deadline import Deadline
from .errors import PruneError
from .models import DAILY, PruneResult, RetentionTier
from .storage.base import ArtifactStore

__all__ = ["RetentionPruner", "cutoff_date"]

logger = logging.getLogger(__name__)


def cutoff_date(now: date, horizon_days: int) -> date:
    """Oldest date that is kept; anything strictly earlier is stale."""
    return now - timedelta(days=horizon_days)


class RetentionPruner:
    """Deletes objects of a tier whose key date is older than the horizon."""

    def __init__(self, store: ArtifactStore, tier: RetentionTier = DAILY) -> None:
        self.store = store
        self.tier = tier

    def prune(self, now: date, horizon_days: Optional[int] = None, *,
              deadline: Optional[Deadline] = None) -> PruneResult:
        """
        Delete stale objects of the tier.

        Args:
            now: Run date
            horizon_days: Days to keep (defaults to the tier's retention_days)
            deadline: Checked before each deletion

        Returns:
            PruneResult with deleted keys and warnings

        Raises:
            RunTimeoutError: If the deadline expires while pruning
        """
        if horizon_days is None:
            horizon_days = self.tier.retention_days
        if horizon_days is None:
            logger.debug(f"{self.tier.name} tier has unbounded retention, nothing to prune")
            return PruneResult()
        if horizon_days < 0:
            raise ValueError(f"horizon_days must be non-negative, got {horizon_days}")

        cutoff = cutoff_date(now, horizon_days)
        warnings: List[str] = []
        deleted: List[str] = []

        try:
            objects = self.store.list(self.tier.prefix)
        except OSError as e:
            warning = f"failed to list {self.tier.name} backups: {e}"
            logger.warning(warning)
            return PruneResult(warnings=(warning,))

        for obj in sorted(objects, key=lambda o: o.key):
            try:
                backup_date = self.tier.parse_key(obj.key)
            except ValueError as e:
                warning = f"failed to parse date from key {obj.key}: {e}"
                logger.warning(warning)
                warnings.append(warning)
                continue

            if backup_date >= cutoff:
                continue

            if deadline is not None:
                deadline.check(f"deleting {obj.key}")
            try:
                self._delete(obj.key)
            except PruneError as e:
                logger.warning(str(e))
                warnings.append(str(e))
                continue

            logger.info(f"Deleted old {self.tier.name} backup: {obj.key}")
            deleted.append(obj.key)

        return PruneResult(deleted=tuple(deleted), warnings=tuple(warnings))

    def _delete(self, key: str) -> None:
        try:
            self.store.delete(key)
        except OSError as e:
            raise PruneError(f"failed to delete old backup {key}: {e}", key=key) from e
