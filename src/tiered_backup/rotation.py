"""
Rotation policy: which tier keys a run targets and which of them need a write.

The daily tier is written on every run with new content. Monthly and yearly
tiers are fixed checkpoints: the first backup of a period is kept and later
runs in the same period never overwrite it.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List, Tuple

from .errors import StoreLookupError
from .models import DEFAULT_TIERS, RetentionTier
from .storage.base import ArtifactStore

__all__ = ["RotationPolicy"]

logger = logging.getLogger(__name__)


class RotationPolicy:
    """Maps dates to tier keys and decides per tier whether to write."""

    def __init__(self, tiers: Iterable[RetentionTier] = DEFAULT_TIERS) -> None:
        self.tiers: Tuple[RetentionTier, ...] = tuple(tiers)
        if not self.tiers:
            raise ValueError("RotationPolicy needs at least one tier")
        names = [tier.name for tier in self.tiers]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate tier names: {names}")

    def required_key(self, tier: RetentionTier, now: date) -> str:
        """Canonical key of ``tier`` for the period containing ``now``."""
        return tier.key_for(now)

    def required_keys(self, now: date) -> List[Tuple[RetentionTier, str]]:
        """(tier, key) pairs for every tier, in policy order."""
        return [(tier, self.required_key(tier, now)) for tier in self.tiers]

    def parse_key_date(self, tier: RetentionTier, key: str) -> date:
        """
        Parse the period date out of a tier key.

        Raises:
            ValueError: If the key is malformed
        """
        return tier.parse_key(key)

    def needs_write(self, tier: RetentionTier, key: str, store: ArtifactStore) -> bool:
        """
        Decide whether ``key`` must be written for ``tier``.

        Periodic tiers do a single point lookup; a missing object means the
        period has no checkpoint yet.

        Raises:
            StoreLookupError: If the existence check fails for a reason
                other than "not found"
        """
        if tier.always_write:
            return True

        try:
            store.head(key)
        except FileNotFoundError:
            logger.debug(f"No {tier.name} backup at {key}")
            return True
        except OSError as e:
            raise StoreLookupError(f"failed to check {tier.name} backup {key}: {e}") from e

        logger.debug(f"{tier.name.capitalize()} backup {key} already exists")
        return False
