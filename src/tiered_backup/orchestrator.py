"""
Backup orchestrator: sequences one backup run.

    Start -> Fingerprinted -> {Skipped | DailyWritten} -> TieredWritesEvaluated
          -> Pruned -> Done

Only a failed write of the always-written tier (daily) or an expired deadline
aborts the run. Every other failure is logged and collected as a warning on
the RunOutcome.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from .deadline import Deadline
from .dedup import DedupGate
from .errors import StoreLookupError, StoreWriteError
from .models import Artifact, RetentionTier, RunOutcome
from .pruner import RetentionPruner
from .rotation import RotationPolicy
from .storage.base import SHA256_METADATA_KEY, ArtifactStore

__all__ = ["BackupOrchestrator"]

logger = logging.getLogger(__name__)


class BackupOrchestrator:
    """
    Runs fingerprinting, dedup, tier writes and pruning against one store.

    Args:
        store: Artifact store
        policy: Rotation policy (default daily/monthly/yearly tiers)
        gate: Dedup gate (defaults to one over the store)
        pruner: Retention pruner (defaults to one over the store)
        horizon_days: Retention of the pruned tier (defaults to the tier's own)
        prune_on_skip: Also prune when the run is skipped as unchanged.
            False reproduces the legacy behaviour where skipped runs never
            pruned.
    """

    def __init__(
        self,
        store: ArtifactStore,
        *,
        policy: Optional[RotationPolicy] = None,
        gate: Optional[DedupGate] = None,
        pruner: Optional[RetentionPruner] = None,
        horizon_days: Optional[int] = None,
        prune_on_skip: bool = True,
    ) -> None:
        self.store = store
        self.policy = policy or RotationPolicy()
        self.gate = gate or DedupGate(store)
        self.pruner = pruner or RetentionPruner(store)
        self.horizon_days = horizon_days
        self.prune_on_skip = prune_on_skip

    def run(self, dump_payload: bytes, now: date, deadline: Optional[Deadline] = None) -> RunOutcome:
        """
        Execute one backup run.

        Args:
            dump_payload: Raw dump bytes from the producer
            now: Run date, selects the tier periods
            deadline: Optional run deadline

        Returns:
            RunOutcome describing writes, skips, pruning and warnings

        Raises:
            StoreWriteError: If the daily write fails
            RunTimeoutError: If the deadline expires
        """
        artifact = Artifact.from_dump(dump_payload, produced_at=now)
        logger.info(f"Backup fingerprint {artifact.fingerprint} ({artifact.size} bytes)")

        outcome = RunOutcome(
            run_date=now,
            fingerprint=artifact.fingerprint,
            size_bytes=artifact.size,
        )

        self._check(deadline, "dedup check")
        decision = self.gate.check(artifact.fingerprint)
        outcome.compared_key = decision.compared_key
        outcome.warnings.extend(decision.warnings)

        if decision.skip:
            outcome.skipped = True
            if self.prune_on_skip:
                self._prune(outcome, now, deadline)
            else:
                logger.info("Content unchanged, skipping pruning as well")
            return outcome

        for tier, key in self.policy.required_keys(now):
            self._write_tier(tier, key, artifact, outcome, deadline)

        self._prune(outcome, now, deadline)
        logger.info("Backup process completed successfully")
        return outcome

    def _write_tier(self, tier: RetentionTier, key: str, artifact: Artifact,
                    outcome: RunOutcome, deadline: Optional[Deadline]) -> None:
        self._check(deadline, f"{tier.name} backup")
        try:
            if not self.policy.needs_write(tier, key, self.store):
                return
        except StoreLookupError as e:
            self._warn(outcome, f"{e}; {tier.name} backup not written this run")
            return

        self._check(deadline, f"uploading {key}")
        try:
            self._put(key, artifact)
        except StoreWriteError as e:
            if tier.always_write:
                raise
            self._warn(outcome, str(e))
            return

        logger.info(f"{tier.name.capitalize()} backup uploaded: {key}")
        outcome.tiers_written.append(tier.name)
        outcome.written_keys.append(key)

    def _put(self, key: str, artifact: Artifact) -> None:
        try:
            self.store.put(key, artifact.payload, metadata={SHA256_METADATA_KEY: artifact.fingerprint})
        except OSError as e:
            raise StoreWriteError(f"failed to upload {key}: {e}", key=key) from e

    def _prune(self, outcome: RunOutcome, now: date, deadline: Optional[Deadline]) -> None:
        self._check(deadline, "pruning")
        result = self.pruner.prune(now, self.horizon_days, deadline=deadline)
        outcome.pruning_ran = True
        outcome.pruned_keys.extend(result.deleted)
        outcome.warnings.extend(result.warnings)
        if result.deleted:
            logger.info(f"Retention: removed {len(result.deleted)} old backup(s)")

    @staticmethod
    def _warn(outcome: RunOutcome, message: str) -> None:
        logger.warning(message)
        outcome.warnings.append(message)

    @staticmethod
    def _check(deadline: Optional[Deadline], stage: str) -> None:
        if deadline is not None:
            deadline.check(stage)
