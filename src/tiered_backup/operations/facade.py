"""
Operations Facade - Application service layer.

Provides a clean interface between entry points (CLI, Lambda handler) and the
backup core, centralizing wiring and policy decisions.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Optional

from ..deadline import Deadline
from ..models import RunOutcome
from ..orchestrator import BackupOrchestrator
from ..producer import PgDumpProducer
from ..settings import Settings
from ..storage.base import ArtifactStore, DeadlineBoundStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpsConfig:
    """
    Configuration for Operations facade.

    Run-level policy that does not come from the environment.
    """
    timeout_s: Optional[float] = None   # Overall run deadline


class Operations:
    """
    Application service facade for backup operations.

    Design Notes:

    - Settings, store and producer are injected (enables testing with fakes)
    - Store and producer default to the ones described by settings
    - Exceptions bubble up for central mapping by the caller
    """

    def __init__(self, config: OpsConfig, settings: Settings, *,
                 store: Optional[ArtifactStore] = None,
                 producer: Optional[PgDumpProducer] = None,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        """
        Initialize Operations facade.

        Args:
            config: Run-level configuration
            settings: Backup settings
            store: Artifact store (if None, built from settings)
            producer: Dump producer (if None, built from settings)
            clock: Source of the current time, decides the run date
        """
        self.cfg = config
        self.settings = settings
        if store is None:
            from ..storage.factory import make_store
            store = make_store(settings)
        self.store = store
        self._producer = producer
        self._clock = clock

    @property
    def producer(self) -> PgDumpProducer:
        if self._producer is None:
            self._producer = PgDumpProducer.from_settings(self.settings)
        return self._producer

    def orchestrator(self) -> BackupOrchestrator:
        return BackupOrchestrator(
            self.store,
            horizon_days=self.settings.daily_retention_days,
            prune_on_skip=self.settings.prune_on_skip,
        )

    def run_backup(self, now: Optional[date] = None, deadline: Optional[Deadline] = None) -> RunOutcome:
        """
        Produce a dump and run it through the backup lifecycle.

        Args:
            now: Run date (defaults to today in UTC)
            deadline: Run deadline (defaults to one from config.timeout_s)

        Returns:
            RunOutcome of the run

        Raises:
            ProducerError: If the dump could not be produced
            StoreWriteError: If the daily backup could not be written
            RunTimeoutError: If the deadline expired
        """
        if deadline is None and self.cfg.timeout_s is not None:
            deadline = Deadline.after(self.cfg.timeout_s)
        run_date = now or self._clock().date()

        if deadline is not None:
            deadline.check("database dump")
            if isinstance(self.store, DeadlineBoundStore):
                self.store.deadline = deadline

        logger.info("Starting database backup...")
        payload = self.producer.produce(deadline=deadline)
        return self.orchestrator().run(payload, run_date, deadline=deadline)

