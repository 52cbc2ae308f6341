"""
Tests for the backup orchestrator.

Covers the run scenarios end to end against the in-memory store: dedup skips,
tier writes, first-wins periodic checkpoints, pruning and error degradation.
"""
from __future__ import annotations

from datetime import date, timedelta

import pytest

from tiered_backup.deadline import Deadline
from tiered_backup.errors import RunTimeoutError, StoreWriteError
from tiered_backup.fingerprint import fingerprint, normalize_dump
from tiered_backup.models import DAILY
from tiered_backup.orchestrator import BackupOrchestrator

DUMP = b"-- Started on 2025-08-10 02:00:01 UTC\nCREATE TABLE t (id int);\n-- Completed on 2025-08-10 02:00:02 UTC\n"
DUMP_NEXT_DAY = DUMP.replace(b"2025-08-10", b"2025-08-11")
CHANGED = b"-- Started on 2025-08-10 02:00:01 UTC\nCREATE TABLE t (id bigint);\n"


def _seed_daily(store, day: date, payload: bytes) -> str:
    key = DAILY.key_for(day)
    store.seed(key, normalize_dump(payload), metadata={"sha256": fingerprint(payload)})
    return key


class TestFirstRun:
    def test_writes_all_tiers(self, store):
        outcome = BackupOrchestrator(store).run(DUMP, date(2025, 8, 10))

        assert outcome.skipped is False
        assert outcome.tiers_written == ["daily", "monthly", "yearly"]
        assert outcome.written_keys == [
            "daily/2025-08-10-backup.sql",
            "monthly/2025-08-backup.sql",
            "yearly/2025-backup.sql",
        ]
        assert outcome.warnings == []
        assert outcome.compared_key is None

    def test_stores_normalized_payload_with_checksum_metadata(self, store):
        BackupOrchestrator(store).run(DUMP, date(2025, 8, 10))

        key = "daily/2025-08-10-backup.sql"
        assert store.data(key) == b"CREATE TABLE t (id int);\n"
        assert store.metadata(key) == {"sha256": fingerprint(DUMP)}

    def test_outcome_reports_fingerprint_and_size(self, store):
        outcome = BackupOrchestrator(store).run(DUMP, date(2025, 8, 10))
        assert outcome.fingerprint == fingerprint(DUMP)
        assert outcome.size_bytes == len(normalize_dump(DUMP))
        assert outcome.run_date == date(2025, 8, 10)


class TestDedup:
    def test_unchanged_content_skips_all_writes(self, store):
        compared = _seed_daily(store, date(2025, 8, 9), DUMP)

        outcome = BackupOrchestrator(store).run(DUMP_NEXT_DAY, date(2025, 8, 10))

        assert outcome.skipped is True
        assert outcome.compared_key == compared
        assert outcome.written_keys == []
        assert outcome.tiers_written == []
        assert store.calls_for("put") == []

    def test_no_prior_daily_never_skips(self, store):
        store.seed("monthly/2025-08-backup.sql", normalize_dump(DUMP), metadata={"sha256": fingerprint(DUMP)})

        outcome = BackupOrchestrator(store).run(DUMP, date(2025, 8, 10))

        assert outcome.skipped is False
        assert "daily/2025-08-10-backup.sql" in outcome.written_keys

    def test_changed_content_is_written(self, store):
        _seed_daily(store, date(2025, 8, 9), DUMP)

        outcome = BackupOrchestrator(store).run(CHANGED, date(2025, 8, 10))

        assert outcome.skipped is False
        assert "daily/2025-08-10-backup.sql" in outcome.written_keys

    def test_same_day_rerun_with_new_content_overwrites_daily(self, store):
        BackupOrchestrator(store).run(DUMP, date(2025, 8, 10))
        outcome = BackupOrchestrator(store).run(CHANGED, date(2025, 8, 10))

        assert outcome.written_keys == ["daily/2025-08-10-backup.sql"]
        assert store.metadata("daily/2025-08-10-backup.sql") == {"sha256": fingerprint(CHANGED)}

    def test_dedup_warning_does_not_abort(self, store):
        _seed_daily(store, date(2025, 8, 9), DUMP)
        store.fail("list", "daily/")

        outcome = BackupOrchestrator(store).run(DUMP, date(2025, 8, 10))

        assert outcome.skipped is False
        assert "daily/2025-08-10-backup.sql" in outcome.written_keys
        assert any("couldn't find most recent daily backup" in w for w in outcome.warnings)


class TestPeriodicTiers:
    def test_first_run_of_month_writes_monthly_but_not_existing_yearly(self, store):
        store.seed("yearly/2025-backup.sql", b"january")
        _seed_daily(store, date(2025, 8, 31), DUMP)

        outcome = BackupOrchestrator(store).run(CHANGED, date(2025, 9, 1))

        assert outcome.written_keys == ["daily/2025-09-01-backup.sql", "monthly/2025-09-backup.sql"]
        assert outcome.tiers_written == ["daily", "monthly"]
        assert store.data("yearly/2025-backup.sql") == b"january"

    def test_periodic_tiers_written_once_per_period(self, store):
        orchestrator = BackupOrchestrator(store)
        for offset in range(5):
            payload = f"CREATE TABLE t{offset} (id int);\n".encode()
            orchestrator.run(payload, date(2025, 9, 1) + timedelta(days=offset))

        assert store.calls_for("put").count("monthly/2025-09-backup.sql") == 1
        assert store.calls_for("put").count("yearly/2025-backup.sql") == 1
        assert store.data("monthly/2025-09-backup.sql") == b"CREATE TABLE t0 (id int);\n"
        assert len(store.calls_for("put")) == 7

    def test_periodic_lookup_failure_is_warning_and_skips_that_tier(self, store):
        store.fail("head", "monthly/2025-09-backup.sql")

        outcome = BackupOrchestrator(store).run(DUMP, date(2025, 9, 1))

        assert outcome.tiers_written == ["daily", "yearly"]
        assert "monthly/2025-09-backup.sql" not in store.keys()
        assert any("failed to check monthly backup" in w for w in outcome.warnings)

    def test_periodic_write_failure_is_warning(self, store):
        store.fail("put", "yearly/2025-backup.sql")

        outcome = BackupOrchestrator(store).run(DUMP, date(2025, 9, 1))

        assert outcome.tiers_written == ["daily", "monthly"]
        assert any("failed to upload yearly/2025-backup.sql" in w for w in outcome.warnings)
        assert outcome.pruning_ran is True

    def test_daily_write_failure_is_fatal(self, store):
        store.fail("put", "daily/2025-09-01-backup.sql")

        with pytest.raises(StoreWriteError) as exc_info:
            BackupOrchestrator(store).run(DUMP, date(2025, 9, 1))

        assert exc_info.value.key == "daily/2025-09-01-backup.sql"
        assert store.calls_for("put") == ["daily/2025-09-01-backup.sql"]
        assert store.calls_for("delete") == []


class TestPruning:
    def _seed_week(self, store):
        for day in range(1, 10):
            _seed_daily(store, date(2025, 8, day), f"CREATE TABLE d{day} (id int);\n".encode())

    def test_changed_run_prunes_stale_daily(self, store):
        self._seed_week(store)

        outcome = BackupOrchestrator(store).run(DUMP, date(2025, 8, 10))

        assert outcome.pruning_ran is True
        assert outcome.pruned_keys == ["daily/2025-08-01-backup.sql", "daily/2025-08-02-backup.sql"]

    def test_skipped_run_still_prunes_by_default(self, store):
        self._seed_week(store)
        _seed_daily(store, date(2025, 8, 9), DUMP)

        outcome = BackupOrchestrator(store).run(DUMP, date(2025, 8, 10))

        assert outcome.skipped is True
        assert outcome.pruning_ran is True
        assert outcome.pruned_keys == ["daily/2025-08-01-backup.sql", "daily/2025-08-02-backup.sql"]
        assert store.calls_for("put") == []

    def test_legacy_skip_behaviour_leaves_stale_daily(self, store):
        self._seed_week(store)
        _seed_daily(store, date(2025, 8, 9), DUMP)

        outcome = BackupOrchestrator(store, prune_on_skip=False).run(DUMP, date(2025, 8, 10))

        assert outcome.skipped is True
        assert outcome.pruning_ran is False
        assert outcome.pruned_keys == []
        assert "daily/2025-08-01-backup.sql" in store.keys()

    def test_custom_horizon(self, store):
        self._seed_week(store)
        outcome = BackupOrchestrator(store, horizon_days=3).run(DUMP, date(2025, 8, 10))
        assert outcome.pruned_keys == [f"daily/2025-08-0{d}-backup.sql" for d in range(1, 7)]

    def test_prune_warnings_are_collected(self, store):
        store.seed("daily/garbage.sql", b"x")
        outcome = BackupOrchestrator(store).run(DUMP, date(2025, 8, 10))
        assert any("daily/garbage.sql" in w for w in outcome.warnings)
        assert outcome.written_keys[0] == "daily/2025-08-10-backup.sql"


class TestDeadline:
    def test_expired_deadline_aborts_before_any_store_call(self, store):
        deadline = Deadline(expires_at=0.0, clock=lambda: 1.0)

        with pytest.raises(RunTimeoutError):
            BackupOrchestrator(store).run(DUMP, date(2025, 8, 10), deadline=deadline)

        assert store.calls == []

    def test_deadline_expiring_mid_run_stops_further_writes(self, store):
        ticks = iter(range(100))
        # The dedup check and daily lookup/upload fit in the deadline
        deadline = Deadline(expires_at=3.0, clock=lambda: float(next(ticks)))

        with pytest.raises(RunTimeoutError):
            BackupOrchestrator(store).run(DUMP, date(2025, 8, 10), deadline=deadline)

        assert store.calls_for("put") == ["daily/2025-08-10-backup.sql"]

    def test_generous_deadline_completes(self, store):
        outcome = BackupOrchestrator(store).run(DUMP, date(2025, 8, 10), deadline=Deadline.after(3600))
        assert len(outcome.written_keys) == 3
