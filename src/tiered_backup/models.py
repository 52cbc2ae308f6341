"""
Data models for backup runs.

Value types (artifacts, tiers, intermediate results) are frozen dataclasses.
RunOutcome is a Pydantic model so it can be reported as JSON to whatever
scheduled the run.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, Field

from .fingerprint import fingerprint, normalize_dump

__all__ = [
    "KEY_SUFFIX",
    "Artifact",
    "RetentionTier",
    "DAILY",
    "MONTHLY",
    "YEARLY",
    "DEFAULT_TIERS",
    "DedupResult",
    "PruneResult",
    "RunOutcome",
]

KEY_SUFFIX = "-backup.sql"


@dataclass(frozen=True)
class Artifact:
    """
    One dump of the source database.

    Invariants:
    - payload: normalized dump bytes (timestamp comments removed)
    - fingerprint: SHA-256 hex of payload, 64 lowercase hex characters
    """
    payload: bytes
    fingerprint: str
    produced_at: date

    @classmethod
    def from_dump(cls, raw: bytes, produced_at: date) -> Artifact:
        """Normalize a raw dump and compute its fingerprint."""
        payload = normalize_dump(raw)
        return cls(payload=payload, fingerprint=fingerprint(payload), produced_at=produced_at)

    @property
    def size(self) -> int:
        return len(self.payload)


@dataclass(frozen=True)
class RetentionTier:
    """
    A retention class with its own key format and write policy.

    Keys look like ``<name>/<date formatted with date_format>-backup.sql``.
    ``retention_days=None`` means objects in the tier are never pruned.
    ``always_write`` tiers are written on every run with new content; the
    others only when their period has no object yet.
    """
    name: str
    date_format: str
    granularity: Literal["day", "month", "year"]
    retention_days: Optional[int] = None
    always_write: bool = False

    @property
    def prefix(self) -> str:
        return f"{self.name}/"

    def key_for(self, day: date) -> str:
        """Canonical key of the period containing ``day``."""
        return f"{self.prefix}{day.strftime(self.date_format)}{KEY_SUFFIX}"

    def parse_key(self, key: str) -> date:
        """
        Recover the period date embedded in a key of this tier.

        Raises:
            ValueError: If the key does not follow the tier's layout
        """
        parts = key.split("/")
        if len(parts) != 2 or parts[0] != self.name:
            raise ValueError(f"Key {key!r} is not a {self.name} key")
        name = parts[1]
        if not name.endswith(KEY_SUFFIX):
            raise ValueError(f"Key {key!r} does not end with {KEY_SUFFIX}")
        date_part = name[: -len(KEY_SUFFIX)]
        try:
            return datetime.strptime(date_part, self.date_format).date()
        except ValueError as e:
            raise ValueError(f"Key {key!r} has no valid {self.granularity} date: {e}") from e


DAILY = RetentionTier(name="daily", date_format="%Y-%m-%d", granularity="day",
                      retention_days=7, always_write=True)
MONTHLY = RetentionTier(name="monthly", date_format="%Y-%m", granularity="month")
YEARLY = RetentionTier(name="yearly", date_format="%Y", granularity="year")

DEFAULT_TIERS: Tuple[RetentionTier, ...] = (DAILY, MONTHLY, YEARLY)


@dataclass(frozen=True)
class DedupResult:
    """Decision of the dedup gate for one run."""
    skip: bool
    compared_key: Optional[str] = None
    existing_fingerprint: Optional[str] = None
    warnings: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PruneResult:
    """Keys deleted by one pruning pass and the problems met on the way."""
    deleted: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = field(default_factory=tuple)


class RunOutcome(BaseModel):
    """Aggregate result of one backup run."""
    run_date: date = Field(..., description="Date the run was executed for")
    fingerprint: str = Field(..., description="SHA-256 of the normalized dump")
    size_bytes: int = Field(..., ge=0, description="Size of the normalized dump")
    skipped: bool = Field(default=False, description="Content unchanged, nothing written")
    compared_key: Optional[str] = Field(default=None, description="Daily key the dump was compared against")
    tiers_written: List[str] = Field(default_factory=list, description="Tiers that received a write")
    written_keys: List[str] = Field(default_factory=list, description="Keys written in this run")
    pruned_keys: List[str] = Field(default_factory=list, description="Stale daily keys deleted")
    pruning_ran: bool = Field(default=False, description="Whether the pruner was invoked")
    warnings: List[str] = Field(default_factory=list, description="Non-fatal problems")
