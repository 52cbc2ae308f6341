"""Tiered database backups with content dedup and retention management."""
from .models import DAILY, DEFAULT_TIERS, MONTHLY, YEARLY, Artifact, RetentionTier, RunOutcome
from .orchestrator import BackupOrchestrator

__version__ = "0.1.0"

__all__ = [
    "Artifact",
    "BackupOrchestrator",
    "DAILY",
    "DEFAULT_TIERS",
    "MONTHLY",
    "RetentionTier",
    "RunOutcome",
    "YEARLY",
]
