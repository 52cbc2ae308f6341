"""
Backup error classes.

Provides the taxonomy of errors a backup run can raise. Fatal errors abort the
run and reach the caller; the non-fatal ones are caught by the orchestrator and
turned into warnings on the run outcome.
"""
from __future__ import annotations

from typing import Optional


class BackupError(Exception):
    """Base class for all backup errors."""
    pass


class ConfigurationError(BackupError, ValueError):
    """
    Required configuration is missing or invalid.

    Raised before any work is done (fatal).
    """
    pass


class ProducerError(BackupError):
    """
    The dump producer failed.

    Raised when:
    - pg_dump binary cannot be found
    - pg_dump exits non-zero or times out
    """

    def __init__(self, message: str, stderr: Optional[str] = None):
        super().__init__(message)
        self.stderr = stderr


class StoreWriteError(BackupError):
    """
    Writing an artifact to the store failed.

    Fatal for the daily tier, recorded as a warning for monthly/yearly.
    """

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class StoreLookupError(BackupError, LookupError):
    """
    A metadata read, existence check or listing failed for a reason other
    than "not found". Never fatal.
    """
    pass


class PruneError(BackupError):
    """Deleting one stale daily artifact failed. Never fatal."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class RunTimeoutError(BackupError):
    """The run deadline expired before the run could complete."""
    pass


__all__ = [
    "BackupError",
    "ConfigurationError",
    "ProducerError",
    "StoreWriteError",
    "StoreLookupError",
    "PruneError",
    "RunTimeoutError",
]
