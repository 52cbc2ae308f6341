"""
CLI Context for managing application dependencies.

Provides a clean way to manage CLI-level dependencies like settings and the
artifact store, avoiding global state and enabling proper dependency injection.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from .settings import Settings, create_settings_from_env
from .storage.base import ArtifactStore


@dataclass
class CLIContext:
    """
    Shared context for CLI commands.

    Manages application-level dependencies (settings, store) that are
    initialized once and shared across a CLI command execution.
    """
    settings: Settings
    _store: Optional[ArtifactStore] = None

    @classmethod
    def from_env(cls) -> CLIContext:
        """
        Create CLI context from environment variables.

        A .env file in the working directory is loaded first; variables
        already set in the environment take precedence.
        """
        load_dotenv(find_dotenv(usecwd=True))
        settings = create_settings_from_env()
        return cls(settings=settings)

    @property
    def store(self) -> ArtifactStore:
        """
        Get or create the artifact store (lazy initialization).

        The store is created on first access and reused for subsequent calls.
        """
        if self._store is None:
            from .storage.factory import make_store
            self._store = make_store(self.settings)
        return self._store
