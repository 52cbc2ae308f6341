"""
pg_dump invocation.

Produces the raw dump bytes for a backup run. The binary search path, library
path and password are applied to the child process environment only; the
current process environment is never modified.
"""
from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence
from urllib.parse import unquote, urlparse

from .deadline import Deadline
from .errors import ConfigurationError, ProducerError, RunTimeoutError
from .settings import Settings

__all__ = ["DatabaseConfig", "PgDumpProducer"]

logger = logging.getLogger(__name__)

_SCHEMES = ("postgres", "postgresql")


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection parameters for pg_dump."""
    host: str
    port: str = "5432"
    user: str = ""
    password: str = field(default="", repr=False)
    database: str = "postgres"

    @classmethod
    def from_url(cls, url: str) -> DatabaseConfig:
        """
        Parse a postgres:// connection URL.

        Port defaults to 5432 and database to "postgres".

        Raises:
            ConfigurationError: If the URL is not a usable postgres URL
        """
        parsed = urlparse(url)
        if parsed.scheme not in _SCHEMES:
            raise ConfigurationError(f"failed to parse DATABASE_URL: unsupported scheme {parsed.scheme!r}")
        if not parsed.hostname:
            raise ConfigurationError("failed to parse DATABASE_URL: host is missing")
        try:
            port = parsed.port
        except ValueError as e:
            raise ConfigurationError(f"failed to parse DATABASE_URL: {e}") from e

        return cls(
            host=parsed.hostname,
            port=str(port) if port else "5432",
            user=unquote(parsed.username or ""),
            password=unquote(parsed.password or ""),
            database=parsed.path.lstrip("/") or "postgres",
        )


class PgDumpProducer:
    """Runs pg_dump and returns its stdout."""

    def __init__(
        self,
        db: DatabaseConfig,
        *,
        pg_dump_path: Optional[str] = None,
        bin_dirs: Sequence[str] = (),
        lib_dirs: Sequence[str] = (),
        exclude_schemas: Sequence[str] = (),
        timeout_s: float = 600.0,
        base_env: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.db = db
        self.pg_dump_path = pg_dump_path
        self.bin_dirs = tuple(bin_dirs)
        self.lib_dirs = tuple(lib_dirs)
        self.exclude_schemas = tuple(exclude_schemas)
        self.timeout_s = timeout_s
        self._base_env = dict(os.environ if base_env is None else base_env)

    @classmethod
    def from_settings(cls, settings: Settings) -> PgDumpProducer:
        return cls(
            DatabaseConfig.from_url(settings.database_url),
            pg_dump_path=settings.pg_dump_path,
            bin_dirs=settings.pg_bin_dirs,
            lib_dirs=settings.pg_lib_dirs,
            exclude_schemas=settings.exclude_schemas,
            timeout_s=settings.dump_timeout_s,
        )

    def child_env(self) -> Dict[str, str]:
        """Environment for the pg_dump process."""
        env = dict(self._base_env)
        env["PATH"] = _prepend(self.bin_dirs, env.get("PATH", ""))
        env["LD_LIBRARY_PATH"] = _prepend(self.lib_dirs, env.get("LD_LIBRARY_PATH", ""))
        env["PGPASSWORD"] = self.db.password
        return env

    def find_pg_dump(self) -> str:
        """
        Locate the pg_dump binary.

        Order: explicit path, then the configured bin dirs, then PATH.

        Raises:
            ProducerError: If no binary is found
        """
        if self.pg_dump_path:
            if os.path.isfile(self.pg_dump_path):
                return self.pg_dump_path
            raise ProducerError(f"pg_dump binary not found at {self.pg_dump_path}")

        found = shutil.which("pg_dump", path=self.child_env()["PATH"])
        if found is None:
            searched = ", ".join(self.bin_dirs) or "(none)"
            raise ProducerError(f"pg_dump binary not found in {searched} or PATH")
        return found

    def command(self, pg_dump: str) -> List[str]:
        cmd = [
            pg_dump,
            "-h", self.db.host,
            "-p", self.db.port,
            "-U", self.db.user,
            "-d", self.db.database,
            "--verbose",
            "--no-owner",
            "--no-privileges",
            "--clean",
            "--if-exists",
        ]
        cmd.extend(f"--exclude-schema={schema}" for schema in self.exclude_schemas)
        cmd.append("--no-comments")
        return cmd

    def produce(self, deadline: Optional[Deadline] = None) -> bytes:
        """
        Run pg_dump and return the raw dump.

        Args:
            deadline: Run deadline; pg_dump is killed once it passes even if
                dump_timeout_s has not been reached

        Raises:
            ProducerError: If pg_dump is missing, fails, or times out
            RunTimeoutError: If the run deadline expired while dumping
        """
        pg_dump = self.find_pg_dump()
        timeout = self.timeout_s
        deadline_bound = False
        if deadline is not None:
            deadline.check("database dump")
            remaining = deadline.remaining()
            if remaining < timeout:
                timeout, deadline_bound = remaining, True
        logger.info(f"Executing pg_dump at {pg_dump} for {self.db.host}:{self.db.port}/{self.db.database}")

        try:
            proc = subprocess.run(
                self.command(pg_dump),
                env=self.child_env(),
                capture_output=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            stderr = (e.stderr or b"").decode(errors="replace")
            if deadline_bound:
                logger.debug(f"pg_dump stderr: {stderr}")
                raise RunTimeoutError(f"run deadline expired during database dump, pg_dump stopped after {timeout:.1f}s") from e
            raise ProducerError(f"pg_dump timed out after {self.timeout_s}s", stderr=stderr) from e
        except OSError as e:
            raise ProducerError(f"failed to start pg_dump: {e}") from e

        stderr = proc.stderr.decode(errors="replace")
        if stderr:
            # pg_dump --verbose reports progress on stderr
            logger.debug(f"pg_dump stderr: {stderr}")

        if proc.returncode != 0:
            raise ProducerError(f"pg_dump failed with exit code {proc.returncode}\nstderr: {stderr}", stderr=stderr)

        logger.info(f"Backup created successfully, size: {len(proc.stdout)} bytes")
        return proc.stdout


def _prepend(dirs: Sequence[str], current: str) -> str:
    parts = [d for d in dirs if d]
    if current:
        parts.append(current)
    return os.pathsep.join(parts)
