"""
Run deadline.

Checked between store interactions so an expiring invocation stops before
starting new work instead of being killed halfway through.
"""
from __future__ import annotations

import time
from typing import Callable, Optional

from .errors import RunTimeoutError

__all__ = ["Deadline"]


class Deadline:
    """A point in monotonic time after which the run must stop."""

    def __init__(self, expires_at: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._expires_at = expires_at
        self._clock = clock

    @classmethod
    def after(cls, seconds: float, clock: Callable[[], float] = time.monotonic) -> Deadline:
        return cls(clock() + seconds, clock=clock)

    @classmethod
    def from_lambda_context(cls, context, margin_s: float = 10.0) -> Optional[Deadline]:
        """
        Deadline from an AWS Lambda context, keeping margin_s seconds to report.

        Returns None when the context does not expose remaining time.
        """
        remaining = getattr(context, "get_remaining_time_in_millis", None)
        if remaining is None:
            return None
        return cls.after(max(remaining() / 1000.0 - margin_s, 0.0))

    def remaining(self) -> float:
        return max(self._expires_at - self._clock(), 0.0)

    @property
    def expired(self) -> bool:
        return self._clock() >= self._expires_at

    def check(self, stage: str) -> None:
        """
        Raises:
            RunTimeoutError: If the deadline has passed
        """
        if self.expired:
            raise RunTimeoutError(f"run deadline expired before {stage}")
