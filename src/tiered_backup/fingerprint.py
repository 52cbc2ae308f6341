"""
Content fingerprinting for dump payloads.

pg_dump stamps every dump with "-- Started on" / "-- Completed on" comment
lines. Those lines are stripped before hashing so that two dumps of unchanged
data produce the same fingerprint.
"""
from __future__ import annotations

import hashlib
import re

__all__ = ["TIMESTAMP_MARKERS", "normalize_dump", "fingerprint", "is_fingerprint"]

TIMESTAMP_MARKERS = (b"-- Started on ", b"-- Completed on ")

_FINGERPRINT_RE = re.compile(r"^[0-9a-f]{64}$")


def normalize_dump(payload: bytes) -> bytes:
    """
    Remove generation timestamp comment lines from a dump.

    Only whole comment lines are dropped, so the SQL content of the dump is
    unchanged. Applying this twice gives the same result as applying it once.

    Args:
        payload: Raw dump bytes

    Returns:
        Dump bytes without timestamp comment lines
    """
    lines = payload.split(b"\n")
    kept = [line for line in lines if not line.startswith(TIMESTAMP_MARKERS)]
    return b"\n".join(kept)


def fingerprint(payload: bytes) -> str:
    """
    Compute the SHA-256 fingerprint of a dump after normalization.

    Args:
        payload: Dump bytes (raw or already normalized)

    Returns:
        64 lowercase hex characters
    """
    return hashlib.sha256(normalize_dump(payload)).hexdigest()


def is_fingerprint(value: object) -> bool:
    """Check that value looks like a hex SHA-256 digest."""
    return isinstance(value, str) and bool(_FINGERPRINT_RE.match(value))
