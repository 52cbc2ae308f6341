"""
Tests for dump normalization and fingerprinting.
"""
from __future__ import annotations

import hashlib

from tiered_backup.fingerprint import fingerprint, is_fingerprint, normalize_dump

DUMP = b"""--
-- PostgreSQL database dump
--

-- Started on 2025-08-10 02:00:01 UTC

SET statement_timeout = 0;
CREATE TABLE public.users (id integer);
-- Completed on 2025-08-10 02:00:03 UTC

--
-- PostgreSQL database dump complete
--
"""


class TestNormalizeDump:
    """Test removal of generation timestamp comments."""

    def test_removes_timestamp_lines(self):
        normalized = normalize_dump(DUMP)
        assert b"-- Started on" not in normalized
        assert b"-- Completed on" not in normalized

    def test_keeps_sql_and_other_comments(self):
        normalized = normalize_dump(DUMP)
        assert b"CREATE TABLE public.users (id integer);" in normalized
        assert b"-- PostgreSQL database dump complete" in normalized
        assert normalized.count(b"\n") == DUMP.count(b"\n") - 2

    def test_idempotent(self):
        once = normalize_dump(DUMP)
        assert normalize_dump(once) == once

    def test_marker_must_start_the_line(self):
        payload = b"SELECT 1; -- Started on 2025-08-10\n"
        assert normalize_dump(payload) == payload

    def test_marker_without_trailing_space_is_kept(self):
        payload = b"-- Started on\n"
        assert normalize_dump(payload) == payload

    def test_empty_payload(self):
        assert normalize_dump(b"") == b""


class TestFingerprint:
    """Test fingerprint determinism and equality semantics."""

    def test_deterministic(self):
        assert fingerprint(DUMP) == fingerprint(DUMP)

    def test_is_sha256_of_normalized_payload(self):
        assert fingerprint(DUMP) == hashlib.sha256(normalize_dump(DUMP)).hexdigest()

    def test_timestamp_only_difference_fingerprints_equal(self):
        later = DUMP.replace(b"2025-08-10 02:00:01", b"2025-08-11 02:00:07").replace(
            b"2025-08-10 02:00:03", b"2025-08-11 02:00:09"
        )
        assert later != DUMP
        assert fingerprint(later) == fingerprint(DUMP)

    def test_data_difference_changes_fingerprint(self):
        changed = DUMP.replace(b"id integer", b"id bigint")
        assert fingerprint(changed) != fingerprint(DUMP)

    def test_normalized_payload_fingerprints_like_raw(self):
        assert fingerprint(normalize_dump(DUMP)) == fingerprint(DUMP)

    def test_format(self):
        value = fingerprint(DUMP)
        assert len(value) == 64
        assert is_fingerprint(value)


class TestIsFingerprint:
    def test_rejects_malformed_values(self):
        assert not is_fingerprint(None)
        assert not is_fingerprint("")
        assert not is_fingerprint("abc")
        assert not is_fingerprint("A" * 64)
        assert not is_fingerprint("g" * 64)

    def test_accepts_lowercase_hex(self):
        assert is_fingerprint("0123456789abcdef" * 4)
