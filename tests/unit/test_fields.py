"""
test_fields.py - Unit tests for fixed-width field checks.
"""

import pytest

from indexhub import fields


class TestFieldChecks:

    def test_hash_exact_width(self):
        assert fields.check_hash(b"\x01" * 32, "h") == b"\x01" * 32
        for bad in (b"\x01" * 31, b"\x01" * 33, "00" * 32, None):
            with pytest.raises(ValueError):
                fields.check_hash(bad, "h")

    def test_blob_upper_bound(self):
        assert fields.check_blob(None, "memo", 64) is None
        assert fields.check_blob(bytearray(b"ab"), "memo", 64) == b"ab"
        with pytest.raises(ValueError):
            fields.check_blob(b"x" * 65, "memo", 64)

    def test_text(self):
        assert fields.check_text("swap", "f", 64) == "swap"
        assert fields.check_text(None, "f", 64, required=False) is None
        with pytest.raises(ValueError):
            fields.check_text(None, "f", 64)
        with pytest.raises(ValueError):
            fields.check_text("", "f", 64)
        with pytest.raises(ValueError):
            fields.check_text("t" * 33, "tx_type", fields.MAX_TYPE_TAG)

    def test_topics(self):
        assert fields.check_topics([]) == []
        with pytest.raises(ValueError):
            fields.check_topics([b"\x00" * 32] * 5)
        with pytest.raises(ValueError):
            fields.check_topics([b"\x00" * 31])

    def test_uint(self):
        assert fields.check_uint(0, "n") == 0
        assert fields.check_uint(None, "n") is None
        for bad in (-1, True, 1.5, "3"):
            with pytest.raises(ValueError):
                fields.check_uint(bad, "n")
