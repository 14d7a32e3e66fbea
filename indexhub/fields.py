"""
fields.py - Width checks for the fixed-size fields shared with the ledger.

Hashes are exactly 32 bytes; other binary and text fields have upper bounds.
Violations raise ValueError before any state is touched.
"""

from typing import List, Optional, Sequence

HASH_SIZE = 32
MAX_EVENT_DATA = 256
MAX_TOPICS = 4
MAX_MEMO = 64
MAX_QUERY_PARAMETERS = 256

MAX_NAME = 64
MAX_FUNCTION_NAME = 64
MAX_EVENT_TYPE = 64
MAX_TYPE_TAG = 32  # tx type, contract type, transfer type, address type

# Largest integer SQLite stores
MAX_STORED_INT = (1 << 63) - 1


def check_hash(value: bytes, field: str) -> bytes:
    if not isinstance(value, (bytes, bytearray)) or len(value) != HASH_SIZE:
        raise ValueError(f"{field} must be exactly {HASH_SIZE} bytes")
    return bytes(value)


def check_blob(value: Optional[bytes], field: str, max_len: int) -> Optional[bytes]:
    if value is None:
        return None
    if not isinstance(value, (bytes, bytearray)):
        raise ValueError(f"{field} must be bytes")
    if len(value) > max_len:
        raise ValueError(f"{field} exceeds {max_len} bytes")
    return bytes(value)


def check_text(value: Optional[str], field: str, max_len: int, required: bool = True) -> Optional[str]:
    if value is None:
        if required:
            raise ValueError(f"{field} is required")
        return None
    if required and not value:
        raise ValueError(f"{field} must not be empty")
    if len(value) > max_len:
        raise ValueError(f"{field} exceeds {max_len} characters")
    return value


def check_topics(topics: Sequence[bytes]) -> List[bytes]:
    if len(topics) > MAX_TOPICS:
        raise ValueError(f"at most {MAX_TOPICS} topics are allowed")
    return [check_hash(t, f"topics[{i}]") for i, t in enumerate(topics)]


def check_uint(value: Optional[int], field: str, max_value: int = MAX_STORED_INT) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{field} must be a non-negative integer")
    if value > max_value:
        raise ValueError(f"{field} exceeds {max_value}")
    return value


def checked_add(total: int, amount: int, field: str) -> int:
    """`total + amount`, or ValueError when the sum no longer fits a stored integer."""
    result = total + amount
    if result > MAX_STORED_INT:
        raise ValueError(f"{field} would exceed {MAX_STORED_INT}")
    return result
