"""Time-ordered unique identifiers (UUIDv7)."""

import os
import threading
import time
import uuid


_lock = threading.Lock()
_last_ms = 0
_counter = 0

# 12 bits of rand_a are used as a per-millisecond sequence so ids generated
# in the same millisecond still sort in creation order.
_COUNTER_MAX = 0xFFF


def new_id() -> str:
    """Generate a UUIDv7 string.

    The leading 48 bits are the Unix timestamp in milliseconds, so ids sort
    lexicographically by creation time. Ids produced within one process are
    strictly increasing.

    Returns:
        Canonical hyphenated UUID string.
    """
    global _last_ms, _counter  # noqa: PLW0603

    with _lock:
        now_ms = time.time_ns() // 1_000_000
        if now_ms > _last_ms:
            _last_ms = now_ms
            _counter = 0
        else:
            _counter += 1
            if _counter > _COUNTER_MAX:
                _last_ms += 1
                _counter = 0
        timestamp_ms = _last_ms
        sequence = _counter

    rand_b = int.from_bytes(os.urandom(8), "big") & ((1 << 62) - 1)
    value = (
        (timestamp_ms & ((1 << 48) - 1)) << 80
        | 0x7 << 76
        | sequence << 64
        | 0b10 << 62
        | rand_b
    )
    return str(uuid.UUID(int=value))
