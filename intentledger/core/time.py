"""
intentledger/core/time.py

THE ONLY CLOCK IN INTENTLEDGER.

Two forms, two purposes:

    unix_time()        — integer unix seconds. Registry record timestamps
                         (created_at, last_updated_at, committed_at).
    journal_timestamp() — YYYY-MM-DDTHH:MM:SS.mmmZ wire format.
                         Fact journal envelopes only.

Registries take a `clock` callable so tests can pin time. Caller-supplied
timestamps are never accepted by any operation.
"""

import time
from datetime import datetime, timezone
from typing import Callable


Clock = Callable[[], int]


def unix_time() -> int:
    """Return current wall-clock time as integer unix seconds."""
    return int(time.time())


def journal_timestamp() -> str:
    """
    Return current UTC time in journal wire format.
    Format: YYYY-MM-DDTHH:MM:SS.mmmZ  (exactly 3 fractional digits, Z suffix)
    """
    now = datetime.now(timezone.utc)
    ms  = now.microsecond // 1000
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms:03d}Z"
