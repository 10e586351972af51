"""Date and time utilities.

Cache envelopes and queued operations record time as integer epoch
milliseconds so the persisted format stays language-neutral.
"""

from __future__ import annotations

import time
from collections.abc import Callable

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR

# A clock returns the current time in epoch milliseconds.
Clock = Callable[[], int]


def now_ms() -> int:
    """Get current time as integer epoch milliseconds."""
    return time.time_ns() // 1_000_000


def days_to_ms(days: float) -> int:
    """Convert a number of days to milliseconds."""
    return int(days * MS_PER_DAY)
