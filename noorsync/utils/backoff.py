"""Backoff policy for retrying queued operations.

The offline queue records, per operation, the earliest time the next replay
attempt may happen. This keeps a degraded backend from being hammered by a
burst of reconnect events or manual sync triggers.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryBackoff:
    """Capped exponential backoff measured in milliseconds.

    Attributes:
        base_delay_ms: Delay after the first failed attempt.
        max_delay_ms: Upper bound for any single delay.
        factor: Multiplier applied per additional failure.

    Example:
        >>> backoff = RetryBackoff(base_delay_ms=1000, max_delay_ms=8000)
        >>> [backoff.delay_for(n) for n in range(1, 6)]
        [1000, 2000, 4000, 8000, 8000]
    """

    base_delay_ms: int = 2000
    max_delay_ms: int = 300_000
    factor: float = 2.0

    def __post_init__(self) -> None:
        if self.base_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("Backoff delays must be non-negative")
        if self.factor < 1.0:
            raise ValueError("Backoff factor must be >= 1.0")

    @property
    def enabled(self) -> bool:
        """Whether this policy ever delays an attempt."""
        return self.base_delay_ms > 0 and self.max_delay_ms > 0

    def delay_for(self, failures: int) -> int:
        """Return the delay in ms to wait after ``failures`` consecutive failures."""
        if failures <= 0 or not self.enabled:
            return 0
        delay = self.base_delay_ms * (self.factor ** (failures - 1))
        return int(min(delay, self.max_delay_ms))

    def next_attempt_at(self, now: int, failures: int) -> int | None:
        """Return the epoch-ms time of the next allowed attempt, or None for immediately."""
        delay = self.delay_for(failures)
        if delay == 0:
            return None
        return now + delay
