"""Exponential reconnect backoff."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class BackoffPolicy:
    """Delay schedule for automatic reconnects.

    The delay before attempt ``n`` (0-based) is
    ``min(base_ms * 2**n, max_ms)``. Once ``max_attempts`` consecutive
    attempts have been made, automatic retries stop.

    Attributes:
        base_ms: Delay before the first retry.
        max_ms: Upper bound for any delay.
        max_attempts: Number of automatic retries allowed.
    """

    base_ms: int = 1000
    max_ms: int = 30000
    max_attempts: int = 5

    def delay_ms(self, attempt: int) -> int:
        """Backoff delay in milliseconds for the given attempt counter."""
        if attempt < 0:
            raise ValueError(f"attempt must be >= 0, got {attempt}")
        # Avoid huge intermediate ints for large counters
        if attempt >= 32:
            return self.max_ms
        return min(self.base_ms * 2**attempt, self.max_ms)

    def can_retry(self, attempt: int) -> bool:
        return attempt < self.max_attempts

    def remaining_wait(
        self, attempt: int, now: float, last_attempt_at: Optional[float]
    ) -> float:
        """Seconds still to wait before the next attempt may start.

        Time already elapsed since ``last_attempt_at`` counts towards the
        delay.
        """
        delay = self.delay_ms(attempt) / 1000.0
        if last_attempt_at is None:
            return delay
        return max(0.0, delay - (now - last_attempt_at))
