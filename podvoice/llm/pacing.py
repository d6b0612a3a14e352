"""Request pacing and retry policy for provider calls.

Responsibilities:
- Enforce a minimum interval between calls that share a pacing key.
- Decide which provider failures are retried and how long to back off.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from time import monotonic, sleep
from typing import Callable

RETRYABLE_FAILURE_KINDS = frozenset({"timeout", "transport", "rate_limited", "server_error"})


@dataclass(slots=True)
class RateLimiter:
    """Per-key minimum-interval limiter used around provider requests."""

    min_interval_seconds: float = 0.05
    clock: Callable[[], float] = monotonic
    sleeper: Callable[[float], None] = sleep
    _next_allowed_at: dict[str, float] = field(default_factory=dict)

    def acquire(self, key: str) -> None:
        """Block until `key` is allowed, then reserve the next slot."""

        if self.min_interval_seconds <= 0.0:
            return
        now = self.clock()
        wait_seconds = self._next_allowed_at.get(key, 0.0) - now
        if wait_seconds > 0.0:
            self.sleeper(wait_seconds)
            now = self.clock()
        self._next_allowed_at[key] = now + self.min_interval_seconds


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Bounded exponential backoff for transient provider failures.

    Attributes:
        max_retries: Retries after the first attempt.
        backoff_base_seconds: Delay before the first retry.
        backoff_max_seconds: Upper bound for any single delay.
    """

    max_retries: int = 2
    backoff_base_seconds: float = 0.5
    backoff_max_seconds: float = 8.0

    def should_retry(self, failure_kind: str, attempt: int) -> bool:
        """Return whether a failure on 0-based `attempt` deserves another try."""

        return failure_kind in RETRYABLE_FAILURE_KINDS and attempt < self.max_retries

    def delay_for(self, attempt: int) -> float:
        """Return the backoff delay after the 0-based `attempt` failed."""

        return min(self.backoff_max_seconds, self.backoff_base_seconds * (2 ** attempt))
