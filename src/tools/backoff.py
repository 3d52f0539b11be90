"""
Reconnection backoff for the signaling channel.

Delays grow exponentially from initial_delay, are capped at max_delay and get
a uniform +/- jitter_fraction spread so that idle clients dropped by the same
server restart do not reconnect in lockstep.
"""

from dataclasses import dataclass
import random
from typing import Callable


# Defaults (seconds)
INITIAL_RETRY_DELAY = 1.0
MAX_RETRY_DELAY = 30.0
MAX_RETRIES = 8  # ~4 minutes in total before giving up
JITTER_FRACTION = 0.1


@dataclass(frozen=True)
class ReconnectPolicy:
    """Explicit retry configuration for SignalingChannel."""

    initial_delay: float = INITIAL_RETRY_DELAY
    max_delay: float = MAX_RETRY_DELAY
    max_retries: int = MAX_RETRIES
    jitter_fraction: float = JITTER_FRACTION

    def __post_init__(self):
        if self.initial_delay <= 0:
            raise ValueError("initial_delay must be positive")
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must be >= initial_delay")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if not 0 <= self.jitter_fraction < 1:
            raise ValueError("jitter_fraction must be in [0, 1)")

    def base_delay(self, attempt: int) -> float:
        """Un-jittered delay before the given 1-based attempt."""
        if attempt < 1:
            raise ValueError("attempt numbers start at 1")
        return min(self.initial_delay * (2 ** (attempt - 1)), self.max_delay)

    def delay_for(self, attempt: int, rand: Callable[[], float] = random.random) -> float:
        """
        Jittered delay before the given 1-based attempt.

        Args:
            attempt: Attempt number, 1 for the first retry
            rand: Source of uniform values in [0, 1)

        Returns:
            Delay in seconds, within [base * (1 - jitter), base * (1 + jitter)]
            and never above max_delay
        """
        base = self.base_delay(attempt)
        jitter = base * self.jitter_fraction * (rand() * 2 - 1)
        return min(base + jitter, self.max_delay)


class ReconnectState:
    """Mutable retry bookkeeping owned by one SignalingChannel."""

    def __init__(self, policy: ReconnectPolicy):
        self.policy = policy
        self.retry_count = 0
        self.retry_delay = policy.initial_delay
        self.closed = False

    def reset(self):
        """Back to initial values after a successful open."""
        self.retry_count = 0
        self.retry_delay = self.policy.initial_delay

    @property
    def exhausted(self) -> bool:
        return self.retry_count >= self.policy.max_retries

    def next_attempt(self, rand: Callable[[], float] = random.random) -> tuple:
        """Advance to the next attempt and return (attempt_number, delay)."""
        self.retry_count += 1
        self.retry_delay = self.policy.delay_for(self.retry_count, rand)
        return self.retry_count, self.retry_delay
