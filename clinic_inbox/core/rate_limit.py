"""Sliding-window rate limiter for the webhook endpoint."""

import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Rate limit window and quota.

    Attributes:
        window_ms: Length of the sliding window in milliseconds.
        max_requests: Requests accepted per key within one window.
    """

    window_ms: int = 60000
    max_requests: int = 100


class SlidingWindowRateLimiter:
    """In-process limiter keyed by an arbitrary string (the client IP).

    One instance is owned by the application: it is created on startup and
    reset on shutdown. Rejected requests do not consume quota.
    """

    # Idle keys are swept once this many are tracked
    PURGE_THRESHOLD = 10000

    def __init__(
        self,
        config: RateLimitConfig,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}

    @property
    def window_seconds(self) -> float:
        return self.config.window_ms / 1000.0

    def _prune(self, key: str, now: float) -> deque[float]:
        hits = self._hits.setdefault(key, deque())
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        return hits

    def allow(self, key: str) -> bool:
        """Record a request for ``key`` and return whether it is within quota."""
        now = self._clock()
        if len(self._hits) >= self.PURGE_THRESHOLD:
            self.purge_idle()
        hits = self._prune(key, now)

        if len(hits) >= self.config.max_requests:
            logger.warning(f"Rate limit exceeded for {key}")
            return False

        hits.append(now)
        return True

    def remaining(self, key: str) -> int:
        """Requests still accepted for ``key`` in the current window."""
        hits = self._prune(key, self._clock())
        return max(self.config.max_requests - len(hits), 0)

    def purge_idle(self) -> None:
        """Drop keys whose window has fully expired."""
        now = self._clock()
        for key in list(self._hits):
            if not self._prune(key, now):
                del self._hits[key]

    def reset(self) -> None:
        """Forget all recorded requests."""
        self._hits.clear()
