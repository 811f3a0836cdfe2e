"""Per-awardee throttle for email verification attempts."""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable
from threading import Lock

AttemptKey = tuple[str, str]


class RateLimiter:
    """Sliding-window limiter; buckets whose hits have all expired are dropped."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        # Ordered by each bucket's newest hit, oldest first.
        self._attempts: dict[AttemptKey, deque[float]] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        return len(self._attempts)

    def check(self, key: AttemptKey) -> float | None:
        """Record an attempt; return seconds to wait when the key is over its limit."""
        now = self._clock()
        cutoff = now - self.window_seconds
        with self._lock:
            self._drop_idle(cutoff)
            attempts = self._attempts.get(key, deque())
            while attempts and attempts[0] <= cutoff:
                attempts.popleft()
            if len(attempts) >= self.max_requests:
                if not attempts:
                    self._attempts.pop(key, None)
                    return float(self.window_seconds)
                return max(attempts[0] + self.window_seconds - now, 0.0)
            # Re-inserting moves the bucket to the newest end.
            self._attempts.pop(key, None)
            attempts.append(now)
            self._attempts[key] = attempts
            return None

    def reset(self) -> None:
        with self._lock:
            self._attempts.clear()

    def _drop_idle(self, cutoff: float) -> None:
        while self._attempts:
            key = next(iter(self._attempts))
            if self._attempts[key][-1] > cutoff:
                break
            del self._attempts[key]
