from __future__ import annotations

from app.api.rate_limit import RateLimiter


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_limit_applies_per_key_within_window():
    clock = FakeClock()
    limiter = RateLimiter(max_requests=2, window_seconds=60, clock=clock)

    assert limiter.check(("awd-ada", "verify")) is None
    assert limiter.check(("awd-ada", "verify")) is None
    clock.now += 10
    assert limiter.check(("awd-ada", "verify")) == 50.0
    assert limiter.check(("awd-obi", "verify")) is None


def test_window_expiry_allows_attempts_again():
    clock = FakeClock()
    limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)
    limiter.check(("awd-ada", "verify"))

    clock.now += 61

    assert limiter.check(("awd-ada", "verify")) is None


def test_expired_buckets_are_dropped():
    clock = FakeClock()
    limiter = RateLimiter(max_requests=5, window_seconds=60, clock=clock)
    for index in range(10_000):
        limiter.check((f"made-up-{index}", "verify"))
    assert len(limiter) == 10_000

    clock.now += 3600
    limiter.check(("awd-ada", "verify"))

    assert len(limiter) == 1


def test_only_idle_buckets_are_dropped():
    clock = FakeClock()
    limiter = RateLimiter(max_requests=5, window_seconds=60, clock=clock)
    limiter.check(("awd-ada", "verify"))
    clock.now += 30
    limiter.check(("awd-obi", "verify"))
    clock.now += 20
    limiter.check(("awd-ada", "verify"))

    clock.now += 45
    limiter.check(("awd-new", "verify"))

    assert len(limiter) == 2
    assert limiter.check(("awd-ada", "verify")) is None
