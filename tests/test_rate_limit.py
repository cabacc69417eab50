import pytest

from intake.errors import ErrorKind, RateLimitError
from intake.service.rate_limit import RateLimiter


class Clock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_rejects_once_window_is_full():
    limiter = RateLimiter(clock=Clock(120.0))
    for _ in range(5):
        limiter.check("create_complaint", limit=5, window_ms=60_000)

    with pytest.raises(RateLimitError) as excinfo:
        limiter.check("create_complaint", limit=5, window_ms=60_000)
    assert excinfo.value.kind is ErrorKind.RATE_LIMIT
    assert "create_complaint" in str(excinfo.value)


def test_operations_are_counted_separately():
    limiter = RateLimiter(clock=Clock(120.0))
    limiter.check("a", limit=1)
    limiter.check("b", limit=1)
    with pytest.raises(RateLimitError):
        limiter.check("a", limit=1)


def test_next_window_resets_and_purges_expired_entries():
    clock = Clock(120.0)
    limiter = RateLimiter(clock=clock)
    limiter.check("a", limit=1)
    assert len(limiter) == 1

    clock.now = 180.0
    limiter.check("a", limit=1)
    assert len(limiter) == 1


def test_clear_drops_state():
    limiter = RateLimiter(clock=Clock(120.0))
    limiter.check("a", limit=1)
    limiter.clear()
    limiter.check("a", limit=1)
