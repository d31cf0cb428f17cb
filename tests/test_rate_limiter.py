"""Tests for the sliding-window rate limiter."""

from conversation_tts.core.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def test_under_quota_does_not_wait():
    clock = FakeClock()
    limiter = RateLimiter(quota_rpm=3, clock=clock, sleep=clock.sleep)
    assert [limiter.wait_if_needed() for _ in range(3)] == [0.0, 0.0, 0.0]
    assert clock.sleeps == []
    assert limiter.get_current_count() == 3


def test_over_quota_waits_for_oldest_to_expire():
    clock = FakeClock()
    limiter = RateLimiter(quota_rpm=2, clock=clock, sleep=clock.sleep)
    limiter.wait_if_needed()
    clock.now += 10
    limiter.wait_if_needed()
    clock.now += 5

    waited = limiter.wait_if_needed()

    assert waited == 45.0
    assert clock.sleeps == [45.0]
    assert limiter.get_current_count() == 2


def test_window_expiry():
    clock = FakeClock()
    limiter = RateLimiter(quota_rpm=1, clock=clock, sleep=clock.sleep)
    limiter.wait_if_needed()
    clock.now += 60
    assert limiter.wait_if_needed() == 0.0


def test_zero_quota_is_unlimited():
    clock = FakeClock()
    limiter = RateLimiter(quota_rpm=0, clock=clock, sleep=clock.sleep)
    for _ in range(100):
        limiter.wait_if_needed()
    assert clock.sleeps == []
    assert limiter.get_current_count() == 0


def test_reset():
    clock = FakeClock()
    limiter = RateLimiter(quota_rpm=1, clock=clock, sleep=clock.sleep)
    limiter.wait_if_needed()
    limiter.reset()
    assert limiter.wait_if_needed() == 0.0


def test_default_limiter_is_shared(monkeypatch):
    import conversation_tts.core.rate_limiter as rate_limiter

    monkeypatch.setattr(rate_limiter, "_default_rate_limiter", None)
    assert rate_limiter.get_default_rate_limiter() is rate_limiter.get_default_rate_limiter()

    custom = RateLimiter(quota_rpm=1)
    rate_limiter.set_default_rate_limiter(custom)
    assert rate_limiter.get_default_rate_limiter() is custom


def test_fractional_quota_allows_one_request_per_window():
    clock = FakeClock()
    limiter = RateLimiter(quota_rpm=0.5, clock=clock, sleep=clock.sleep)
    assert limiter.wait_if_needed() == 0.0
    assert limiter.wait_if_needed() == 60.0
    assert clock.sleeps == [60.0]
