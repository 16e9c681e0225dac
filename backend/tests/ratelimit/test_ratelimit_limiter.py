"""
Tests for the fixed-window rate limiter.
"""
import pytest

from app.ratelimit import InMemoryStorage, RateLimiter


class FakeClock:
    def __init__(self, now=900_000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(storage=InMemoryStorage(), default_limit=3, default_window=60, clock=clock)


class TestRateLimiter:
    def test_allows_up_to_limit(self, limiter):
        results = [limiter.check("ip:1.1.1.1")[0] for _ in range(4)]

        assert results == [True, True, True, False]

    def test_metadata(self, limiter, clock):
        clock.now += 15
        allowed, meta = limiter.check("ip:1.1.1.1")

        assert allowed
        assert meta["limit"] == 3
        assert meta["remaining"] == 2
        assert meta["reset_at"] == 900_060
        assert meta["retry_after"] == 0

    def test_retry_after_when_blocked(self, limiter, clock):
        clock.now += 15
        for _ in range(3):
            limiter.check("ip:1.1.1.1")

        allowed, meta = limiter.check("ip:1.1.1.1")

        assert not allowed
        assert meta["remaining"] == 0
        assert meta["retry_after"] == 45

    def test_identifiers_are_independent(self, limiter):
        for _ in range(3):
            limiter.check("ip:1.1.1.1")

        assert limiter.check("ip:2.2.2.2")[0]

    def test_new_window_resets_count(self, limiter, clock):
        for _ in range(4):
            limiter.check("ip:1.1.1.1")
        clock.now += 60

        assert limiter.check("ip:1.1.1.1")[0]

    def test_custom_limit_and_window(self, limiter):
        assert limiter.check("login", limit=1, window=3600)[0]
        assert not limiter.check("login", limit=1, window=3600)[0]

    def test_reset(self, limiter):
        for _ in range(4):
            limiter.check("ip:1.1.1.1")
        limiter.reset()

        assert limiter.check("ip:1.1.1.1")[0]

    @pytest.mark.parametrize("kwargs", [{"default_limit": 0}, {"default_window": -1}])
    def test_invalid_defaults(self, kwargs):
        with pytest.raises(ValueError):
            RateLimiter(**kwargs)
