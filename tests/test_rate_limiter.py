"""Tests for the client-side rate budget."""
import pytest

from github_secrets.secrets.domains.errors import RateLimitedError
from github_secrets.secrets.domains.rate_limiter import RateLimiter, is_rate_limited


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(max_wait=900, clock=clock, sleep=clock.sleep)


def headers(remaining, reset, limit=5000):
    return {"X-RateLimit-Remaining": str(remaining), "X-RateLimit-Reset": str(reset), "X-RateLimit-Limit": str(limit)}


class TestAcquire:
    def test_unknown_budget_does_not_block(self, limiter, clock):
        for _ in range(10):
            limiter.acquire()
        assert clock.sleeps == []
        assert limiter.remaining is None

    def test_never_exceeds_reported_budget_within_window(self, limiter, clock):
        limiter.observe(headers(remaining=3, reset=clock.now + 60))
        for _ in range(3):
            limiter.acquire()
        assert clock.sleeps == []
        assert limiter.remaining == 0

        limiter.acquire()
        assert clock.sleeps == [pytest.approx(60)]

    def test_budget_unknown_again_after_reset(self, limiter, clock):
        limiter.observe(headers(remaining=0, reset=clock.now + 30))
        limiter.acquire()
        assert clock.sleeps == [pytest.approx(30)]
        assert limiter.remaining is None

    def test_refuses_to_wait_past_max_wait(self, clock):
        limiter = RateLimiter(max_wait=10, clock=clock, sleep=clock.sleep)
        limiter.observe(headers(remaining=0, reset=clock.now + 3600))
        with pytest.raises(RateLimitedError) as exc_info:
            limiter.acquire()
        assert clock.sleeps == []
        assert exc_info.value.reset_at == clock.now + 3600

    def test_most_recent_response_wins(self, limiter, clock):
        limiter.observe(headers(remaining=100, reset=clock.now + 60))
        limiter.acquire()
        limiter.observe(headers(remaining=1, reset=clock.now + 60))
        limiter.acquire()
        assert limiter.remaining == 0


class TestObserve:
    def test_reads_headers(self, limiter, clock):
        limiter.observe(headers(remaining=4999, reset=clock.now + 100))
        assert limiter.remaining == 4999
        assert limiter.reset_at == clock.now + 100
        assert limiter.limit == 5000

    def test_lowercase_header_names(self, limiter):
        limiter.observe({"x-ratelimit-remaining": "7"})
        assert limiter.remaining == 7

    def test_rejection_is_authoritative(self, limiter, clock):
        limiter.observe(headers(remaining=4000, reset=clock.now + 3000))
        limiter.observe({"Retry-After": "45"}, status_code=429)
        assert limiter.remaining == 0
        assert limiter.reset_at == clock.now + 45

    def test_rejection_without_timing_uses_default_backoff(self, limiter, clock):
        limiter.observe({}, status_code=403, message="You have exceeded a secondary rate limit")
        assert limiter.remaining == 0
        assert limiter.reset_at == clock.now + 60

    def test_ignores_garbage_headers(self, limiter):
        limiter.observe({"X-RateLimit-Remaining": "lots"})
        assert limiter.remaining is None


class TestIsRateLimited:
    def test_indicators(self):
        assert is_rate_limited(403, {"X-RateLimit-Remaining": "0"})
        assert is_rate_limited(429, {"Retry-After": "10"})
        assert is_rate_limited(403, {}, "API rate limit exceeded for user")

    def test_plain_forbidden_is_not_rate_limit(self):
        assert not is_rate_limited(403, {"X-RateLimit-Remaining": "4000"}, "Resource not accessible")
        assert not is_rate_limited(500, {"Retry-After": "10"})


class TestCall:
    def test_waits_out_provider_rejection_then_succeeds(self, limiter, clock):
        attempts = []

        def flaky():
            attempts.append(clock.now)
            if len(attempts) == 1:
                limiter.observe({"Retry-After": "20"}, status_code=429)
                raise RateLimitedError("rate limited", status_code=429)
            return "ok"

        assert limiter.call(flaky) == "ok"
        assert len(attempts) == 2
        assert clock.sleeps == [pytest.approx(20)]

    def test_gives_up_after_bounded_rejections(self, limiter, clock):
        def always_limited():
            limiter.observe({"Retry-After": "1"}, status_code=429)
            raise RateLimitedError("rate limited", status_code=429)

        with pytest.raises(RateLimitedError):
            limiter.call(always_limited)

    def test_passes_arguments_through(self, limiter):
        assert limiter.call(lambda a, b=0: a + b, 1, b=2) == 3

    def test_honours_reset_of_unobserved_rejection(self, limiter, clock):
        reset_at = clock.now + 30
        outcomes = iter([RateLimitedError("rate limited", status_code=429, reset_at=reset_at)])

        def flaky():
            error = next(outcomes, None)
            if error is not None:
                raise error
            return "ok"

        assert limiter.call(flaky) == "ok"
        assert clock.sleeps == [pytest.approx(30)]

    def test_unobserved_rejection_without_timing_backs_off(self, limiter, clock):
        outcomes = iter([RateLimitedError("rate limited", status_code=429)])

        def flaky():
            error = next(outcomes, None)
            if error is not None:
                raise error
            return "ok"

        assert limiter.call(flaky) == "ok"
        assert clock.sleeps == [pytest.approx(60)]

    def test_unreachable_reset_is_not_retried(self, limiter, clock):
        calls = []

        def limited():
            calls.append(clock.now)
            raise RateLimitedError("rate limited", status_code=429, reset_at=clock.now + 3600)

        with pytest.raises(RateLimitedError):
            limiter.call(limited)
        assert len(calls) == 1
        assert clock.sleeps == []
