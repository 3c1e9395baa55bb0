from agency_api.utils.rate_limit import (
    InMemoryRateLimitStore,
    RateLimiter,
    rate_limit_headers,
)


class FakeClock:
    def __init__(self, now_ms=1_000_000):
        self.now_ms = now_ms

    def __call__(self):
        return self.now_ms

    def advance(self, ms):
        self.now_ms += ms


def make_limiter():
    clock = FakeClock()
    return RateLimiter(InMemoryRateLimitStore(), clock=clock), clock


def test_allows_quota_then_rejects():
    limiter, _ = make_limiter()
    results = [limiter.check("login:1.2.3.4", max_requests=3, window_ms=1000) for _ in range(4)]

    assert [r.allowed for r in results] == [True, True, True, False]
    assert [r.remaining for r in results] == [2, 1, 0, 0]
    assert all(r.limit == 3 for r in results)


def test_window_resets_after_elapsed():
    limiter, clock = make_limiter()
    for _ in range(3):
        limiter.check("k", max_requests=3, window_ms=1000)
    assert not limiter.check("k", max_requests=3, window_ms=1000).allowed

    clock.advance(999)
    assert not limiter.check("k", max_requests=3, window_ms=1000).allowed

    clock.advance(1)
    result = limiter.check("k", max_requests=3, window_ms=1000)
    assert result.allowed
    assert result.remaining == 2
    assert result.reset_at_ms == clock.now_ms + 1000


def test_keys_are_independent():
    limiter, _ = make_limiter()
    assert limiter.check("login:a", max_requests=1, window_ms=1000).allowed
    assert not limiter.check("login:a", max_requests=1, window_ms=1000).allowed
    assert limiter.check("login:b", max_requests=1, window_ms=1000).allowed
    assert limiter.check("lead_form:a", max_requests=1, window_ms=1000).allowed


def test_reset_clears_key():
    limiter, _ = make_limiter()
    limiter.check("k", max_requests=1, window_ms=1000)
    limiter.reset("k")
    assert limiter.check("k", max_requests=1, window_ms=1000).allowed


def test_purge_expired_drops_only_elapsed_windows():
    store = InMemoryRateLimitStore()
    clock = FakeClock()
    limiter = RateLimiter(store, clock=clock)
    limiter.check("short", max_requests=5, window_ms=100)
    limiter.check("long", max_requests=5, window_ms=10_000)

    clock.advance(500)
    assert store.purge_expired(clock()) == 1
    assert len(store) == 1
    assert store.get("long") is not None


def test_headers_on_rejection_include_retry_after():
    limiter, clock = make_limiter()
    limiter.check("k", max_requests=1, window_ms=60_000)
    rejected = limiter.check("k", max_requests=1, window_ms=60_000)

    headers = rate_limit_headers(rejected, now_ms=clock())
    assert headers["X-RateLimit-Limit"] == "1"
    assert headers["X-RateLimit-Remaining"] == "0"
    assert headers["X-RateLimit-Reset"] == str((clock() + 60_000) // 1000)
    assert headers["Retry-After"] == "60"


def test_headers_when_allowed_have_no_retry_after():
    limiter, _ = make_limiter()
    headers = rate_limit_headers(limiter.check("k", max_requests=2, window_ms=1000))
    assert "Retry-After" not in headers
    assert headers["X-RateLimit-Remaining"] == "1"
