"""Unit tests for the fixed-window rate limiter."""

from __future__ import annotations

import pytest
from django.core.cache.backends.locmem import LocMemCache

from modules.core.ratelimit import (
    CacheWindowStore,
    InMemoryWindowStore,
    RateLimitConfig,
    RateLimiter,
    WindowEntry,
    evaluate_window,
)

pytestmark = pytest.mark.unit

OTP_LIKE = RateLimitConfig(window_seconds=300, max_requests=3, message="slow down")


class FakeClock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def limiter(clock):
    return RateLimiter(store=InMemoryWindowStore(), clock=clock)


# ---------------------------------------------------------------------------
# evaluate_window
# ---------------------------------------------------------------------------


class TestEvaluateWindow:
    def test_first_request_opens_window(self):
        entry, decision = evaluate_window(None, OTP_LIKE, now=100.0)

        assert entry == WindowEntry(count=1, window_start=100.0)
        assert decision.allowed
        assert decision.remaining == 2
        assert decision.reset_at == 400.0

    def test_request_over_limit_is_rejected_with_retry_hint(self):
        entry = WindowEntry(count=3, window_start=100.0)
        _, decision = evaluate_window(entry, OTP_LIKE, now=150.2)

        assert not decision.allowed
        assert decision.remaining == 0
        assert decision.retry_after == 250  # ceil(400 - 150.2)

    def test_window_restarts_once_elapsed(self):
        entry = WindowEntry(count=3, window_start=100.0)
        new_entry, decision = evaluate_window(entry, OTP_LIKE, now=400.5)

        assert decision.allowed
        assert new_entry == WindowEntry(count=1, window_start=400.5)

    def test_exact_boundary_still_belongs_to_window(self):
        entry = WindowEntry(count=3, window_start=100.0)
        _, decision = evaluate_window(entry, OTP_LIKE, now=400.0)

        assert not decision.allowed


# ---------------------------------------------------------------------------
# RateLimiter
# ---------------------------------------------------------------------------


class TestRateLimiter:
    def test_admits_max_requests_then_rejects(self, limiter):
        decisions = [limiter.check("otp:1.2.3.4", OTP_LIKE) for _ in range(4)]

        assert [d.allowed for d in decisions] == [True, True, True, False]
        assert [d.remaining for d in decisions] == [2, 1, 0, 0]
        assert decisions[-1].retry_after == 300

    def test_retry_hint_shrinks_with_time(self, limiter, clock):
        for _ in range(3):
            limiter.check("k", OTP_LIKE)
        clock.advance(120.5)

        decision = limiter.check("k", OTP_LIKE)

        assert decision.retry_after == 180

    def test_window_elapsed_admits_again(self, limiter, clock):
        for _ in range(4):
            limiter.check("k", OTP_LIKE)
        clock.advance(301)

        assert limiter.check("k", OTP_LIKE).allowed

    def test_keys_are_independent(self, limiter):
        for _ in range(3):
            limiter.check("login:1.1.1.1", OTP_LIKE)

        assert not limiter.check("login:1.1.1.1", OTP_LIKE).allowed
        assert limiter.check("login:2.2.2.2", OTP_LIKE).allowed

    def test_reset_forgets_windows(self, limiter):
        for _ in range(4):
            limiter.check("k", OTP_LIKE)
        limiter.reset()

        assert limiter.check("k", OTP_LIKE).allowed

    def test_reset_at_iso_is_utc(self, limiter):
        decision = limiter.check("k", OTP_LIKE)

        assert decision.reset_at_iso.endswith("+00:00")


class TestStores:
    def test_empty_injected_store_is_the_one_used(self, clock):
        store = InMemoryWindowStore()
        assert len(store) == 0

        RateLimiter(store=store, clock=clock).check("k", OTP_LIKE)

        assert len(store) == 1

    def test_cache_store_writes_to_given_backend(self, clock):
        backend = LocMemCache("ratelimit-tests", {})
        limiter = RateLimiter(store=CacheWindowStore(backend), clock=clock)

        limiter.check("k", OTP_LIKE)

        assert backend.get("ratelimit:k") == {"count": 1, "window_start": clock.now}
        backend.clear()

    def test_in_memory_store_prunes_stale_entries_lazily(self, clock):
        store = InMemoryWindowStore(prune_interval=60)
        limiter = RateLimiter(store=store, clock=clock)
        limiter.check("a", OTP_LIKE)
        limiter.check("b", OTP_LIKE)
        assert len(store) == 2

        clock.advance(OTP_LIKE.window_seconds + 61)
        limiter.check("c", OTP_LIKE)

        assert len(store) == 1

    def test_cache_store_shares_windows_between_limiters(self, clock):
        first = RateLimiter(store=CacheWindowStore(), clock=clock)
        second = RateLimiter(store=CacheWindowStore(), clock=clock)

        for _ in range(3):
            first.check("shared", OTP_LIKE)

        assert not second.check("shared", OTP_LIKE).allowed

    def test_named_config_reads_settings(self, settings):
        settings.RATE_LIMITS = {
            "login": {"window_seconds": 900, "max_requests": 5, "message": "wait"}
        }

        config = RateLimitConfig.named("login")

        assert config == RateLimitConfig(window_seconds=900, max_requests=5, message="wait")

    def test_unknown_config_name_raises(self):
        with pytest.raises(KeyError):
            RateLimitConfig.named("does-not-exist")
