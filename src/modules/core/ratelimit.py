"""Fixed-window rate limiting.

``evaluate_window`` is the pure algorithm; ``RateLimiter`` binds it to a
window store and a clock.  Each key owns a counter and a window start: once
``now - window_start`` exceeds the window the counter restarts, then it is
incremented and compared against ``max_requests``.  Bursts straddling a
window boundary are accepted.

Stores:
- ``InMemoryWindowStore``: process-local, guarded by a lock, pruned lazily.
  Correct for single-process deployments only.
- ``CacheWindowStore``: shares windows through the Django cache (Redis in
  production).  Read-modify-write is not atomic, so a burst across workers
  may admit slightly more than ``max_requests``.
"""

from __future__ import annotations

import math
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Tuple

import structlog
from django.conf import settings
from django.core.cache import cache

logger = structlog.get_logger(__name__)

DEFAULT_MESSAGE = "Too many requests. Please try again later."


@dataclass(frozen=True)
class RateLimitConfig:
    window_seconds: float
    max_requests: int
    message: str = DEFAULT_MESSAGE

    @classmethod
    def named(cls, name: str) -> RateLimitConfig:
        """Build the configuration registered under ``settings.RATE_LIMITS``."""
        try:
            raw = settings.RATE_LIMITS[name]
        except KeyError:
            raise KeyError(f"Unknown rate limit configuration: {name}") from None
        return cls(
            window_seconds=raw["window_seconds"],
            max_requests=raw["max_requests"],
            message=raw.get("message", DEFAULT_MESSAGE),
        )


@dataclass(frozen=True)
class WindowEntry:
    count: int
    window_start: float


@dataclass(frozen=True)
class Decision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: Optional[int] = None

    @property
    def reset_at_iso(self) -> str:
        return datetime.fromtimestamp(self.reset_at, tz=timezone.utc).isoformat()


def evaluate_window(
    entry: Optional[WindowEntry], config: RateLimitConfig, now: float
) -> Tuple[WindowEntry, Decision]:
    """Apply one request to ``entry`` and decide whether it is admitted."""
    if entry is None or now - entry.window_start > config.window_seconds:
        entry = WindowEntry(count=0, window_start=now)

    entry = WindowEntry(count=entry.count + 1, window_start=entry.window_start)
    reset_at = entry.window_start + config.window_seconds

    if entry.count > config.max_requests:
        return entry, Decision(
            allowed=False,
            limit=config.max_requests,
            remaining=0,
            reset_at=reset_at,
            retry_after=math.ceil(reset_at - now),
        )
    return entry, Decision(
        allowed=True,
        limit=config.max_requests,
        remaining=config.max_requests - entry.count,
        reset_at=reset_at,
    )


# ---------------------------------------------------------------------------
# Window stores
# ---------------------------------------------------------------------------


class WindowStore(ABC):
    @abstractmethod
    def apply(self, key: str, config: RateLimitConfig, now: float) -> Decision:
        """Evaluate one request for ``key`` and persist the updated entry."""

    @abstractmethod
    def clear(self) -> None:
        """Forget every window."""


class InMemoryWindowStore(WindowStore):
    def __init__(self, prune_interval: float = 60.0) -> None:
        self._entries: Dict[str, Tuple[WindowEntry, float]] = {}
        self._lock = threading.Lock()
        self._prune_interval = prune_interval
        self._last_prune = 0.0

    def apply(self, key: str, config: RateLimitConfig, now: float) -> Decision:
        with self._lock:
            self._prune(now)
            stored = self._entries.get(key)
            entry, decision = evaluate_window(
                stored[0] if stored else None, config, now
            )
            self._entries[key] = (entry, config.window_seconds)
            return decision

    def _prune(self, now: float) -> None:
        if now - self._last_prune < self._prune_interval:
            return
        self._last_prune = now
        stale = [
            key
            for key, (entry, window) in self._entries.items()
            if now - entry.window_start > window
        ]
        for key in stale:
            del self._entries[key]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._last_prune = 0.0

    def __len__(self) -> int:
        return len(self._entries)


class CacheWindowStore(WindowStore):
    key_prefix = "ratelimit"

    def __init__(self, cache_backend=None) -> None:
        self._cache = cache_backend if cache_backend is not None else cache

    def apply(self, key: str, config: RateLimitConfig, now: float) -> Decision:
        cache_key = f"{self.key_prefix}:{key}"
        raw = self._cache.get(cache_key)
        stored = WindowEntry(**raw) if raw else None
        entry, decision = evaluate_window(stored, config, now)
        self._cache.set(
            cache_key,
            {"count": entry.count, "window_start": entry.window_start},
            timeout=math.ceil(config.window_seconds) + 1,
        )
        return decision

    def clear(self) -> None:
        delete_pattern = getattr(self._cache, "delete_pattern", None)
        if delete_pattern is not None:
            delete_pattern(f"{self.key_prefix}:*")
        else:
            self._cache.clear()


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class RateLimiter:
    """Explicit limiter object; the store holds all mutable state."""

    def __init__(
        self,
        store: Optional[WindowStore] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store if store is not None else InMemoryWindowStore()
        self._clock = clock

    def check(self, key: str, config: RateLimitConfig) -> Decision:
        decision = self._store.apply(key, config, self._clock())
        if not decision.allowed:
            logger.warning(
                "ratelimit.rejected",
                key=key,
                limit=decision.limit,
                retry_after=decision.retry_after,
            )
        return decision

    def reset(self) -> None:
        self._store.clear()


_limiter: Optional[RateLimiter] = None
_limiter_lock = threading.Lock()


def build_rate_limiter() -> RateLimiter:
    if settings.RATE_LIMIT_STORE == "cache":
        return RateLimiter(store=CacheWindowStore())
    return RateLimiter(store=InMemoryWindowStore())


def get_rate_limiter() -> RateLimiter:
    """Return the process-wide limiter built from ``RATE_LIMIT_STORE``."""
    global _limiter
    if _limiter is None:
        with _limiter_lock:
            if _limiter is None:
                _limiter = build_rate_limiter()
    return _limiter
