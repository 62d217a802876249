"""DRF glue for the fixed-window rate limiter.

Views opt in by setting ``throttle_scope`` (statically or per action in
``get_throttles``) to a key of ``settings.RATE_LIMITS``.
"""

from __future__ import annotations

from typing import Optional

from rest_framework.throttling import BaseThrottle

from modules.core.exceptions import RateLimitExceeded
from modules.core.ratelimit import Decision, RateLimitConfig, get_rate_limiter


class FixedWindowThrottle(BaseThrottle):
    """Counts requests per (scope, client address)."""

    def __init__(self) -> None:
        self.decision: Optional[Decision] = None

    def allow_request(self, request, view) -> bool:
        scope = getattr(view, "throttle_scope", None)
        if not scope:
            return True

        config = RateLimitConfig.named(scope)
        self.decision = get_rate_limiter().check(
            f"{scope}:{self.get_ident(request)}", config
        )
        view.rate_limit_decision = self.decision
        view.rate_limit_config = config
        return self.decision.allowed

    def wait(self) -> Optional[float]:
        if self.decision is None:
            return None
        return self.decision.retry_after


class RateLimitedViewMixin:
    """Adds ``X-RateLimit-*`` headers and the configured 429 message."""

    throttle_classes = [FixedWindowThrottle]
    throttle_scope: Optional[str] = None
    rate_limit_decision: Optional[Decision] = None
    rate_limit_config: Optional[RateLimitConfig] = None

    def throttled(self, request, wait):
        message = self.rate_limit_config.message if self.rate_limit_config else ""
        raise RateLimitExceeded(wait=wait, message=message)

    def finalize_response(self, request, response, *args, **kwargs):
        response = super().finalize_response(request, response, *args, **kwargs)
        decision = self.rate_limit_decision
        if decision is not None:
            response["X-RateLimit-Limit"] = str(decision.limit)
            response["X-RateLimit-Remaining"] = str(decision.remaining)
            response["X-RateLimit-Reset"] = decision.reset_at_iso
        return response
