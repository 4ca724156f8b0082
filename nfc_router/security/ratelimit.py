"""Fixed-window rate limiting per client identity.

The limiter owns no counters itself: it delegates the atomic
increment-and-compare to a CounterStore (in-process or DynamoDB) and
turns the outcome into response metadata:
- X-Rate-Limit-Remaining on success
- Retry-After (whole seconds, rounded up) on denial

Fail-open: if the store errors or misses its deadline, the request is
admitted and a degraded-mode event is logged.
"""

import asyncio
import math
import time
from dataclasses import dataclass

from nfc_router.counters.store import CounterStore
from nfc_router.logging.audit import audit_extra, get_audit_logger


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # epoch seconds
    degraded: bool = False

    @property
    def retry_after(self) -> int:
        """Seconds until the window resets, rounded up, never below 1."""
        return max(1, math.ceil(self.reset_at - time.time()))


class RateLimiter:
    """Per-identity quota enforcement over a shared counter store."""

    KEY_PREFIX = "rate_limit:"

    def __init__(
        self,
        store: CounterStore,
        max_requests: int,
        window_seconds: float,
        timeout_seconds: float = 1.0,
    ):
        self._store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.timeout_seconds = timeout_seconds

    @property
    def store(self) -> CounterStore:
        return self._store

    async def check_and_consume(
        self,
        identity: str,
        max_requests: int | None = None,
        window_seconds: float | None = None,
    ) -> RateLimitResult:
        """Consume one request from `identity`'s quota.

        Args:
            identity: Client address (see security.identity).
            max_requests: Quota override; defaults to the limiter's.
            window_seconds: Window override; defaults to the limiter's.
        """
        limit = self.max_requests if max_requests is None else max_requests
        window = self.window_seconds if window_seconds is None else window_seconds
        now = time.time()

        try:
            outcome = await asyncio.wait_for(
                self._store.increment_and_check(self.KEY_PREFIX + identity, limit, window, now),
                timeout=self.timeout_seconds,
            )
        except Exception as e:
            # Fail open
            get_audit_logger().warning(
                "Rate limiter degraded, failing open",
                extra=audit_extra(
                    "rate_limit_degraded",
                    client_ip=identity,
                    store=type(self._store).__name__,
                    error_type=type(e).__name__,
                ),
            )
            return RateLimitResult(
                allowed=True,
                limit=limit,
                remaining=max(0, limit - 1),
                reset_at=now + window,
                degraded=True,
            )

        if not outcome.allowed:
            return RateLimitResult(allowed=False, limit=limit, remaining=0, reset_at=outcome.reset_at)

        return RateLimitResult(
            allowed=True,
            limit=limit,
            remaining=max(0, limit - outcome.count),
            reset_at=outcome.reset_at,
        )

    async def reset(self, identity: str) -> None:
        """Clear the window for an identity. Useful for testing and support."""
        await self._store.reset(self.KEY_PREFIX + identity)
