"""
Token bucket rate limiter for Gateway service.

Buckets live in process memory, keyed by client IP. They are created on the
first request from an address and dropped by a periodic sweep once idle long
enough to have refilled completely, so eviction never hands out extra tokens.
"""

import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, TYPE_CHECKING

from fastapi import Request

from shared.logging import get_logger, set_client_context
from shared.errors import RateLimitError

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


@dataclass
class TokenBucket:
    """Tokens available to one client and when they were last topped up."""

    tokens: float
    updated_at: float


class TokenBucketRateLimiter:
    """In-process token bucket rate limiter keyed by client identity."""

    def __init__(
        self,
        burst: int = 100,
        refill_interval: float = 0.6,
        *,
        retention_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional["MetricsCollector"] = None,
    ):
        if burst < 1:
            raise ValueError("burst must be >= 1")
        if refill_interval <= 0:
            raise ValueError("refill_interval must be > 0")

        self.burst = burst
        self.refill_interval = refill_interval
        # A bucket idle for a full refill is indistinguishable from a new one
        self.retention_seconds = max(retention_seconds or 0.0, burst * refill_interval)
        self.logger = get_logger("gateway.rate_limiter")
        self.metrics = metrics

        self._clock = clock
        self._buckets: Dict[str, TokenBucket] = {}
        self._lock = threading.Lock()
        self._sweeper: Optional[asyncio.Task] = None

    def check_rate_limit(self, client_id: str) -> Dict[str, Any]:
        """Consume one token for ``client_id`` if available."""
        with self._lock:
            now = self._clock()
            bucket = self._buckets.get(client_id)
            if bucket is None:
                bucket = TokenBucket(tokens=float(self.burst), updated_at=now)
                self._buckets[client_id] = bucket
            else:
                self._refill(bucket, now)

            if bucket.tokens >= 1.0:
                bucket.tokens -= 1.0
                return {
                    "allowed": True,
                    "limit": self.burst,
                    "remaining": int(bucket.tokens),
                }

            retry_after = (1.0 - bucket.tokens) * self.refill_interval

        self.logger.warning("Rate limit exceeded", client_id=client_id, limit=self.burst)
        if self.metrics is not None:
            self.metrics.increment_counter("rate_limit_rejections_total")
        return {
            "allowed": False,
            "limit": self.burst,
            "remaining": 0,
            "retry_after": retry_after,
        }

    def sweep(self) -> int:
        """Evict buckets idle for at least the retention window."""
        with self._lock:
            now = self._clock()
            stale = [
                client_id
                for client_id, bucket in self._buckets.items()
                if now - bucket.updated_at >= self.retention_seconds
            ]
            for client_id in stale:
                del self._buckets[client_id]
            remaining = len(self._buckets)

        if stale:
            self.logger.debug("Evicted stale rate limit buckets", evicted=len(stale), remaining=remaining)
        if self.metrics is not None:
            self.metrics.set_gauge("rate_limit_buckets", remaining)
        return len(stale)

    def bucket_count(self) -> int:
        with self._lock:
            return len(self._buckets)

    def start_sweeper(self, interval: float = 60.0) -> asyncio.Task:
        """Run ``sweep`` every ``interval`` seconds on the running loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_forever(interval))
        return self._sweeper

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def _sweep_forever(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.sweep()

    def _refill(self, bucket: TokenBucket, now: float) -> None:
        elapsed = max(0.0, now - bucket.updated_at)
        bucket.tokens = min(float(self.burst), bucket.tokens + elapsed / self.refill_interval)
        bucket.updated_at = now


class RateLimitMiddleware:
    """Admission check run before a request reaches the cache-aside path.

    Installed as a router dependency rather than ASGI middleware so that a
    RateLimitError goes through the service exception handlers.
    """

    def __init__(self, rate_limiter: TokenBucketRateLimiter, *, trust_forwarded_headers: bool = False):
        self.rate_limiter = rate_limiter
        self.trust_forwarded_headers = trust_forwarded_headers
        self.logger = get_logger("gateway.rate_limit_middleware")

    def check_request(self, request: Request) -> Dict[str, Any]:
        """Admit ``request`` or raise RateLimitError."""
        client_id = self._get_client_id(request)
        set_client_context(client_id)
        result = self.rate_limiter.check_rate_limit(client_id)

        if not result["allowed"]:
            raise RateLimitError(
                "Too many requests",
                retry_after=result["retry_after"],
                details={"client_id": client_id, "limit": result["limit"]},
            )
        return result

    def _get_client_id(self, request: Request) -> str:
        """Extract client ID from request."""
        if self.trust_forwarded_headers:
            forwarded_for = request.headers.get('X-Forwarded-For')
            if forwarded_for:
                return forwarded_for.split(',')[0].strip()

            real_ip = request.headers.get('X-Real-IP')
            if real_ip:
                return real_ip

        return request.client.host if request.client else 'unknown'
