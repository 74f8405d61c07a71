"""
Rate limiting package for the Gateway.

Holds the in-process token-bucket limiter and the request admission helper
that enforce per-client request budgets with burst tolerance.
"""

from .token_bucket import RateLimitMiddleware, TokenBucketRateLimiter

__all__ = ["RateLimitMiddleware", "TokenBucketRateLimiter"]
