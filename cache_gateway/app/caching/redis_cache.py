"""
Redis JSON store for cached upstream responses.
"""

import json
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.errors import CacheUnavailableError, InternalError
from shared.logging import get_logger


DEFAULT_TTL_SECONDS = 3600


class RedisCache:
    """JSON get/set over a pooled Redis client with a fixed TTL.

    The underlying ``redis.asyncio.Redis`` keeps a connection pool, so one
    instance is shared by every in-flight request.
    """

    def __init__(
        self,
        redis_url: str,
        default_ttl: int = DEFAULT_TTL_SECONDS,
        *,
        timeout_seconds: float = 5.0,
        client: Optional[redis.Redis] = None,
    ):
        self.redis_url = redis_url
        self.default_ttl = default_ttl
        self.timeout_seconds = timeout_seconds
        self.logger = get_logger("gateway.cache.redis")
        self._redis: Optional[redis.Redis] = client

    async def start(self) -> None:
        """Open the connection pool and verify Redis answers."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=self.timeout_seconds,
                socket_timeout=self.timeout_seconds,
            )

        self.logger.info("Connecting to Redis", url=self._redacted_url())
        try:
            await self._redis.ping()
        except RedisError as exc:
            self.logger.error("Failed to connect to Redis", error=str(exc))
            raise CacheUnavailableError(f"Redis unavailable: {exc}") from exc

        self.logger.info("Redis connection established")

    async def close(self) -> None:
        """Release the connection pool."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    async def ping(self) -> bool:
        """Return True if Redis answers PING."""
        try:
            return bool(await self._client().ping())
        except (RedisError, CacheUnavailableError) as exc:
            self.logger.warning("Redis ping failed", error=str(exc))
            return False

    async def get(self, key: str) -> Optional[Any]:
        """Return the cached JSON document, or None on a miss."""
        try:
            cached = await self._client().get(key)
        except RedisError as exc:
            self.logger.error("Cache get error", key=key, error=str(exc))
            raise CacheUnavailableError(f"Redis unavailable: {exc}") from exc
        except UnicodeDecodeError as exc:
            # decode_responses clients fail inside GET on non-UTF-8 payloads
            self.logger.error("Corrupt cache payload", key=key, error=str(exc))
            raise InternalError() from exc

        if cached is None:
            self.logger.debug("Cache miss", key=key)
            return None

        try:
            if isinstance(cached, bytes):
                cached = cached.decode("utf-8")
            value = json.loads(cached)
        except (TypeError, ValueError) as exc:
            self.logger.error("Corrupt cache payload", key=key, error=str(exc))
            raise InternalError() from exc

        self.logger.debug("Cache hit", key=key)
        return value

    async def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key`` for ``default_ttl`` seconds."""
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as exc:
            self.logger.error("Cache payload not serializable", key=key, error=str(exc))
            raise InternalError() from exc

        try:
            await self._client().setex(key, self.default_ttl, payload)
        except RedisError as exc:
            self.logger.error("Cache set error", key=key, error=str(exc))
            raise CacheUnavailableError(f"Redis unavailable: {exc}") from exc

        self.logger.debug("Cached value", key=key, ttl=self.default_ttl)

    def _client(self) -> redis.Redis:
        if self._redis is None:
            raise CacheUnavailableError("Redis cache not started")
        return self._redis

    def _redacted_url(self) -> str:
        scheme, sep, rest = self.redis_url.partition("://")
        if "@" not in rest:
            return self.redis_url
        return f"{scheme}{sep}***@{rest.split('@', 1)[1]}"
