"""
Shared fixtures for cache gateway tests.
"""

import json
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from shared.config import get_config
from shared.errors import CacheUnavailableError
from cache_gateway.app.caching.redis_cache import RedisCache


class InMemoryCache(RedisCache):
    """RedisCache stand-in that records every call and stores JSON text."""

    def __init__(self, default_ttl: int = 3600):
        super().__init__("redis://memory", default_ttl)
        self.store: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.get_calls: List[str] = []
        self.set_calls: List[str] = []
        self.available = True

    async def start(self) -> None:
        if not self.available:
            raise CacheUnavailableError("Redis unavailable: connection refused")

    async def close(self) -> None:
        return None

    async def ping(self) -> bool:
        return self.available

    async def get(self, key: str) -> Optional[Any]:
        self.get_calls.append(key)
        if not self.available:
            raise CacheUnavailableError("Redis unavailable: connection refused")
        payload = self.store.get(key)
        return None if payload is None else json.loads(payload)

    async def set(self, key: str, value: Any) -> None:
        self.set_calls.append(key)
        if not self.available:
            raise CacheUnavailableError("Redis unavailable: connection refused")
        self.store[key] = json.dumps(value)
        self.ttls[key] = self.default_ttl

    def expire_all(self) -> None:
        self.store.clear()
        self.ttls.clear()


class RecordingUpstream:
    """httpx MockTransport handler returning canned responses per path."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.routes: Dict[str, Tuple[int, Any]] = {}
        self.default: Tuple[int, Any] = (200, {"items": []})
        self.error: Optional[Exception] = None

    def respond(self, path: str, status_code: int, body: Any) -> None:
        self.routes[path] = (status_code, body)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        status_code, body = self.routes.get(request.url.path, self.default)
        if isinstance(body, str):
            return httpx.Response(status_code, text=body)
        return httpx.Response(status_code, json=body)


@pytest.fixture
def memory_cache() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture
def recording_upstream() -> RecordingUpstream:
    return RecordingUpstream()


@pytest.fixture
def gateway_config_factory() -> Callable[..., Any]:
    """Build a gateway config with test-friendly defaults."""

    def _factory(**overrides):
        settings = {
            "youtube_api_key": "test-api-key",
            "channel_id": "UC-test-channel",
            "youtube_base_url": "https://youtube.test/v3",
            "wordpress_base_url": "https://wordpress.test/wp-json/wp/v2",
            "rate_limit_burst": 100,
            "rate_limit_refill_seconds": 0.6,
        }
        settings.update(overrides)
        return get_config("gateway", **settings)

    return _factory
