"""
Unit tests for the cache-aside service.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from cache_gateway.app.adapters.upstream_client import UpstreamClient
from cache_gateway.app.caching.cache_aside import CacheAsideService
from cache_gateway.app.domain.models import LogicalRequest
from cache_gateway.app.upstreams.catalog import YOUTUBE_ALLOWED_RESOURCES, UpstreamDefinition
from shared.errors import (
    CacheUnavailableError,
    NotFoundError,
    RequestFailedError,
    UpstreamApiError,
    ValidationError,
)
from shared.metrics import MetricsCollector


SEARCH_RESULT = {"kind": "youtube#searchListResponse", "items": [{"id": {"videoId": "abc"}}]}


class TestCacheAsideService:
    """Test cases for CacheAsideService."""

    @pytest.fixture
    def youtube_client(self):
        """UpstreamClient with a mocked fetch."""
        upstream = UpstreamDefinition(
            name="youtube",
            display_name="YouTube",
            base_url="https://youtube.test/v3",
            allowed_resources=YOUTUBE_ALLOWED_RESOURCES,
            fixed_params={"key": "k", "channelId": "c"},
        )
        client = UpstreamClient(upstream, MagicMock())
        client.fetch = AsyncMock(return_value=SEARCH_RESULT)
        return client

    @pytest.fixture
    def wp_client(self):
        upstream = UpstreamDefinition(name="wp", display_name="WordPress", base_url="https://wp.test/wp-json/wp/v2")
        client = UpstreamClient(upstream, MagicMock())
        client.fetch = AsyncMock(return_value=[{"id": 1, "title": {"rendered": "Hello"}}])
        return client

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("gateway")

    @pytest.fixture
    def service(self, memory_cache, youtube_client, wp_client, metrics):
        return CacheAsideService(
            memory_cache,
            {"youtube": youtube_client, "wp": wp_client},
            metrics=metrics,
        )

    @pytest.mark.asyncio
    async def test_miss_fetches_and_populates(self, service, memory_cache, youtube_client, metrics):
        """A miss fetches once and stores under the derived key."""
        result = await service.get(LogicalRequest("youtube", "search", {"q": "test"}))

        assert result == SEARCH_RESULT
        youtube_client.fetch.assert_awaited_once_with("/search", {"q": "test"})
        assert memory_cache.get_calls == ['youtube:/search:{"q":"test"}']
        assert memory_cache.set_calls == ['youtube:/search:{"q":"test"}']
        assert memory_cache.ttls['youtube:/search:{"q":"test"}'] == 3600
        assert metrics.sample("cache_misses_total", upstream="youtube") == 1.0
        assert metrics.sample("upstream_fetch_total", upstream="youtube", outcome="success") == 1.0

    @pytest.mark.asyncio
    async def test_hit_skips_upstream(self, service, memory_cache, youtube_client, metrics):
        """Repeating a request within the TTL is served from cache unchanged."""
        request = LogicalRequest("youtube", "search", {"q": "test"})

        first = await service.get(request)
        second = await service.get(request)

        assert first == second == SEARCH_RESULT
        assert youtube_client.fetch.await_count == 1
        assert len(memory_cache.set_calls) == 1
        assert metrics.sample("cache_hits_total", upstream="youtube") == 1.0

    @pytest.mark.asyncio
    async def test_param_order_shares_entry(self, service, youtube_client):
        """Set-equal parameters hit the same cache entry."""
        await service.get(LogicalRequest("youtube", "search", {"q": "test", "part": "snippet"}))
        await service.get(LogicalRequest("youtube", "search", {"part": "snippet", "q": "test"}))

        assert youtube_client.fetch.await_count == 1

    @pytest.mark.asyncio
    async def test_expiry_triggers_exactly_one_refetch(self, service, memory_cache, youtube_client):
        """Once the entry expires, the next request fetches again, once."""
        request = LogicalRequest("youtube", "videos", {"id": "abc"})
        await service.get(request)

        memory_cache.expire_all()
        await service.get(request)
        await service.get(request)

        assert youtube_client.fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_invalid_resource_touches_nothing(self, service, memory_cache, youtube_client):
        """Validation runs before any cache or upstream access."""
        with pytest.raises(ValidationError) as exc_info:
            await service.get(LogicalRequest("youtube", "bogus", {"q": "test"}))

        assert exc_info.value.message == (
            'Invalid resource: "bogus". Allowed: search, videos, channels, playlists, playlistItems'
        )
        assert memory_cache.get_calls == []
        assert memory_cache.set_calls == []
        youtube_client.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_upstream(self, service, memory_cache):
        """Unknown upstream names are rejected before any cache access."""
        with pytest.raises(NotFoundError):
            await service.get(LogicalRequest("vimeo", "search", {}))

        assert memory_cache.get_calls == []

    @pytest.mark.asyncio
    async def test_upstream_error_not_cached(self, service, memory_cache, youtube_client, metrics):
        """Upstream failures propagate unchanged and nothing is written."""
        error = UpstreamApiError("YouTube", 403, "quota exceeded")
        youtube_client.fetch.side_effect = error

        with pytest.raises(UpstreamApiError) as exc_info:
            await service.get(LogicalRequest("youtube", "search", {"q": "test"}))

        assert exc_info.value is error
        assert memory_cache.set_calls == []
        assert metrics.sample("upstream_fetch_total", upstream="youtube", outcome="upstream_api_error") == 1.0

    @pytest.mark.asyncio
    async def test_transport_error_not_cached(self, service, memory_cache, youtube_client):
        """Transport failures propagate and nothing is written."""
        youtube_client.fetch.side_effect = RequestFailedError("YouTube", "Connection refused")

        with pytest.raises(RequestFailedError):
            await service.get(LogicalRequest("youtube", "search", {"q": "test"}))

        assert memory_cache.set_calls == []

    @pytest.mark.asyncio
    async def test_failure_then_success_fetches_again(self, service, youtube_client):
        """A failed fetch leaves no entry, so the next request retries upstream."""
        youtube_client.fetch.side_effect = [UpstreamApiError("YouTube", 500, "boom"), SEARCH_RESULT]
        request = LogicalRequest("youtube", "search", {"q": "test"})

        with pytest.raises(UpstreamApiError):
            await service.get(request)
        assert await service.get(request) == SEARCH_RESULT
        assert youtube_client.fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_cache_unavailable_fails_request(self, service, memory_cache, youtube_client):
        """No silent fallback to the upstream when Redis is down."""
        memory_cache.available = False

        with pytest.raises(CacheUnavailableError):
            await service.get(LogicalRequest("youtube", "search", {"q": "test"}))

        youtube_client.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cache_write_failure_fails_request(self, service, memory_cache, youtube_client):
        """A failed write after a successful fetch still fails the request."""
        original_set = memory_cache.set

        async def failing_set(key, value):
            memory_cache.available = False
            await original_set(key, value)

        memory_cache.set = failing_set

        with pytest.raises(CacheUnavailableError):
            await service.get(LogicalRequest("youtube", "search", {"q": "test"}))

        youtube_client.fetch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_passthrough_upstream(self, service, memory_cache, wp_client):
        """Passthrough upstreams cache any path."""
        result = await service.get(LogicalRequest("wp", "posts", {"per_page": "5"}))

        assert result == [{"id": 1, "title": {"rendered": "Hello"}}]
        wp_client.fetch.assert_awaited_once_with("/posts", {"per_page": "5"})
        assert memory_cache.set_calls == ['wp:/posts:{"per_page":"5"}']

    def test_upstream_lookup(self, service):
        assert service.upstream("youtube").name == "youtube"
        with pytest.raises(NotFoundError):
            service.upstream("missing")
