"""
Cache-aside retrieval for upstream JSON documents.
"""

from typing import Any, Dict, Mapping, Optional, TYPE_CHECKING

from shared.errors import GatewayError, NotFoundError
from shared.logging import get_logger
from cache_gateway.app.adapters.upstream_client import UpstreamClient
from cache_gateway.app.domain.models import LogicalRequest
from cache_gateway.app.upstreams.catalog import UpstreamDefinition
from .cache_keys import derive_cache_key
from .redis_cache import RedisCache

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class CacheAsideService:
    """Validate, look up, and on a miss fetch then populate.

    No lock is held between the lookup and the write: two concurrent misses
    for the same key both fetch and the last write wins.
    """

    def __init__(
        self,
        cache: RedisCache,
        clients: Mapping[str, UpstreamClient],
        *,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.cache = cache
        self.clients: Dict[str, UpstreamClient] = dict(clients)
        self.metrics = metrics
        self.logger = get_logger("gateway.cache_aside")

    def upstream(self, name: str) -> UpstreamDefinition:
        """Definition of the named upstream, or NotFoundError."""
        return self._client_for(name).upstream

    async def get(self, request: LogicalRequest) -> Any:
        """Serve ``request`` from cache, falling through to the upstream."""
        client = self._client_for(request.upstream)
        endpoint = client.upstream.resolve_endpoint(request.resource)
        cache_key = derive_cache_key(request.upstream, endpoint, request.params)

        cached = await self.cache.get(cache_key)
        if cached is not None:
            self._count("cache_hits_total", upstream=request.upstream)
            self.logger.info("Returning cached data", upstream=request.upstream, resource=request.resource)
            return cached

        self._count("cache_misses_total", upstream=request.upstream)
        self.logger.info("Fetching data from upstream", upstream=request.upstream, resource=request.resource)

        try:
            data = await client.fetch(endpoint, request.params)
        except GatewayError as exc:
            self._count("upstream_fetch_total", upstream=request.upstream, outcome=exc.code.lower())
            raise

        self._count("upstream_fetch_total", upstream=request.upstream, outcome="success")
        await self.cache.set(cache_key, data)
        return data

    def _client_for(self, name: str) -> UpstreamClient:
        client = self.clients.get(name)
        if client is None:
            raise NotFoundError(
                f'Unknown upstream: "{name}"',
                details={"upstream": name, "available": sorted(self.clients)},
            )
        return client

    def _count(self, metric_name: str, **labels) -> None:
        if self.metrics is not None:
            self.metrics.increment_counter(metric_name, **labels)
