"""
Cache gateway service.
"""

from typing import Any, Dict, Mapping, Optional

import httpx
from fastapi import APIRouter, Depends, Request, Response

from shared.base_service import BaseService
from shared.config import ServiceConfig
from cache_gateway.app.adapters.upstream_client import UpstreamClient
from cache_gateway.app.caching.cache_aside import CacheAsideService
from cache_gateway.app.caching.redis_cache import RedisCache
from cache_gateway.app.domain.models import LogicalRequest
from cache_gateway.app.ratelimit.token_bucket import RateLimitMiddleware, TokenBucketRateLimiter
from cache_gateway.app.upstreams.catalog import UpstreamDefinition, build_upstreams


SERVICE_NAME = "gateway"


class CacheGatewayService(BaseService):
    """Cache-aside gateway in front of read-only JSON APIs."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        cache: Optional[RedisCache] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        upstreams: Optional[Mapping[str, UpstreamDefinition]] = None,
    ):
        super().__init__(SERVICE_NAME, config)

        self.cache = cache or RedisCache(
            self.config.redis_url,
            self.config.cache_ttl_seconds,
            timeout_seconds=self.config.redis_timeout_seconds,
        )
        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=self.config.upstream_timeout_seconds)
        self.upstreams = dict(upstreams) if upstreams is not None else build_upstreams(self.config)

        clients = {
            name: UpstreamClient(upstream, self.http_client, timeout=self.config.upstream_timeout_seconds)
            for name, upstream in self.upstreams.items()
        }
        self.cache_aside = CacheAsideService(self.cache, clients, metrics=self.metrics)

        self.rate_limiter = TokenBucketRateLimiter(
            burst=self.config.rate_limit_burst,
            refill_interval=self.config.rate_limit_refill_seconds,
            retention_seconds=self.config.rate_limit_retention_seconds,
            metrics=self.metrics,
        )
        self.rate_limit_middleware = RateLimitMiddleware(
            self.rate_limiter,
            trust_forwarded_headers=self.config.trust_forwarded_headers,
        )

        self._setup_gateway_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.gateway_service = self

    async def startup(self) -> None:
        await self.cache.start()
        self.rate_limiter.start_sweeper(self.config.rate_limit_sweep_interval_seconds)
        self.logger.info(
            "Cache gateway ready",
            address=self.config.server_addr,
            upstreams=sorted(self.upstreams),
            rate_limit_burst=self.config.rate_limit_burst,
            rate_limit_refill_seconds=self.config.rate_limit_refill_seconds,
            cache_ttl_seconds=self.config.cache_ttl_seconds,
        )

    async def shutdown(self) -> None:
        await self.rate_limiter.stop_sweeper()
        if self._owns_http_client:
            await self.http_client.aclose()
        await self.cache.close()

    async def _check_dependencies(self) -> Dict[str, str]:
        return {"redis": "ok" if await self.cache.ping() else "error"}

    async def _admit(self, request: Request, response: Response) -> None:
        """Reject over-budget clients before any validation or cache work."""
        result = self.rate_limit_middleware.check_request(request)
        response.headers["X-RateLimit-Limit"] = str(result["limit"])
        response.headers["X-RateLimit-Remaining"] = str(result["remaining"])

    def _setup_gateway_routes(self):
        """Set up gateway-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": SERVICE_NAME,
                "status": "ok",
                "message": "Cache gateway is running",
            }

        router = APIRouter(prefix="/api", dependencies=[Depends(self._admit)])

        @router.get("/{upstream}")
        async def get_upstream_root(upstream: str, request: Request) -> Any:
            """Catalog for allow-listed upstreams; API root for passthrough ones."""
            definition = self.cache_aside.upstream(upstream)
            if not definition.is_passthrough:
                return definition.catalog()

            logical = LogicalRequest.from_query(upstream, "", request.query_params)
            return await self.cache_aside.get(logical)

        @router.get("/{upstream}/{resource:path}")
        async def get_upstream_resource(upstream: str, resource: str, request: Request) -> Any:
            """Serve one upstream resource through the cache."""
            logical = LogicalRequest.from_query(upstream, resource, request.query_params)
            self.logger.info(
                "Upstream request received",
                upstream=upstream,
                resource=resource,
                params=dict(logical.params),
            )
            return await self.cache_aside.get(logical)

        self.app.include_router(router)


def create_app(config: Optional[ServiceConfig] = None, **components):
    """Build the FastAPI app for the cache gateway."""
    return CacheGatewayService(config, **components).app


def main() -> None:
    """Console entry point."""
    CacheGatewayService().run()


if __name__ == "__main__":
    main()
