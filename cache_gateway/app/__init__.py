"""
Cache gateway service package.

The gateway fronts read-only JSON APIs, enforcing:
- Admission control: per-client token bucket with a periodic sweep
- Resource allow-listing before any cache or network access
- Cache-aside retrieval backed by Redis with a fixed TTL

Structure:
- app.main: FastAPI app, routes, and lifecycle wiring.
- app.adapters: HTTP client for upstream APIs.
- app.caching: Redis adapter, key derivation, and the cache-aside service.
- app.upstreams: Upstream catalog and resource validation.
- app.ratelimit: Token bucket limiter and request admission.
- app.domain: Request models shared across layers.
"""
