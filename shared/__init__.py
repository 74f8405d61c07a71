"""
Shared utilities for the cache gateway.

This package aggregates common building blocks consumed by the service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI app scaffolding (health, metrics, error rendering)

Do not import from cache_gateway into shared/.
"""
