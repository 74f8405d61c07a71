"""
Base service class for cache gateway services.
"""

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional
import time
import os

from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from shared.config import ServiceConfig, get_config
from shared.logging import clear_context, configure_logging, get_logger, set_request_id
from shared.metrics import get_metrics_collector
from shared.errors import GatewayError, RateLimitError


class BaseService:
    """Base service class with common functionality."""

    def __init__(self, service_name: str, config: Optional[ServiceConfig] = None):
        self.service_name = service_name
        self.config = config or get_config(service_name)
        self.logger = get_logger(service_name)
        self.metrics = get_metrics_collector(service_name)
        self._start_time = time.time()

        configure_logging(service_name, self.config.log_level)

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_routes()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        return FastAPI(
            title=f"{self.service_name.replace('_', ' ').title()} Service",
            version="1.0.0",
            docs_url="/docs" if self.config.env == "local" else None,
            redoc_url="/redoc" if self.config.env == "local" else None,
            lifespan=self._lifespan,
        )

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI) -> AsyncIterator[None]:
        await self.startup()
        try:
            yield
        finally:
            await self.shutdown()

    async def startup(self) -> None:
        """Acquire external resources. Override in subclasses."""

    async def shutdown(self) -> None:
        """Release external resources. Override in subclasses."""

    def _setup_middleware(self):
        """Set up middleware."""

        @self.app.middleware("http")
        async def add_request_timing(request: Request, call_next):
            request_id = set_request_id(request.headers.get("X-Request-ID"))
            start_time = time.time()

            try:
                response = await call_next(request)
            finally:
                duration = time.time() - start_time
                clear_context()

            route = request.scope.get("route")
            endpoint = getattr(route, "path", None) or "unmatched"
            self.metrics.record_http_request(
                method=request.method,
                endpoint=endpoint,
                status_code=response.status_code,
                duration=duration
            )

            self.logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2),
                request_id=request_id,
            )

            response.headers["X-Request-ID"] = request_id
            return response

    def _setup_routes(self):
        """Set up common routes."""

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            dependencies = await self._check_dependencies()
            status = "ok" if all(value == "ok" for value in dependencies.values()) else "error"
            body = {
                "service": self.service_name,
                "status": status,
                "uptime_seconds": self._get_uptime(),
                "dependencies": dependencies,
                "version": "1.0.0",
                "commit": os.getenv("GIT_COMMIT", "unknown")
            }
            if status != "ok":
                return JSONResponse(status_code=503, content=body)
            return body

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            return Response(
                content=generate_latest(self.metrics.registry),
                media_type=CONTENT_TYPE_LATEST
            )

        @self.app.exception_handler(GatewayError)
        async def gateway_exception_handler(request: Request, exc: GatewayError):
            """Render GatewayError as {"error": ..., "status": ...}."""
            log = self.logger.warning if exc.status_code < 500 else self.logger.error
            log(
                "Request failed",
                code=exc.code,
                message=exc.message,
                status_code=exc.status_code,
                path=request.url.path,
            )
            self.metrics.record_error(exc.code)

            headers = None
            if isinstance(exc, RateLimitError) and exc.retry_after is not None:
                headers = {"Retry-After": str(max(1, int(exc.retry_after + 0.999)))}

            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_response().model_dump(exclude_none=True),
                headers=headers,
            )

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle general exceptions."""
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            self.metrics.record_error("INTERNAL_ERROR")
            return JSONResponse(
                status_code=500,
                content={"error": "Internal server error", "status": 500}
            )

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check service dependencies. Override in subclasses."""
        return {}

    def _get_uptime(self) -> float:
        """Get service uptime in seconds."""
        return time.time() - self._start_time

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.server_host,
            port=self.config.port,
            log_level=self.config.log_level.lower()
        )
