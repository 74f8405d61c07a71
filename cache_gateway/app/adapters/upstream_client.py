"""
Upstream API client for Gateway.
"""

from typing import Any, Dict, Mapping

import httpx

from shared.logging import get_logger
from shared.errors import RequestFailedError, UpstreamApiError
from cache_gateway.app.upstreams.catalog import UpstreamDefinition


DEFAULT_TIMEOUT_SECONDS = 30.0


class UpstreamClient:
    """Issues exactly one GET per call against a single upstream.

    Failures are never retried: a non-2xx answer becomes UpstreamApiError,
    anything that prevents a readable answer becomes RequestFailedError.
    """

    def __init__(
        self,
        upstream: UpstreamDefinition,
        http: httpx.AsyncClient,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.upstream = upstream
        self.http = http
        self.timeout = timeout
        self.logger = get_logger(f"gateway.upstream.{upstream.name}")

    def build_query(self, params: Mapping[str, str]) -> Dict[str, str]:
        """Merge caller params with the upstream's fixed params (fixed win)."""
        query = dict(params)
        query.update(self.upstream.fixed_params)
        return query

    async def fetch(self, endpoint: str, params: Mapping[str, str]) -> Any:
        """GET ``base_url + endpoint`` and return the parsed JSON body."""
        url = f"{self.upstream.base_url}{endpoint}"
        service = self.upstream.display_name

        self.logger.debug(
            "Making upstream request",
            url=url,
            params=dict(params),
            fixed_params=sorted(self.upstream.fixed_params),
        )

        try:
            response = await self.http.get(url, params=self.build_query(params), timeout=self.timeout)
        except httpx.TimeoutException as exc:
            self.logger.warning("Upstream request timed out", url=url, timeout=self.timeout)
            raise RequestFailedError(
                service,
                f"timed out after {self.timeout}s",
                details={"url": url},
                timeout=True,
            ) from exc
        except httpx.HTTPError as exc:
            self.logger.warning("Upstream request failed", url=url, error=str(exc))
            raise RequestFailedError(service, str(exc) or type(exc).__name__, details={"url": url}) from exc

        if not response.is_success:
            body = response.text
            self.logger.warning(
                "Upstream API error",
                url=url,
                status_code=response.status_code,
                body=body,
            )
            raise UpstreamApiError(service, response.status_code, body)

        try:
            data = response.json()
        except ValueError as exc:
            self.logger.warning("Upstream returned invalid JSON", url=url, status_code=response.status_code)
            raise RequestFailedError(service, "invalid JSON in response body", details={"url": url}) from exc

        self.logger.debug("Upstream response received", url=url, status_code=response.status_code)
        return data
