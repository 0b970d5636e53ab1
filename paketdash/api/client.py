"""
Async client for the procurement backend API.

Every call carries a timeout, failures surface as typed ApiError
subclasses, and nothing is retried here. Callers decide whether to retry
or fall back to previous data.
"""

import logging
import time
from collections.abc import Mapping
from typing import Any

import httpx

from ..core.constants import REQUEST_TIMEOUT_SECONDS
from .query import build_query_params

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base class for backend request failures."""


class ApiTimeoutError(ApiError):
    """The request did not complete within the timeout."""

    def __init__(self, url: str, timeout: float):
        self.url = url
        self.timeout = timeout
        super().__init__(f"Request to {url} timed out after {timeout:.0f}s")


class ApiConnectionError(ApiError):
    """The request could not be sent or the connection broke."""


class ApiStatusError(ApiError):
    """The backend answered with a non-success status."""

    def __init__(self, status_code: int, details: Any, url: str = ""):
        self.status_code = status_code
        self.details = details
        self.url = url
        message = details.get("message") if isinstance(details, dict) else None
        super().__init__(message or f"HTTP error! Status: {status_code}")


class MalformedResponseError(ApiError):
    """A success response whose body is not valid JSON."""


class ApiClient:
    """
    Thin wrapper around httpx.AsyncClient for the dashboard endpoints.

    Usage:
        async with ApiClient("http://localhost:8000") as client:
            stats = await client.get_dashboard_stats(filters)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            base_url: Backend root, e.g. http://localhost:8000
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests use MockTransport/ASGITransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    async def request_raw(
        self,
        path: str,
        method: str = "GET",
        params: Mapping[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        """
        Issue a request and return the raw response after status checks.

        Raises:
            ApiTimeoutError: On timeout
            ApiConnectionError: When the request could not be completed
            ApiStatusError: On a non-2xx status
        """
        url = f"{self.base_url}{path}"
        start = time.time()
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as e:
            logger.warning(f"[API] {method} {url} timed out after {self.timeout:.0f}s")
            raise ApiTimeoutError(url, self.timeout) from e
        except httpx.RequestError as e:
            logger.warning(f"[API] {method} {url} failed: {e}")
            raise ApiConnectionError(f"Request to {url} failed: {e}") from e

        duration_ms = (time.time() - start) * 1000
        logger.debug(f"[API] {method} {response.request.url} -> {response.status_code} ({duration_ms:.1f}ms)")

        if not response.is_success:
            try:
                details = response.json()
            except ValueError:
                details = response.text
            logger.warning(f"[API] {method} {url} returned {response.status_code}: {details}")
            raise ApiStatusError(response.status_code, details, url)

        return response

    async def request(
        self,
        path: str,
        method: str = "GET",
        params: Mapping[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """
        Issue a request and return the parsed JSON body.

        Raises:
            MalformedResponseError: If the body is not JSON
            ApiError: See request_raw()
        """
        response = await self.request_raw(path, method=method, params=params, json=json)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Non-JSON response from {path}: {response.text[:200]}") from e

    # Endpoints

    async def get_regions(self) -> list[dict]:
        return await self.request("/regions")

    async def search_locations(self, query: str, limit: int = 10) -> list[dict]:
        """Search locations by name. Queries under two characters return nothing."""
        if not query or len(query) < 2:
            return []
        return await self.request("/locations/search", params={"q": query, "limit": limit})

    async def get_dashboard_stats(self, filters: Mapping[str, Any] | None = None) -> dict:
        return await self.request("/dashboard/stats", params=build_query_params(filters, paginate=False))

    async def get_chart_data(self, chart_type: str, filters: Mapping[str, Any] | None = None) -> list[dict]:
        return await self.request(
            f"/dashboard/chart/{chart_type}", params=build_query_params(filters, paginate=False)
        )

    async def get_filtered_packages(self, filters: Mapping[str, Any] | None = None) -> Any:
        """Filtered package list; either a bare list or an object with data/items and a count."""
        return await self.request("/paket/filter", params=build_query_params(filters))

    async def get_wilayah_list(self) -> list[dict]:
        return await self.request("/wilayah/")

    async def get_package(self, package_id: str) -> dict:
        return await self.request(f"/data-sirup/{package_id}")
