"""
Tests for the backend API client.
"""

import httpx
import pytest

from paketdash.api.client import (
    ApiClient,
    ApiConnectionError,
    ApiStatusError,
    ApiTimeoutError,
    MalformedResponseError,
)


def make_client(handler) -> ApiClient:
    return ApiClient("http://backend.test", transport=httpx.MockTransport(handler))


class TestApiClientRequests:
    """Request building and response parsing."""

    @pytest.mark.asyncio
    async def test_filtered_packages_sends_batch_params(self):
        seen = []

        def handler(request: httpx.Request):
            seen.append(request)
            return httpx.Response(200, json=[{"id": "a"}])

        async with make_client(handler) as client:
            data = await client.get_filtered_packages({"search_query": "jalan", "page": 7, "items_per_batch": 50})

        assert data == [{"id": "a"}]
        assert seen[0].url.path == "/paket/filter"
        assert dict(seen[0].url.params) == {"search": "jalan", "skip": "50", "limit": "50"}
        assert seen[0].headers["accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_stats_and_charts_are_not_paginated(self):
        seen = []

        def handler(request: httpx.Request):
            seen.append(request)
            return httpx.Response(200, json={} if "stats" in request.url.path else [])

        async with make_client(handler) as client:
            await client.get_dashboard_stats({"year": 2025, "page": 2, "items_per_batch": 50})
            await client.get_chart_data("pie", {"year": 2025})

        assert [r.url.path for r in seen] == ["/dashboard/stats", "/dashboard/chart/pie"]
        for request in seen:
            assert "skip" not in request.url.params
            assert "limit" not in request.url.params
            assert request.url.params["year"] == "2025"

    @pytest.mark.asyncio
    async def test_short_location_query_skips_network(self):
        calls = []

        def handler(request: httpx.Request):
            calls.append(request)
            return httpx.Response(200, json=[])

        async with make_client(handler) as client:
            assert await client.search_locations("j") == []
            assert await client.search_locations("") == []
            await client.search_locations("jak", limit=5)

        assert len(calls) == 1
        assert calls[0].url.params["q"] == "jak"
        assert calls[0].url.params["limit"] == "5"

    @pytest.mark.asyncio
    async def test_empty_body_returns_none(self):
        async with make_client(lambda request: httpx.Response(204)) as client:
            assert await client.request("/sales/1", method="POST", json={}) is None

    @pytest.mark.asyncio
    async def test_detail_and_wilayah_paths(self):
        paths = []

        def handler(request: httpx.Request):
            paths.append(request.url.path)
            return httpx.Response(200, json={})

        async with make_client(handler) as client:
            await client.get_package("PKT-1")
            await client.get_wilayah_list()
            await client.get_regions()

        assert paths == ["/data-sirup/PKT-1", "/wilayah/", "/regions"]


class TestApiClientErrors:
    """Failures surface as typed ApiError subclasses."""

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request: httpx.Request):
            raise httpx.ReadTimeout("slow", request=request)

        async with make_client(handler) as client:
            with pytest.raises(ApiTimeoutError) as exc_info:
                await client.get_regions()

        assert exc_info.value.url == "http://backend.test/regions"
        assert "timed out" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        def handler(request: httpx.Request):
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(ApiConnectionError):
                await client.get_regions()

    @pytest.mark.asyncio
    async def test_status_error_with_json_details(self):
        handler = lambda request: httpx.Response(404, json={"message": "Paket not found"})  # noqa: E731

        async with make_client(handler) as client:
            with pytest.raises(ApiStatusError) as exc_info:
                await client.get_package("missing")

        error = exc_info.value
        assert error.status_code == 404
        assert error.details == {"message": "Paket not found"}
        assert str(error) == "Paket not found"

    @pytest.mark.asyncio
    async def test_status_error_with_text_details(self):
        handler = lambda request: httpx.Response(502, text="Bad Gateway")  # noqa: E731

        async with make_client(handler) as client:
            with pytest.raises(ApiStatusError) as exc_info:
                await client.get_regions()

        assert exc_info.value.details == "Bad Gateway"
        assert str(exc_info.value) == "HTTP error! Status: 502"

    @pytest.mark.asyncio
    async def test_malformed_body(self):
        handler = lambda request: httpx.Response(200, text="<html>oops</html>")  # noqa: E731

        async with make_client(handler) as client:
            with pytest.raises(MalformedResponseError):
                await client.get_regions()
