"""
Tests for the total count fallback chain.
"""

import httpx
import pytest

from paketdash.api.client import ApiClient
from paketdash.core.count_estimator import CountEstimator
from paketdash.core.filters import FilterCriteria


def make_estimator(handler, **kwargs) -> CountEstimator:
    client = ApiClient("http://backend.test", transport=httpx.MockTransport(handler))
    return CountEstimator(client, **kwargs)


def failing(request: httpx.Request):
    return httpx.Response(500, json={"message": "down"})


def filter_requests(requests: list[httpx.Request]) -> list[httpx.Request]:
    return [r for r in requests if r.url.path == "/paket/filter"]


class TestCountEstimatorChain:
    """Each strategy is used only when the earlier ones fail."""

    @pytest.mark.asyncio
    async def test_stats_total_used_first(self):
        requests = []

        def handler(request: httpx.Request):
            requests.append(request)
            return httpx.Response(200, json={"totalPaket": 77})

        estimator = make_estimator(handler)
        assert await estimator.estimate_count(FilterCriteria.default().to_params()) == 77
        assert estimator.last_source == "stats"
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_count_only_total(self):
        """Stats fails, count-only answers {"totalCount": 77}."""

        def handler(request: httpx.Request):
            if request.url.path == "/dashboard/stats":
                return httpx.Response(500)
            assert request.url.params["count_only"] == "true"
            return httpx.Response(200, json={"totalCount": 77})

        estimator = make_estimator(handler)
        assert await estimator.estimate_count({"kota_kab": "Jakarta Selatan"}) == 77
        assert estimator.last_source == "count_only"

    @pytest.mark.asyncio
    async def test_total_header(self):
        def handler(request: httpx.Request):
            if request.url.path == "/dashboard/stats":
                return httpx.Response(500)
            if request.url.params.get("count_only"):
                return httpx.Response(200, json=[])
            return httpx.Response(200, json=[{"id": 1}], headers={"x-total-count": "314"})

        estimator = make_estimator(handler)
        assert await estimator.estimate_count({}) == 314
        assert estimator.last_source == "headers"

    @pytest.mark.asyncio
    async def test_sampling_short_page(self):
        """A partial second sample gives offset plus rows."""

        def handler(request: httpx.Request):
            if request.url.path == "/dashboard/stats":
                return httpx.Response(500)
            params = request.url.params
            if params.get("count_only") or params["limit"] == "1":
                return httpx.Response(200, json=[])
            skip = int(params["skip"])
            size = 100 if skip == 0 else 37
            return httpx.Response(200, json=[{"id": i} for i in range(size)])

        estimator = make_estimator(handler)
        assert await estimator.estimate_count({}) == 137
        assert estimator.last_source == "sampling"

    @pytest.mark.asyncio
    async def test_sampling_full_pages_caps_at_500(self):
        """Three full pages give 500 after exactly three sampling requests."""
        samples = []

        def handler(request: httpx.Request):
            if request.url.path == "/dashboard/stats":
                return httpx.Response(500)
            params = request.url.params
            if params.get("count_only"):
                return httpx.Response(503)
            if params["limit"] == "1":
                return httpx.Response(200, json=[])
            samples.append(int(params["skip"]))
            return httpx.Response(200, json=[{"id": i} for i in range(100)])

        estimator = make_estimator(handler)
        assert await estimator.estimate_count({}) == 500
        assert samples == [0, 100, 200]

    @pytest.mark.asyncio
    async def test_known_location_when_everything_fails(self):
        estimator = make_estimator(failing)
        count = await estimator.estimate_count({"daerah_tingkat": "Kota", "kota_kab": "Surakarta"})
        assert count == 244
        assert estimator.last_source == "known_location"

    @pytest.mark.asyncio
    async def test_known_location_matches_bare_name(self):
        estimator = make_estimator(failing, known_counts={"surakarta": 12})
        assert await estimator.estimate_count({"daerah_tingkat": "Kota", "kota_kab": "Surakarta"}) == 12

    @pytest.mark.asyncio
    async def test_default_when_nothing_known(self):
        estimator = make_estimator(failing)
        assert await estimator.estimate_count({"kota_kab": "Atlantis"}) == 100
        assert estimator.last_source == "default"

    @pytest.mark.asyncio
    async def test_network_errors_never_propagate(self):
        def handler(request: httpx.Request):
            raise httpx.ConnectError("refused", request=request)

        estimator = make_estimator(handler, default_count=7)
        assert await estimator.estimate_count({}) == 7

    @pytest.mark.asyncio
    async def test_malformed_stats_falls_through(self):
        def handler(request: httpx.Request):
            if request.url.path == "/dashboard/stats":
                return httpx.Response(200, text="not json")
            return httpx.Response(200, json={"total": 9})

        estimator = make_estimator(handler)
        assert await estimator.estimate_count({}) == 9
        assert estimator.last_source == "count_only"
