"""
Total row count estimation for the package table.

The backend does not guarantee an authoritative count, so the estimator
walks an ordered chain of strategies, from exact answers to crude guesses,
and always returns a number. Results from the sampling, lookup and default
steps are approximate.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..api.client import ApiClient
from ..api.query import build_query_params
from .constants import (
    COUNT_HEADERS,
    DEFAULT_TOTAL_COUNT,
    KNOWN_LOCATION_COUNTS,
    SAMPLE_CEILING,
    SAMPLE_OFFSETS,
    SAMPLE_SIZE,
)
from .helpers import extract_count, extract_rows

logger = logging.getLogger(__name__)

Strategy = Callable[[dict[str, Any]], Awaitable[int | None]]


class CountEstimator:
    """
    Best-effort total count for a filter set.

    Strategies run in order until one produces a count:
    1. ``totalPaket`` from dashboard stats
    2. count fields from a count-only filtered list
    3. ``X-Total-Count`` header (or count fields) from a one-row request
    4. sampling up to three pages of 100 rows
    5. the per-location lookup table
    6. a fixed default
    """

    def __init__(
        self,
        client: ApiClient,
        known_counts: dict[str, int] | None = None,
        default_count: int = DEFAULT_TOTAL_COUNT,
        strategy_timeout: float | None = None,
    ):
        """
        Args:
            client: Backend client
            known_counts: Location name -> observed count, see KNOWN_LOCATION_COUNTS
            default_count: Returned when nothing else applies
            strategy_timeout: Upper bound per network strategy in seconds (None: rely on request timeouts)
        """
        self.client = client
        self.known_counts = KNOWN_LOCATION_COUNTS if known_counts is None else known_counts
        self.default_count = default_count
        self.strategy_timeout = strategy_timeout
        self.last_source: str | None = None

        self.strategies: list[tuple[str, Strategy]] = [
            ("stats", self._from_stats),
            ("count_only", self._from_count_only),
            ("headers", self._from_headers),
            ("sampling", self._from_sampling),
        ]

    async def estimate_count(self, filters: dict[str, Any]) -> int:
        """
        Estimate the number of packages matching the filters.

        Args:
            filters: FilterCriteria.to_params() mapping

        Returns:
            A non-negative count. Never raises.
        """
        for name, strategy in self.strategies:
            try:
                if self.strategy_timeout is not None:
                    count = await asyncio.wait_for(strategy(filters), timeout=self.strategy_timeout)
                else:
                    count = await strategy(filters)
            except Exception as e:
                logger.info(f"[Count] Strategy '{name}' failed: {e}")
                continue

            if count is not None:
                logger.debug(f"[Count] {count} rows via '{name}'")
                self.last_source = name
                return count

            logger.debug(f"[Count] Strategy '{name}' produced no count")

        known = self._from_known_locations(filters)
        if known is not None:
            logger.info(f"[Count] Using known count {known} for {filters.get('daerah_tingkat')} {filters.get('kota_kab')}")
            self.last_source = "known_location"
            return known

        logger.info(f"[Count] No strategy succeeded, defaulting to {self.default_count}")
        self.last_source = "default"
        return self.default_count

    async def _from_stats(self, filters: dict[str, Any]) -> int | None:
        stats = await self.client.get_dashboard_stats(filters)
        if not isinstance(stats, dict):
            return None
        total = stats.get("totalPaket")
        if total is None or isinstance(total, bool):
            return None
        return max(int(total), 0)

    async def _from_count_only(self, filters: dict[str, Any]) -> int | None:
        payload = await self.client.get_filtered_packages({**filters, "count_only": True, "skip": 0, "limit": 1})
        return extract_count(payload)

    async def _from_headers(self, filters: dict[str, Any]) -> int | None:
        params = {**filters, "skip": 0, "limit": 1}
        params.pop("count_only", None)

        response = await self.client.request_raw("/paket/filter", params=build_query_params(params))
        for header in COUNT_HEADERS:
            value = response.headers.get(header)
            if value is not None and value.strip().isdigit():
                return int(value.strip())

        try:
            payload = response.json()
        except ValueError:
            return None
        return extract_count(payload)

    async def _from_sampling(self, filters: dict[str, Any]) -> int | None:
        """Walk pages of SAMPLE_SIZE rows; a short page gives the exact total."""
        for offset in SAMPLE_OFFSETS:
            payload = await self.client.get_filtered_packages({**filters, "skip": offset, "limit": SAMPLE_SIZE})
            rows = extract_rows(payload)
            if len(rows) < SAMPLE_SIZE:
                return offset + len(rows)
        # Every sampled page was full; stop here rather than keep paging
        return SAMPLE_CEILING

    def _from_known_locations(self, filters: dict[str, Any]) -> int | None:
        kota_kab = (filters.get("kota_kab") or "").strip()
        if not kota_kab:
            return None
        daerah_tingkat = (filters.get("daerah_tingkat") or "").strip()

        candidates = [f"{daerah_tingkat} {kota_kab}".strip().lower(), kota_kab.lower()]
        for key in candidates:
            if key in self.known_counts:
                return self.known_counts[key]
        return None
