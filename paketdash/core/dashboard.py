"""
Dashboard state manager.

One DashboardManager owns all dashboard state for an application instance:
filters, the cached table batch, the total count, stats, charts, regions,
and per-subsystem loading and error flags. Every mutation goes through its
methods. Construct one and pass it to whoever needs it.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, replace
from typing import Any

import httpx

from ..api.client import ApiClient, ApiError, MalformedResponseError
from ..config import Config
from .batch_cache import BatchCache
from .constants import ALL_REGIONS_OPTION, CHART_TYPES, DEFAULT_DEBOUNCE_MS
from .count_estimator import CountEstimator
from .filters import FilterCriteria
from .helpers import process_rows

logger = logging.getLogger(__name__)

DEFAULT_STATS: dict[str, Any] = {
    "totalAnggaran": "",
    "totalPaket": 0,
    "tender": 0,
    "dikecualikan": 0,
    "epkem": 0,
    "pengadaanLangsung": 0,
}


@dataclass
class LoadingState:
    initial: bool = True
    dashboard: bool = False
    regions: bool = False
    stats: bool = False
    charts: bool = False
    table: bool = False


@dataclass
class ErrorState:
    dashboard: str | None = None
    regions: str | None = None
    stats: str | None = None
    charts: str | None = None
    table: str | None = None


class DashboardManager:
    """
    Owns dashboard state and reconciles filter changes with the network.

    Filter changes apply immediately and are dispatched after a debounce:
    a page-only change is served from the batch cache when possible, any
    other change invalidates the batch and runs a full refresh (count first,
    then stats, charts and the first batch concurrently).

    While a dispatch is pending or running, further update_filters() calls
    are discarded rather than queued.
    """

    def __init__(
        self,
        client: ApiClient,
        estimator: CountEstimator | None = None,
        batch_cache: BatchCache | None = None,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        initial_filters: FilterCriteria | None = None,
    ):
        self.client = client
        self.estimator = estimator or CountEstimator(client)
        self.batch_cache = batch_cache or BatchCache(client)
        self.debounce_seconds = debounce_ms / 1000

        filters = initial_filters or FilterCriteria.default()
        self.filters = replace(
            filters,
            items_per_page=self.batch_cache.page_size,
            items_per_batch=self.batch_cache.batch_size,
        )

        self.dashboard_stats: dict[str, Any] = dict(DEFAULT_STATS)
        self.chart_data: dict[str, list] = {chart_type: [] for chart_type in CHART_TYPES}
        self.table_data: list[dict] = []
        self.total_items = 0
        self.regions: list[dict] = []
        self.loading = LoadingState()
        self.error = ErrorState()

        self.dispatch_count = 0
        self._is_updating = False
        self._refresh_in_progress = False
        self._dispatch_task: asyncio.Task | None = None
        # Bumped on every non-page filter change; table results fetched
        # under an older generation are dropped
        self._generation = 0

    @classmethod
    def from_config(cls, config: Config, transport: httpx.AsyncBaseTransport | None = None) -> "DashboardManager":
        """Build a manager and its collaborators from configuration."""
        client = ApiClient(
            config.get("public_api_url"),
            timeout=float(config.get("request_timeout")),
            transport=transport,
        )
        batch_cache = BatchCache(client, page_size=config.get("page_size"), batch_size=config.get("batch_size"))
        return cls(client, batch_cache=batch_cache, debounce_ms=config.get("debounce_ms"))

    async def aclose(self):
        if self._dispatch_task and not self._dispatch_task.done():
            self._dispatch_task.cancel()
        await self.client.aclose()

    # Filter synchronization

    def update_filters(self, changes: dict[str, Any]) -> FilterCriteria:
        """
        Apply a partial filter change and schedule the matching fetch.

        Must be called from within a running event loop.

        Args:
            changes: FilterCriteria field names mapped to new values

        Returns:
            The filters now in effect

        Raises:
            ValueError: On unknown fields or an invalid page
        """
        if self._is_updating:
            logger.debug(f"[Dashboard] Update in progress, discarding {changes}")
            return self.filters

        merged = self.filters.with_changes(changes)
        if merged == self.filters:
            logger.debug("[Dashboard] No filter changes detected, skipping update")
            return self.filters

        page_only = set(changes) == {"page"}
        if not page_only:
            merged = replace(merged, page=1)
            self.batch_cache.invalidate()
            self._generation += 1

        self._is_updating = True
        self.filters = merged
        logger.debug(f"[Dashboard] Filters updated to {merged} (page_only={page_only})")

        loop = asyncio.get_running_loop()
        self._dispatch_task = loop.create_task(self._dispatch_after_debounce(merged, page_only))
        return merged

    async def _dispatch_after_debounce(self, filters: FilterCriteria, page_only: bool):
        try:
            await asyncio.sleep(self.debounce_seconds)
            self.dispatch_count += 1
            if page_only:
                logger.debug(f"[Dashboard] Fetching table data for page {filters.page}")
                await self.fetch_table_data(filters.page, filters)
            else:
                logger.debug("[Dashboard] Fetching all dashboard data with updated filters")
                await self.fetch_all_dashboard_data(filters)
        finally:
            self._is_updating = False

    def handle_page_change(self, page: int) -> FilterCriteria:
        """Debounced page move, the same path as update_filters({"page": page})."""
        return self.update_filters({"page": page})

    async def wait_idle(self):
        """Wait for a pending debounced dispatch to finish."""
        task = self._dispatch_task
        if task is not None and not task.done():
            await task

    # Fetching

    async def initialize(self) -> dict[str, Any] | None:
        """Load regions and the first full dashboard for the initial filters."""
        await self.load_regions()
        return await self.fetch_all_dashboard_data()

    async def fetch_all_dashboard_data(self, filters: FilterCriteria | None = None) -> dict[str, Any] | None:
        """
        Full refresh: total count, then stats, charts and the current page.

        The count is awaited first because pagination bounds depend on it.

        Returns:
            The refreshed data, or None if another refresh is already running
        """
        filters = filters or self.filters

        if self._refresh_in_progress:
            logger.debug(f"[Dashboard] Refresh already in progress, skipping {filters}")
            return None

        self._refresh_in_progress = True
        self.loading.dashboard = True
        self.loading.stats = True
        self.loading.charts = True
        self.loading.table = True

        try:
            await self.fetch_total_item_count(filters)

            stats, pie, bar, table = await asyncio.gather(
                self.fetch_dashboard_stats(filters),
                self.fetch_chart_data("pie", filters),
                self.fetch_chart_data("bar", filters),
                self.fetch_table_data(filters.page, filters),
            )

            failures = [msg for msg in (self.error.stats, self.error.charts, self.error.table) if msg]
            if len(failures) == 3:
                self.error.dashboard = f"Failed to load dashboard data: {failures[0]}"
            else:
                self.error.dashboard = None

            return {
                "stats": stats,
                "charts": {"pie": pie, "bar": bar},
                "table": {"data": table, "totalItems": self.total_items},
            }
        finally:
            self.loading.dashboard = False
            self.loading.stats = False
            self.loading.charts = False
            self.loading.table = False
            self.loading.initial = False
            self._refresh_in_progress = False

    async def fetch_total_item_count(self, filters: FilterCriteria | None = None) -> int:
        filters = filters or self.filters
        total = await self.estimator.estimate_count(filters.to_params())
        logger.debug(f"[Dashboard] Total item count {total} (source={self.estimator.last_source})")
        self.total_items = total
        return total

    async def fetch_dashboard_stats(self, filters: FilterCriteria | None = None) -> dict[str, Any]:
        filters = filters or self.filters
        self.loading.stats = True
        try:
            stats = await self.client.get_dashboard_stats(filters.to_params())
            if not isinstance(stats, dict):
                raise MalformedResponseError(f"Expected an object from /dashboard/stats, got {type(stats).__name__}")
            self.dashboard_stats = {**DEFAULT_STATS, **stats}
            self.error.stats = None
        except ApiError as e:
            logger.warning(f"[Dashboard] Error fetching stats: {e}")
            self.error.stats = str(e)
        finally:
            self.loading.stats = False
        return self.dashboard_stats

    async def fetch_chart_data(self, chart_type: str, filters: FilterCriteria | None = None) -> list:
        filters = filters or self.filters
        self.loading.charts = True
        try:
            data = await self.client.get_chart_data(chart_type, filters.to_params())
            if not isinstance(data, list):
                raise MalformedResponseError(f"Expected a list from /dashboard/chart/{chart_type}")
            self.chart_data[chart_type] = data
            self.error.charts = None
        except ApiError as e:
            logger.warning(f"[Dashboard] Error fetching {chart_type} chart: {e}")
            self.error.charts = str(e)
        finally:
            self.loading.charts = False
        return self.chart_data.get(chart_type, [])

    async def fetch_table_data(self, page: int | None = None, filters: FilterCriteria | None = None) -> list[dict]:
        """
        Fetch one table page through the batch cache.

        On failure the previously displayed rows stay in place and the table
        error is set.
        """
        filters = filters or self.filters
        page = page or filters.page
        generation = self._generation

        self.loading.table = True
        try:
            result = await self.batch_cache.fetch_page(filters.to_params(), page)
        except ApiError as e:
            logger.warning(f"[Dashboard] Error fetching table page {page}: {e}")
            self.error.table = str(e)
            return self.table_data
        finally:
            self.loading.table = False

        if generation != self._generation:
            # TODO: cancel superseded batch requests instead of discarding their results
            logger.info(f"[Dashboard] Discarding stale table page {page} from superseded filters")
            return self.table_data

        first_row = (page - 1) * self.batch_cache.page_size + 1
        self.table_data = process_rows(result.rows, first_row)
        self.error.table = None

        revised = result.revise_total(self.total_items)
        if revised != self.total_items:
            logger.debug(f"[Dashboard] Batch {result.batch_index} revised total from {self.total_items} to {revised}")
            self.total_items = revised

        return self.table_data

    async def fetch_page(self, page: int) -> list[dict]:
        """Move to a page and fetch it right away, without the debounce."""
        if page != self.filters.page:
            self.filters = self.filters.with_changes({"page": page})
        return await self.fetch_table_data(page, self.filters)

    async def load_regions(self) -> list[dict]:
        self.loading.regions = True
        try:
            data = await self.client.get_regions()
            if not isinstance(data, list):
                raise MalformedResponseError("Expected a list from /regions")
            self.regions = [dict(ALL_REGIONS_OPTION), *data]
            self.error.regions = None
        except ApiError as e:
            logger.warning(f"[Dashboard] Error loading regions: {e}")
            self.error.regions = str(e)
            self.regions = [dict(ALL_REGIONS_OPTION)]
        finally:
            self.loading.regions = False
        return self.regions

    async def search_locations(self, query: str, limit: int = 10) -> list[dict]:
        """Location suggestions for the search box; empty on any failure."""
        try:
            return await self.client.search_locations(query, limit)
        except ApiError as e:
            logger.info(f"[Dashboard] Error searching locations: {e}")
            return []

    # State

    def current_state(self) -> dict[str, Any]:
        """Snapshot of everything presentation code renders."""
        return {
            "dashboardStats": dict(self.dashboard_stats),
            "chartData": {key: list(value) for key, value in self.chart_data.items()},
            "tableData": list(self.table_data),
            "totalItems": self.total_items,
            "regions": list(self.regions),
            "filters": self.filters.to_dict(),
            "loading": asdict(self.loading),
            "error": asdict(self.error),
        }
