"""
Batch cache for the package table.

Rows are fetched from the backend in batches of BATCH_SIZE and served to
the UI in pages of PAGE_SIZE, so paging within a batch never touches the
network.
"""

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any

from ..api.client import ApiClient
from .constants import BATCH_SIZE, PAGE_SIZE
from .helpers import extract_count, extract_rows

logger = logging.getLogger(__name__)


@dataclass
class PageResult:
    """One UI page sliced from the cached batch."""

    rows: list[dict] = field(default_factory=list)
    page: int = 1
    batch_index: int = 1
    from_cache: bool = False
    # Count carried by the batch payload, or implied by a short batch
    count_hint: int | None = None
    # Bounds implied by a full batch or an empty one past the end
    min_count: int | None = None
    max_count: int | None = None

    def revise_total(self, total: int) -> int:
        """Reconcile a running total estimate with what this batch showed."""
        if self.count_hint is not None:
            return self.count_hint
        if self.min_count is not None and total < self.min_count:
            return self.min_count
        if self.max_count is not None and total > self.max_count:
            return self.max_count
        return total


class BatchCache:
    """
    Holds exactly one batch of rows for the active filters.

    States:
    - no batch (initial, or after invalidate())
    - batch loaded: (batch_index, rows)

    Requesting a page inside the loaded batch slices it; any other page
    replaces the batch with a fresh fetch. A failed fetch leaves the
    previous batch in place.
    """

    def __init__(self, client: ApiClient, page_size: int = PAGE_SIZE, batch_size: int = BATCH_SIZE):
        """
        Args:
            client: Backend client used to fetch batches
            page_size: Rows per UI page
            batch_size: Rows per fetch, a multiple of page_size
        """
        if batch_size % page_size != 0:
            raise ValueError(f"batch_size ({batch_size}) must be a multiple of page_size ({page_size})")

        self.client = client
        self.page_size = page_size
        self.batch_size = batch_size

        self.current_batch = 1
        self.rows: list[dict] | None = None
        self.count_hint: int | None = None
        self.min_count: int | None = None
        self.max_count: int | None = None
        self.loaded_at: float | None = None
        # Filters (minus page) the cached rows were fetched for
        self.loaded_key: tuple | None = None

        # Statistics
        self.hits = 0
        self.misses = 0
        self.fetches = 0
        self.invalidations = 0

    @property
    def is_loaded(self) -> bool:
        return self.rows is not None

    def target_batch(self, page: int) -> int:
        """1-based batch containing the given 1-based page."""
        return max(math.ceil(page * self.page_size / self.batch_size), 1)

    @staticmethod
    def filters_key(filters: dict[str, Any]) -> tuple:
        """Hashable identity of a filter mapping, ignoring the page number."""
        return tuple(sorted((key, repr(value)) for key, value in filters.items() if key != "page"))

    def batch_skip(self, batch_index: int) -> int:
        return (batch_index - 1) * self.batch_size

    def slice_page(self, page: int) -> list[dict]:
        """
        Cut a page out of the loaded batch.

        Returns an empty list when the page falls outside the rows we hold,
        e.g. past the end of the dataset.
        """
        if self.rows is None:
            return []

        start = (page - 1) * self.page_size - self.batch_skip(self.current_batch)
        if start < 0 or start >= len(self.rows):
            logger.warning(
                f"[Batch] Page {page} starts at offset {start} outside batch {self.current_batch} "
                f"({len(self.rows)} rows)"
            )
            return []
        return self.rows[start : start + self.page_size]

    async def fetch_page(self, filters: dict[str, Any], page: int) -> PageResult:
        """
        Get one page, fetching its batch only when it is not the cached one.

        Args:
            filters: FilterCriteria.to_params() mapping
            page: 1-based page number

        Returns:
            PageResult for the page

        Raises:
            ApiError: If the batch fetch fails; the cache is left untouched
        """
        target = self.target_batch(page)
        key = self.filters_key(filters)

        if self.rows is not None and target == self.current_batch and key == self.loaded_key:
            self.hits += 1
            logger.debug(f"[Batch] Hit for page {page} in batch {target}")
            return PageResult(
                rows=self.slice_page(page),
                page=page,
                batch_index=target,
                from_cache=True,
                count_hint=self.count_hint,
                min_count=self.min_count,
                max_count=self.max_count,
            )

        self.misses += 1
        skip = self.batch_skip(target)
        logger.debug(f"[Batch] Miss for page {page}, fetching batch {target} (skip={skip}, limit={self.batch_size})")

        request_filters = {key: value for key, value in filters.items() if key != "page"}
        request_filters.update({"skip": skip, "limit": self.batch_size})
        payload = await self.client.get_filtered_packages(request_filters)
        self.fetches += 1

        rows = extract_rows(payload)
        count_hint = extract_count(payload)
        min_count = max_count = None
        if count_hint is None:
            if len(rows) >= self.batch_size:
                # Full batch: the dataset reaches at least this far
                min_count = skip + len(rows)
            elif rows or skip == 0:
                # Short batch: we are at the end of the dataset
                count_hint = skip + len(rows)
            else:
                # Empty batch past the end only bounds the total from above
                max_count = skip

        self.current_batch = target
        self.loaded_key = key
        self.rows = rows
        self.count_hint = count_hint
        self.min_count = min_count
        self.max_count = max_count
        self.loaded_at = time.time()

        return PageResult(
            rows=self.slice_page(page),
            page=page,
            batch_index=target,
            from_cache=False,
            count_hint=count_hint,
            min_count=min_count,
            max_count=max_count,
        )

    def invalidate(self):
        """Drop the cached batch and point back at batch 1."""
        if self.rows is not None:
            logger.debug(f"[Batch] Invalidated batch {self.current_batch} ({len(self.rows)} rows)")
        self.rows = None
        self.count_hint = None
        self.min_count = None
        self.max_count = None
        self.loaded_at = None
        self.loaded_key = None
        self.current_batch = 1
        self.invalidations += 1

    def get_stats(self) -> dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache metrics
        """
        hit_rate = 0.0
        if self.hits + self.misses > 0:
            hit_rate = (self.hits / (self.hits + self.misses)) * 100

        return {
            "loaded": self.is_loaded,
            "current_batch": self.current_batch,
            "rows_cached": len(self.rows) if self.rows is not None else 0,
            "page_size": self.page_size,
            "batch_size": self.batch_size,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": hit_rate,
            "fetches": self.fetches,
            "invalidations": self.invalidations,
            "age_seconds": time.time() - self.loaded_at if self.loaded_at else None,
        }
