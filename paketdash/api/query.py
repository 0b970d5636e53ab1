"""
Translate filter criteria into backend query parameters.
"""

import math
from collections.abc import Mapping
from typing import Any

from ..core.constants import DEFAULT_LIMIT

# FilterCriteria field -> backend (snake_case) query parameter
PARAM_NAMES: dict[str, str] = {
    "search_query": "search",
    "year": "year",
    "region_id": "region_id",
    "provinsi": "provinsi",
    "daerah_tingkat": "daerah_tingkat",
    "kota_kab": "kota_kab",
    "metode": "metode",
    "jenis_pengadaan": "jenis_pengadaan",
}

# Bounds are sent whenever they are set, including 0
NUMERIC_BOUNDS: dict[str, str] = {
    "min_pagu": "min_pagu",
    "max_pagu": "max_pagu",
}

FLAG_PARAMS = ("count_only", "include_count")


def batch_aligned_skip(page: int, items_per_page: int, batch_size: int) -> int:
    """
    Offset of the batch containing the given page.

    Pagination requests are always batch aligned so one fetch can serve
    several UI pages.

    Args:
        page: 1-based page number
        items_per_page: Rows per UI page
        batch_size: Rows per network fetch

    Returns:
        Row offset of the first row of the batch
    """
    target_batch = math.ceil(page * items_per_page / batch_size)
    return max(target_batch - 1, 0) * batch_size


def build_query_params(filters: Mapping[str, Any] | None = None, paginate: bool = True) -> dict[str, Any]:
    """
    Build backend query parameters from a filter mapping.

    Only defined fields are included. Pagination comes from an explicit
    ``skip`` when given, otherwise from ``page`` and ``items_per_batch``.

    Args:
        filters: FilterCriteria.to_params() output, optionally with skip/limit/count flags
        paginate: Include skip and limit

    Returns:
        Dict of query parameters suitable for httpx
    """
    filters = filters or {}
    params: dict[str, Any] = {}

    for field, name in PARAM_NAMES.items():
        value = filters.get(field)
        if value:
            params[name] = value

    for field, name in NUMERIC_BOUNDS.items():
        value = filters.get(field)
        if value is not None:
            params[name] = value

    for flag in FLAG_PARAMS:
        if filters.get(flag):
            params[flag] = "true"

    if not paginate:
        return params

    skip = filters.get("skip")
    page = filters.get("page")
    batch_size = filters.get("items_per_batch")

    if skip is not None:
        params["skip"] = skip
        params["limit"] = filters.get("limit") or DEFAULT_LIMIT
    elif page and batch_size:
        items_per_page = filters.get("items_per_page") or DEFAULT_LIMIT
        params["skip"] = batch_aligned_skip(page, items_per_page, batch_size)
        params["limit"] = batch_size
    else:
        params["limit"] = filters.get("limit") or DEFAULT_LIMIT

    return params
