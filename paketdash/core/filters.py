"""
Filter criteria for the dashboard.
"""

from dataclasses import asdict, dataclass, fields, replace
from typing import Any

from .constants import (
    BATCH_SIZE,
    DEFAULT_DAERAH_TINGKAT,
    DEFAULT_KOTA_KAB,
    DEFAULT_PROVINSI,
    DEFAULT_YEAR,
    PAGE_SIZE,
)


@dataclass(frozen=True)
class FilterCriteria:
    """The user's current query plus pagination controls.

    Instances are immutable; use with_changes() to derive a new one.
    """

    search_query: str = ""
    year: int | None = None
    region_id: str | None = None
    provinsi: str | None = None
    daerah_tingkat: str | None = None
    kota_kab: str | None = None
    min_pagu: float | None = None
    max_pagu: float | None = None
    metode: str | None = None
    jenis_pengadaan: str | None = None
    page: int = 1
    items_per_page: int = PAGE_SIZE
    items_per_batch: int = BATCH_SIZE

    @classmethod
    def default(cls) -> "FilterCriteria":
        """Filters the dashboard opens with (Jakarta Selatan, current budget year)."""
        return cls(
            year=DEFAULT_YEAR,
            provinsi=DEFAULT_PROVINSI,
            daerah_tingkat=DEFAULT_DAERAH_TINGKAT,
            kota_kab=DEFAULT_KOTA_KAB,
        )

    @classmethod
    def field_names(cls) -> set[str]:
        return {f.name for f in fields(cls)}

    def with_changes(self, changes: dict[str, Any]) -> "FilterCriteria":
        """
        Merge a partial change into a new FilterCriteria.

        Args:
            changes: Mapping of field name to new value

        Returns:
            The merged criteria

        Raises:
            ValueError: If a key is not a filter field
        """
        unknown = set(changes) - self.field_names()
        if unknown:
            raise ValueError(f"Unknown filter fields: {', '.join(sorted(unknown))}")
        if "page" in changes and (not isinstance(changes["page"], int) or changes["page"] < 1):
            raise ValueError(f"page must be a positive integer, got {changes['page']!r}")
        return replace(self, **changes)

    def to_params(self) -> dict[str, Any]:
        """Plain mapping consumed by the query builder."""
        return asdict(self)

    def to_dict(self) -> dict[str, Any]:
        """camelCase view used in JSON responses to the browser."""
        return {
            "searchQuery": self.search_query,
            "year": self.year,
            "regionId": self.region_id,
            "provinsi": self.provinsi,
            "daerahTingkat": self.daerah_tingkat,
            "kotaKab": self.kota_kab,
            "minPagu": self.min_pagu,
            "maxPagu": self.max_pagu,
            "metode": self.metode,
            "jenisPengadaan": self.jenis_pengadaan,
            "page": self.page,
            "limit": self.items_per_page,
            "batchSize": self.items_per_batch,
        }


# Browser-side (camelCase) names accepted by the dashboard routes
CAMEL_CASE_FIELDS: dict[str, str] = {
    "searchQuery": "search_query",
    "regionId": "region_id",
    "daerahTingkat": "daerah_tingkat",
    "kotaKab": "kota_kab",
    "minPagu": "min_pagu",
    "maxPagu": "max_pagu",
    "jenisPengadaan": "jenis_pengadaan",
    "limit": "items_per_page",
    "batchSize": "items_per_batch",
}


def normalize_filter_keys(changes: dict[str, Any]) -> dict[str, Any]:
    """Translate camelCase keys sent by the browser into FilterCriteria field names."""
    return {CAMEL_CASE_FIELDS.get(key, key): value for key, value in changes.items()}
