"""
Helpers for normalizing backend payloads and shaping table rows.
"""

from datetime import datetime
from typing import Any

from .constants import COUNT_FIELDS, STATUS_NOT_PDN, STATUS_OK, STATUS_PAST_SCHEDULE, UNSCHEDULED_LABEL


def extract_rows(payload: Any) -> list[dict]:
    """
    Pull the row list out of a list-endpoint response.

    The backend returns either a bare list or an object wrapping the rows
    in ``data`` or ``items``.
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("data", "items"):
            rows = payload.get(key)
            if isinstance(rows, list):
                return rows
    return []


def extract_count(payload: Any) -> int | None:
    """Return the first usable count field (totalCount, total, count) of an object payload."""
    if not isinstance(payload, dict):
        return None
    for field in COUNT_FIELDS:
        value = payload.get(field)
        if value is None or isinstance(value, bool):
            continue
        try:
            count = int(value)
        except (TypeError, ValueError):
            continue
        if count >= 0:
            return count
    return None


def format_wilayah(item: dict) -> str:
    """Human readable location, e.g. 'Kota Jakarta Selatan, DKI Jakarta'."""
    if item.get("lokasi"):
        return item["lokasi"]

    provinsi = item.get("provinsi")
    if not provinsi:
        return ""

    parts = [part for part in (item.get("daerah_tingkat"), item.get("kota_kab")) if part]
    if parts:
        return f"{' '.join(parts)}, {provinsi}"
    return provinsi


def _parse_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def determine_status(item: dict, now: datetime | None = None) -> str:
    """
    Status label for a package.

    Packages without a selection date are fine; ones whose selection date
    has passed are flagged first, then non-PDN packages.
    """
    item_date = _parse_datetime(item.get("pemilihan_datetime"))
    if item_date is None:
        return STATUS_OK

    if now is None:
        now = datetime.now(item_date.tzinfo)
    elif (now.tzinfo is None) != (item_date.tzinfo is None):
        item_date = item_date.replace(tzinfo=now.tzinfo)

    if item_date < now:
        return STATUS_PAST_SCHEDULE
    if item.get("is_pdn") is False:
        return STATUS_NOT_PDN
    return STATUS_OK


def process_row(item: dict, row_number: int, now: datetime | None = None) -> dict[str, Any]:
    """
    Shape a backend package into a table row.

    Args:
        item: Raw package from /paket/filter
        row_number: 1-based position across the whole result set
        now: Reference time for the status (defaults to the current time)
    """
    return {
        "no": row_number,
        "id": item.get("id"),
        "nama": item.get("paket") or item.get("nama_paket") or "",
        "satuan": item.get("satuan_kerja") or "",
        "krema": item.get("metode") or "",
        "jadwal": item.get("pemilihan") or UNSCHEDULED_LABEL,
        "wilayah": format_wilayah(item),
        "status": determine_status(item, now),
        "keterangan": item.get("jenis_pengadaan") or "",
        "pagu": item.get("pagu") or "-",
    }


def process_rows(items: list[dict], first_row_number: int, now: datetime | None = None) -> list[dict[str, Any]]:
    return [process_row(item, first_row_number + index, now) for index, item in enumerate(items)]
