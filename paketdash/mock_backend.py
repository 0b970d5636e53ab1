"""
Mock procurement backend for local development and tests.

Serves deterministic fake packages with the same endpoints and response
shapes as the real API, so the proxy and dashboard manager can run
without it.
"""

import logging
import random
from datetime import datetime, timedelta
from typing import Any

from fastapi import FastAPI, Query, Response

logger = logging.getLogger(__name__)

REGIONS: list[dict[str, Any]] = [
    {"id": "region-jaksel", "name": "Kota Jakarta Selatan", "provinsi": "DKI Jakarta", "type": "Kota", "count": 120},
    {"id": "region-jakpus", "name": "Kota Jakarta Pusat", "provinsi": "DKI Jakarta", "type": "Kota", "count": 85},
    {"id": "region-jakbar", "name": "Kota Jakarta Barat", "provinsi": "DKI Jakarta", "type": "Kota", "count": 95},
    {"id": "region-jaktim", "name": "Kota Jakarta Timur", "provinsi": "DKI Jakarta", "type": "Kota", "count": 110},
    {"id": "region-jakut", "name": "Kota Jakarta Utara", "provinsi": "DKI Jakarta", "type": "Kota", "count": 90},
    {"id": "region-surakarta", "name": "Kota Surakarta", "provinsi": "Jawa Tengah", "type": "Kota", "count": 244},
    {"id": "province-jabar", "name": "Jawa Barat", "provinsi": "Jawa Barat", "count": 250},
    {"id": "province-jateng", "name": "Jawa Tengah", "provinsi": "Jawa Tengah", "count": 200},
    {"id": "province-jatim", "name": "Jawa Timur", "provinsi": "Jawa Timur", "count": 230},
]

METODE = ["Tender", "E-Purchasing", "Pengadaan Langsung", "Dikecualikan"]
JENIS_PENGADAAN = ["Barang", "Jasa Konsultansi", "Jasa Lainnya", "Pekerjaan Konstruksi"]
SATUAN_KERJA = ["Dinas Kominfo", "DPUPR", "Dinas Kesehatan", "Dinas Pendidikan", "Bappeda"]
MONTHS = ["Januari", "Februari", "Maret", "April", "Mei", "Juni", "Juli", "Agustus"]


def generate_packages(count: int, year: int = 2025, seed: int = 2025) -> list[dict[str, Any]]:
    """
    Build a list of fake packages.

    Args:
        count: Number of packages
        year: Budget year stamped on every package
        seed: Random seed, so repeated runs produce the same data
    """
    rng = random.Random(seed)
    start = datetime(year, 1, 15)
    packages = []

    for i in range(count):
        month = i % len(MONTHS)
        packages.append(
            {
                "id": f"PKT-{year}-{1000 + i}",
                "paket": f"Paket Pengadaan {i + 1}",
                "pagu": rng.randrange(10_000_000, 1_010_000_000, 1_000_000),
                "satuan_kerja": SATUAN_KERJA[i % len(SATUAN_KERJA)],
                "is_pdn": i % 2 == 0,
                "is_umk": i % 3 == 0,
                "metode": METODE[rng.randrange(len(METODE))],
                "jenis_pengadaan": JENIS_PENGADAAN[i % len(JENIS_PENGADAAN)],
                "pemilihan": f"{MONTHS[month]} {year}",
                "pemilihan_datetime": (start + timedelta(days=30 * month)).isoformat(),
                "provinsi": "DKI Jakarta",
                "daerah_tingkat": "Kota",
                "kota_kab": "Jakarta Selatan",
                "tahun": year,
            }
        )
    return packages


def filter_packages(packages: list[dict[str, Any]], params: dict[str, Any]) -> list[dict[str, Any]]:
    """Apply the backend's filter parameters to a package list."""
    result = packages

    search = (params.get("search") or "").lower()
    if search:
        result = [p for p in result if search in p["paket"].lower() or search in p["satuan_kerja"].lower()]

    for field in ("provinsi", "daerah_tingkat", "kota_kab", "metode", "jenis_pengadaan"):
        value = params.get(field)
        if value:
            result = [p for p in result if p[field].lower() == str(value).lower()]

    if params.get("year"):
        result = [p for p in result if p["tahun"] == int(params["year"])]
    if params.get("min_pagu") is not None:
        result = [p for p in result if p["pagu"] >= float(params["min_pagu"])]
    if params.get("max_pagu") is not None:
        result = [p for p in result if p["pagu"] <= float(params["max_pagu"])]

    return result


def summarize(packages: list[dict[str, Any]]) -> dict[str, Any]:
    """Dashboard stats for a package list."""
    by_metode = {metode: 0 for metode in METODE}
    for package in packages:
        by_metode[package["metode"]] += 1
    total_pagu = sum(p["pagu"] for p in packages)

    return {
        "totalAnggaran": f"Rp {total_pagu:,.0f}".replace(",", "."),
        "totalPaket": len(packages),
        "tender": by_metode["Tender"],
        "dikecualikan": by_metode["Dikecualikan"],
        "epkem": by_metode["E-Purchasing"],
        "pengadaanLangsung": by_metode["Pengadaan Langsung"],
    }


def create_mock_app(rows: int = 120, year: int = 2025, send_total_header: bool = False) -> FastAPI:
    """
    Build the mock backend.

    Args:
        rows: Number of fake packages served
        year: Budget year of the fake packages
        send_total_header: Add X-Total-Count to /paket/filter responses
    """
    app = FastAPI(title="paketdash mock backend")
    app.state.packages = generate_packages(rows, year)

    def query_filters(
        search: str | None,
        year: int | None,
        provinsi: str | None,
        daerah_tingkat: str | None,
        kota_kab: str | None,
        min_pagu: float | None = None,
        max_pagu: float | None = None,
        metode: str | None = None,
        jenis_pengadaan: str | None = None,
    ) -> list[dict[str, Any]]:
        return filter_packages(
            app.state.packages,
            {
                "search": search,
                "year": year,
                "provinsi": provinsi,
                "daerah_tingkat": daerah_tingkat,
                "kota_kab": kota_kab,
                "min_pagu": min_pagu,
                "max_pagu": max_pagu,
                "metode": metode,
                "jenis_pengadaan": jenis_pengadaan,
            },
        )

    @app.get("/regions")
    async def regions():
        return REGIONS

    @app.get("/wilayah/")
    async def wilayah():
        return [{"provinsi": r["provinsi"], "wilayah": r["name"], "count": r["count"]} for r in REGIONS]

    @app.get("/locations/search")
    async def locations_search(q: str = "", limit: int = 10):
        query = q.lower()
        return [r for r in REGIONS if query in r["name"].lower()][:limit]

    @app.get("/dashboard/stats")
    async def dashboard_stats(
        search: str | None = None,
        year: int | None = None,
        provinsi: str | None = None,
        daerah_tingkat: str | None = None,
        kota_kab: str | None = None,
    ):
        return summarize(query_filters(search, year, provinsi, daerah_tingkat, kota_kab))

    @app.get("/dashboard/chart/{chart_type}")
    async def dashboard_chart(
        chart_type: str,
        search: str | None = None,
        year: int | None = None,
        provinsi: str | None = None,
        daerah_tingkat: str | None = None,
        kota_kab: str | None = None,
    ):
        packages = query_filters(search, year, provinsi, daerah_tingkat, kota_kab)
        if chart_type == "pie":
            field, names = "metode", METODE
        elif chart_type == "bar":
            field, names = "jenis_pengadaan", JENIS_PENGADAAN
        else:
            return []
        return [{"name": name, "value": sum(1 for p in packages if p[field] == name)} for name in names]

    @app.get("/paket/filter")
    async def paket_filter(
        response: Response,
        search: str | None = None,
        year: int | None = None,
        provinsi: str | None = None,
        daerah_tingkat: str | None = None,
        kota_kab: str | None = None,
        min_pagu: float | None = None,
        max_pagu: float | None = None,
        metode: str | None = None,
        jenis_pengadaan: str | None = None,
        skip: int = Query(0, ge=0),
        limit: int = Query(10, ge=0, le=500),
        count_only: bool = False,
        include_count: bool = False,
    ):
        packages = query_filters(
            search, year, provinsi, daerah_tingkat, kota_kab, min_pagu, max_pagu, metode, jenis_pengadaan
        )
        if send_total_header:
            response.headers["X-Total-Count"] = str(len(packages))
        if count_only:
            return {"totalCount": len(packages)}

        page = packages[skip : skip + limit]
        if include_count:
            return {"data": page, "totalCount": len(packages)}
        return page

    @app.get("/data-sirup/{package_id}")
    async def package_detail(package_id: str, response: Response):
        for package in app.state.packages:
            if package["id"] == package_id:
                return package
        response.status_code = 404
        return {"message": f"Paket {package_id} not found"}

    @app.post("/sales/{item_id}")
    async def sales(item_id: str, payload: dict[str, Any]):
        logger.info(f"[Mock] Sales record for {item_id}: {payload}")
        return {"id": item_id, "received": payload}

    return app


def start_mock_server(port: int, rows: int):
    import uvicorn

    uvicorn.run(create_mock_app(rows=rows), host="127.0.0.1", port=port, loop="uvloop", log_level="warning")
