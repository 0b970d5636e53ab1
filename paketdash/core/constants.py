"""
Constants used throughout paketdash.

Several of these mirror values the backend or the browser dashboard assume,
so change them together with their counterparts.
"""

# Rows per UI page and rows per network fetch. BATCH_SIZE must stay a
# multiple of PAGE_SIZE so every page falls inside exactly one batch.
PAGE_SIZE = 10
BATCH_SIZE = 50

# Limit sent when a request carries no pagination at all
DEFAULT_LIMIT = 10

REQUEST_TIMEOUT_SECONDS = 30.0

# Debounce before a filter change hits the network
DEFAULT_DEBOUNCE_MS = 300

# Filters the dashboard opens with
DEFAULT_YEAR = 2025
DEFAULT_PROVINSI = "DKI Jakarta"
DEFAULT_DAERAH_TINGKAT = "Kota"
DEFAULT_KOTA_KAB = "Jakarta Selatan"

# ─────────────────────────── count estimation ───────────────────────────
COUNT_FIELDS = ("totalCount", "total", "count")
COUNT_HEADERS = ("X-Total-Count", "X-Total")

SAMPLE_SIZE = 100
SAMPLE_OFFSETS = (0, 100, 200)
# Returned when every sampled page came back full
SAMPLE_CEILING = 500

DEFAULT_TOTAL_COUNT = 100

# Observed package counts for a handful of locations, keyed by
# "<daerah tingkat> <kota/kab>" in lower case. Only used when every
# network strategy failed.
KNOWN_LOCATION_COUNTS: dict[str, int] = {
    "kota surakarta": 244,
    "kota jakarta selatan": 120,
    "kota jakarta pusat": 85,
    "kota jakarta barat": 95,
    "kota jakarta timur": 110,
    "kota jakarta utara": 90,
}

# ─────────────────────────────── regions ────────────────────────────────
ALL_REGIONS_OPTION = {"id": "all", "name": "Semua Wilayah", "provinsi": None, "type": None, "count": 0}

CHART_TYPES = ("pie", "bar")

# Table status labels, matched by colour in the browser table
STATUS_OK = "Sesuai"
STATUS_PAST_SCHEDULE = "Hrge Esak Btorch"
STATUS_NOT_PDN = "Dibth Flnxnnm"
UNSCHEDULED_LABEL = "Belum ditentukan"

# ──────────────────────────────── proxy ─────────────────────────────────
HOP_BY_HOP_HEADERS = (
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
)

# Response cache TTLs in seconds
DEFAULT_CACHE_TTL = 5 * 60
DASHBOARD_CACHE_TTL = 3 * 60
REFERENCE_CACHE_TTL = 60 * 60

# GET paths whose responses the proxy may cache
CACHEABLE_PATH_MARKERS = ("regions", "locations/search", "dashboard/stats", "dashboard/chart/", "dashboard/all")
