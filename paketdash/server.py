"""
FastAPI server: API proxy plus dashboard state routes.

/api/* calls from the browser are forwarded to the backend unchanged, with
read-only reference and dashboard responses cached briefly in memory.
/dashboard/* routes expose the DashboardManager owned by this app instance.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .api.data import format_error_response, format_state_response, format_success_response
from .config import Config
from .core.constants import HOP_BY_HOP_HEADERS
from .core.dashboard import DashboardManager
from .core.filters import normalize_filter_keys
from .utils.response_cache import ResponseCache, get_cache_key, get_cache_ttl, should_cache

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}

# Never forwarded as-is; httpx sets them for the outgoing request
REWRITTEN_HEADERS = ("host", "content-length")


class ProxyError(Exception):
    """A forwarding failure that maps to a JSON error response."""

    def __init__(self, status_code: int, error: str, details: Any = None):
        self.status_code = status_code
        self.error = error
        self.details = details
        super().__init__(error)


def filter_forward_headers(headers: dict[str, str]) -> dict[str, str]:
    """Copy request headers minus hop-by-hop ones, forcing JSON content negotiation."""
    dropped = {*HOP_BY_HOP_HEADERS, *REWRITTEN_HEADERS, "content-type", "accept"}
    forwarded = {name: value for name, value in headers.items() if name.lower() not in dropped}
    forwarded.update({"Content-Type": "application/json", "accept": "application/json"})
    return forwarded


def _error_details(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


async def read_json_body(request: Request) -> Any:
    """Parse the incoming request body, rejecting anything that is not JSON."""
    raw = await request.body()
    try:
        return json.loads(raw)
    except ValueError as e:
        raise ProxyError(400, "Invalid JSON body", str(e)) from e


async def forward_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    params: Any = None,
    body: Any = None,
    headers: dict[str, str] | None = None,
) -> tuple[int, Any]:
    """
    Forward one request to the backend.

    Returns:
        Tuple of (status_code, parsed JSON body)

    Raises:
        ProxyError: 504 on timeout, 500 on other failures, the upstream
            status for non-success responses
    """
    logger.info(f"[Proxy] {method} -> {url}")
    try:
        response = await client.request(
            method,
            url,
            params=params,
            json=body if method in ("POST", "PUT") else None,
            headers=headers or JSON_HEADERS,
        )
    except httpx.TimeoutException as e:
        logger.error(f"[Proxy] {method} {url} timed out")
        raise ProxyError(504, "Backend API request timed out", str(e)) from e
    except httpx.HTTPError as e:
        logger.error(f"[Proxy] Error forwarding {method} {url}: {e}")
        raise ProxyError(500, "Failed to reach backend API", str(e)) from e

    if not response.is_success:
        details = _error_details(response)
        logger.error(f"[Proxy] Backend returned status {response.status_code} for {method} {url}")
        raise ProxyError(response.status_code, f"Backend API returned status {response.status_code}", details)

    try:
        data = response.json()
    except ValueError as e:
        if method == "DELETE":
            return 200, {"message": "Resource deleted successfully"}
        raise ProxyError(500, "Backend API returned a non-JSON response", response.text[:200]) from e

    return response.status_code, data


def create_app(
    config: Config | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    manager: DashboardManager | None = None,
    enable_cache: bool = True,
) -> FastAPI:
    """
    Build the application.

    Args:
        config: Configuration (defaults to Config())
        transport: Optional httpx transport for outgoing calls (tests)
        manager: Dashboard manager to expose; built from config when omitted
        enable_cache: Cache cacheable GET responses in memory
    """
    config = config or Config()
    api_url = config.get("api_url").rstrip("/")
    backend_api_url = config.get("backend_api_url").rstrip("/")
    timeout = float(config.get("request_timeout"))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.http = httpx.AsyncClient(timeout=timeout, transport=transport)
        app.state.manager = manager or DashboardManager.from_config(config, transport=transport)
        logger.info(f"[Proxy] Forwarding /api/* to {api_url}")
        yield
        await app.state.manager.aclose()
        await app.state.http.aclose()

    app = FastAPI(title="paketdash", lifespan=lifespan)
    app.state.response_cache = ResponseCache(config.get("response_cache_max_entries")) if enable_cache else None

    @app.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError):
        return JSONResponse(format_error_response(exc.error, exc.details), status_code=exc.status_code)

    # Dashboard state

    @app.get("/dashboard/state")
    async def dashboard_state(request: Request):
        dashboard: DashboardManager = request.app.state.manager
        if dashboard.loading.initial:
            await dashboard.initialize()
        return format_state_response(dashboard)

    @app.post("/dashboard/filters")
    async def dashboard_filters(request: Request, wait: bool = False):
        dashboard: DashboardManager = request.app.state.manager
        changes = await read_json_body(request)
        if not isinstance(changes, dict):
            raise ProxyError(400, "Filter changes must be a JSON object")
        try:
            dashboard.update_filters(normalize_filter_keys(changes))
        except ValueError as e:
            raise ProxyError(400, "Invalid filter change", str(e)) from e
        if wait:
            await dashboard.wait_idle()
        return format_state_response(dashboard)

    @app.post("/dashboard/page/{page}")
    async def dashboard_page(page: int, request: Request):
        dashboard: DashboardManager = request.app.state.manager
        if page < 1:
            raise ProxyError(400, "Invalid page", f"page must be >= 1, got {page}")
        await dashboard.fetch_page(page)
        return format_state_response(dashboard)

    @app.post("/dashboard/refresh")
    async def dashboard_refresh(request: Request):
        dashboard: DashboardManager = request.app.state.manager
        result = await dashboard.fetch_all_dashboard_data()
        if result is None:
            return format_success_response("Refresh already in progress")
        return format_state_response(dashboard)

    @app.get("/dashboard/locations")
    async def dashboard_locations(request: Request, q: str = "", limit: int = 10):
        dashboard: DashboardManager = request.app.state.manager
        return await dashboard.search_locations(q, limit)

    @app.get("/dashboard/cache")
    async def dashboard_cache(request: Request):
        dashboard: DashboardManager = request.app.state.manager
        response_cache: ResponseCache | None = request.app.state.response_cache
        return {
            "batch": dashboard.batch_cache.get_stats(),
            "responses": response_cache.get_stats() if response_cache else None,
        }

    # Dedicated proxy routes

    @app.get("/api/paket/filter")
    async def proxy_paket_filter(request: Request):
        status, data = await forward_request(
            request.app.state.http, "GET", f"{api_url}/paket/filter", params=list(request.query_params.multi_items())
        )
        return JSONResponse(data, status_code=status)

    @app.get("/api/paket/{package_id}")
    async def proxy_paket_detail(package_id: str, request: Request):
        status, data = await forward_request(request.app.state.http, "GET", f"{backend_api_url}/data-sirup/{package_id}")
        return JSONResponse(data, status_code=status)

    @app.post("/api/sales/{item_id}")
    async def proxy_sales(item_id: str, request: Request):
        if not item_id.strip():
            raise ProxyError(400, "Missing ID in path")
        body = await read_json_body(request)
        headers = filter_forward_headers(dict(request.headers))
        status, data = await forward_request(
            request.app.state.http, "POST", f"{backend_api_url}/sales/{item_id}", body=body, headers=headers
        )
        logger.info(f"[Proxy] Backend POST request successful for {item_id}")
        return JSONResponse(data, status_code=status)

    # Catch-all proxy

    @app.api_route("/api/{path:path}", methods=["GET", "POST", "PUT", "DELETE"])
    async def proxy(path: str, request: Request):
        method = request.method
        response_cache: ResponseCache | None = request.app.state.response_cache
        url = f"{api_url}/{path}"

        if method == "GET":
            cache_key = get_cache_key(path, request.url.query)
            cacheable = response_cache is not None and should_cache(path)
            if cacheable:
                cached = response_cache.get(cache_key)
                if cached is not None:
                    return JSONResponse(cached)

            params = list(request.query_params.multi_items())
            status, data = await forward_request(request.app.state.http, "GET", url, params=params)
            if cacheable:
                response_cache.put(cache_key, data, get_cache_ttl(path))
            return JSONResponse(data, status_code=status)

        body = await read_json_body(request) if method in ("POST", "PUT") else None
        status, data = await forward_request(request.app.state.http, method, url, body=body)

        if response_cache is not None:
            response_cache.invalidate_prefix(path)
        return JSONResponse(data, status_code=status)

    return app


def start_server_with_args(host: str | None = None, port: int | None = None, enable_cache: bool = True):
    """Run the server with uvicorn on the uvloop event loop."""
    import uvicorn

    config = Config()
    host = host or config.get("host")
    port = port or config.get("port")
    app = create_app(config, enable_cache=enable_cache)
    uvicorn.run(app, host=host, port=port, loop="uvloop", log_level="warning")
