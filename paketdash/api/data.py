"""
Shared response formatting for the proxy and dashboard routes
"""

from typing import Any

from ..core.dashboard import DashboardManager


def format_error_response(error: str, details: Any = None) -> dict[str, Any]:
    """Error body returned to the browser; always carries an 'error' field."""
    response: dict[str, Any] = {"error": error}
    if details is not None:
        response["details"] = details
    return response


def format_success_response(message: str, data: Any = None) -> dict[str, Any]:
    """Format success response consistently"""
    response = {"success": True, "message": message}
    if data is not None:
        response["data"] = data
    return response


def format_state_response(manager: DashboardManager) -> dict[str, Any]:
    """Dashboard state plus the pagination bounds the table needs."""
    state = manager.current_state()
    page_size = manager.batch_cache.page_size
    state["pagination"] = {
        "page": manager.filters.page,
        "pageSize": page_size,
        "totalPages": max((manager.total_items + page_size - 1) // page_size, 1),
    }
    return state
