from __future__ import annotations

from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse

from github_mcp_http.analytics import AnalyticsState
from github_mcp_http.config import SERVER_NAME, SERVER_VERSION, TRANSPORT_NAME

ENDPOINTS = {
    "mcp": "/mcp",
    "health": "/health",
    "analytics": "/analytics",
    "analyticsTools": "/analytics/tools",
    "analyticsDashboard": "/analytics/dashboard",
}


def register_root_route(app: Any, analytics: AnalyticsState) -> None:
    """Serve server info and the endpoint map at ``/``."""

    async def _endpoint(request: Request) -> JSONResponse:
        analytics.track(request, "/")
        return JSONResponse(
            {
                "name": SERVER_NAME,
                "version": SERVER_VERSION,
                "description": "MCP server for interacting with GitHub",
                "transport": TRANSPORT_NAME,
                "endpoints": ENDPOINTS,
            }
        )

    app.add_route("/", _endpoint, methods=["GET"])


__all__ = ["ENDPOINTS", "register_root_route"]
