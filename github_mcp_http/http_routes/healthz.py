from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse

from github_mcp_http.analytics import AnalyticsState
from github_mcp_http.config import SERVER_NAME, SERVER_VERSION, TRANSPORT_NAME, Settings


def _build_health_payload(settings: Settings) -> dict[str, Any]:
    return {
        "status": "healthy",
        "server": SERVER_NAME,
        "version": SERVER_VERSION,
        "transport": TRANSPORT_NAME,
        "hasToken": settings.has_default_token,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def build_health_endpoint(settings: Settings, analytics: AnalyticsState) -> Callable[[Request], Any]:
    async def _endpoint(request: Request) -> JSONResponse:
        analytics.track(request, "/health")
        return JSONResponse(_build_health_payload(settings))

    return _endpoint


def register_health_route(app: Any, settings: Settings, analytics: AnalyticsState) -> None:
    """Register the /health route on the ASGI app."""

    app.add_route("/health", build_health_endpoint(settings, analytics), methods=["GET"])


__all__ = ["register_health_route"]
