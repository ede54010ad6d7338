"""ASGI entry point for the GitHub MCP HTTP gateway.

``create_app`` wires the shared tool registry, the credential-keyed session
cache and the analytics state into a Starlette application. The module-level
``app`` is what ``uvicorn main:app`` serves.
"""

from __future__ import annotations

import contextlib
from typing import Optional

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from github_mcp_http.analytics import AnalyticsState
from github_mcp_http.config import BASE_LOGGER, SERVER_NAME, SERVER_VERSION, Settings, load_settings
from github_mcp_http.credentials import TOKEN_HEADER
from github_mcp_http.http_routes.analytics import register_analytics_routes
from github_mcp_http.http_routes.healthz import register_health_route
from github_mcp_http.http_routes.mcp import register_mcp_route
from github_mcp_http.http_routes.root import register_root_route
from github_mcp_http.mcp_server.registry import ToolRegistry, build_default_registry
from github_mcp_http.mcp_server.sessions import SessionCache, make_session_factory

LOGGER = BASE_LOGGER.getChild("main")

CORS_ALLOW_METHODS = ["GET", "POST", "DELETE", "OPTIONS"]
CORS_ALLOW_HEADERS = ["Content-Type", "Accept", "Authorization", "Mcp-Session-Id", TOKEN_HEADER]
CORS_EXPOSE_HEADERS = ["Mcp-Session-Id"]


class _CacheControlMiddleware:
    """ASGI middleware that marks every HTTP response ``Cache-Control: no-store``.

    Avoid BaseHTTPMiddleware here because it buffers the response body.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope.get("type") != "http":
            return await self.app(scope, receive, send)

        async def send_wrapper(message):
            if message.get("type") == "http.response.start":
                headers = [(k, v) for (k, v) in message.get("headers", []) if k.lower() != b"cache-control"]
                headers.append((b"cache-control", b"no-store"))
                message["headers"] = headers
            await send(message)

        return await self.app(scope, receive, send_wrapper)


def _build_middleware(settings: Settings) -> list[Middleware]:
    # First entry is outermost.
    return [
        Middleware(TrustedHostMiddleware, allowed_hosts=list(settings.allowed_hosts) or ["*"]),
        Middleware(_CacheControlMiddleware),
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=CORS_ALLOW_METHODS,
            allow_headers=CORS_ALLOW_HEADERS,
            expose_headers=CORS_EXPOSE_HEADERS,
        ),
    ]


def create_app(
    settings: Optional[Settings] = None,
    *,
    analytics: Optional[AnalyticsState] = None,
    registry: Optional[ToolRegistry] = None,
    sessions: Optional[SessionCache] = None,
) -> Starlette:
    """Build the gateway application.

    Every collaborator can be injected; anything omitted is built from
    ``settings`` (itself read from the environment when omitted).
    """

    settings = settings or load_settings()
    analytics = analytics or AnalyticsState()
    if registry is None:
        registry = build_default_registry()
    if sessions is None:
        factory = make_session_factory(registry, settings, observer=analytics.record_upstream_request)
        sessions = SessionCache(factory, max_entries=settings.session_cache_max_entries)

    @contextlib.asynccontextmanager
    async def lifespan(_app):
        LOGGER.info(
            "%s %s ready: %d tools, default token %s",
            SERVER_NAME,
            SERVER_VERSION,
            len(registry),
            "configured" if settings.has_default_token else "not configured (required per request)",
        )
        try:
            yield
        finally:
            await sessions.aclose()

    app = Starlette(middleware=_build_middleware(settings), lifespan=lifespan)
    app.state.settings = settings
    app.state.analytics = analytics
    app.state.registry = registry
    app.state.sessions = sessions

    register_root_route(app, analytics)
    register_health_route(app, settings, analytics)
    register_analytics_routes(app, analytics)
    register_mcp_route(app, settings, analytics, sessions)
    return app


app = create_app()


__all__ = ["app", "create_app"]
