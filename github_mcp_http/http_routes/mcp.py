"""The ``/mcp`` endpoint: credential resolution, session lookup, forwarding.

POST bodies are handed, as the original ASGI request, to the streamable-HTTP
transport of the caller's session. GET returns 405 (the transport is
stateless and offers no standalone SSE stream). DELETE tears down the
session bound to the caller's credential.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional

from mcp import types
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import Message, Receive, Scope, Send

from github_mcp_http.analytics import AnalyticsState, client_ip
from github_mcp_http.config import BASE_LOGGER, Settings
from github_mcp_http.credentials import CREDENTIAL_MISSING_MESSAGE, resolve_token
from github_mcp_http.exceptions import CredentialMissingError
from github_mcp_http.mcp_server.sessions import SessionCache
from github_mcp_http.mcp_server.transport import jsonrpc_error

LOGGER = BASE_LOGGER.getChild("http.mcp")

MCP_PATH = "/mcp"


def _tool_call_name(payload: Any) -> Optional[str]:
    if not isinstance(payload, Mapping) or payload.get("method") != "tools/call":
        return None
    params = payload.get("params")
    if not isinstance(params, Mapping):
        return None
    name = params.get("name")
    if isinstance(name, str) and name:
        return name
    return None


def _credential_missing() -> JSONResponse:
    return JSONResponse(
        jsonrpc_error(CredentialMissingError.code, CREDENTIAL_MISSING_MESSAGE),
        status_code=401,
    )


def _internal_error() -> JSONResponse:
    return JSONResponse(
        jsonrpc_error(types.INTERNAL_ERROR, "Internal server error"),
        status_code=500,
    )


def _replay_body(body: bytes, receive: Receive) -> Receive:
    """Return a ``receive`` that yields the already-read body once."""

    sent = False

    async def _receive() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return _receive


class MCPEndpoint:
    """ASGI endpoint for ``/mcp``."""

    def __init__(self, settings: Settings, analytics: AnalyticsState, sessions: SessionCache) -> None:
        self.settings = settings
        self.analytics = analytics
        self.sessions = sessions

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        self.analytics.track(request, MCP_PATH)

        token = resolve_token(request.query_params, request.headers, self.settings.default_token)
        if token is None:
            await _credential_missing()(scope, receive, send)
            return

        if request.method in ("GET", "HEAD"):
            response = JSONResponse(
                jsonrpc_error(types.INVALID_REQUEST, "Method not allowed: this server is stateless and has no SSE stream"),
                status_code=405,
                headers={"Allow": "POST, DELETE"},
            )
            await response(scope, receive, send)
            return

        if request.method == "DELETE":
            closed = self.sessions.discard(token)
            await JSONResponse({"ok": True, "closed": closed})(scope, receive, send)
            return

        body = await request.body()
        try:
            payload = json.loads(body)
        except ValueError:
            response = JSONResponse(
                jsonrpc_error(types.PARSE_ERROR, "Parse error: request body is not valid JSON"),
                status_code=400,
            )
            await response(scope, receive, send)
            return

        tool_name = _tool_call_name(payload)
        if tool_name is not None:
            # Counted before execution so failed calls are still visible.
            self.analytics.record_tool_call(tool_name, client_ip(request))

        response_started = False

        async def _send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            session = self.sessions.get_or_create(token)
            await session.transport.handle_request(scope, _replay_body(body, receive), _send)
        except Exception:
            LOGGER.exception("MCP request failed")
            if not response_started:
                await _internal_error()(scope, receive, send)


def build_mcp_endpoint(settings: Settings, analytics: AnalyticsState, sessions: SessionCache) -> MCPEndpoint:
    return MCPEndpoint(settings, analytics, sessions)


def register_mcp_route(app: Any, settings: Settings, analytics: AnalyticsState, sessions: SessionCache) -> None:
    app.add_route(
        MCP_PATH,
        build_mcp_endpoint(settings, analytics, sessions),
        methods=["GET", "POST", "DELETE"],
    )


__all__ = ["MCPEndpoint", "MCP_PATH", "build_mcp_endpoint", "register_mcp_route"]
