"""Stateless streamable-HTTP transport for one credential's MCP server.

Each Session owns an ``mcp`` low-level ``Server`` whose ``tools/list`` and
``tools/call`` handlers read the shared ``ToolRegistry`` and pass the
session's bound client to every handler. Protocol work (``initialize``,
``ping``, notifications, envelopes) is left to the library.

Every POST gets a fresh ``StreamableHTTPServerTransport`` with no session id
and JSON responses enabled, so the reply is written as a single buffered
JSON body once the server has produced it.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping

import anyio
import jsonschema
from jsonschema.exceptions import best_match
from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.streamable_http import StreamableHTTPServerTransport

from github_mcp_http.config import SERVER_NAME, SERVER_VERSION
from github_mcp_http.exceptions import ToolNotFoundError
from github_mcp_http.mcp_server.errors import _structured_tool_error
from github_mcp_http.mcp_server.registry import ToolDescriptor, ToolRegistry
from github_mcp_http.mcp_server.schemas import _title_from_tool_name

JSONRPC_VERSION = "2.0"


def jsonrpc_error(code: int, message: str, request_id: Any = None, data: Any = None) -> Dict[str, Any]:
    error: Dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "error": error, "id": request_id}


def _render_result(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, indent=2, ensure_ascii=False, default=str)


def _text_result(payload: Any, *, is_error: bool) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=_render_result(payload))],
        isError=is_error,
    )


def _tool_definition(descriptor: ToolDescriptor) -> types.Tool:
    return types.Tool(
        name=descriptor.name,
        description=descriptor.description,
        inputSchema=dict(descriptor.input_schema),
        annotations=types.ToolAnnotations(
            title=_title_from_tool_name(descriptor.name),
            readOnlyHint=not descriptor.write_action,
            openWorldHint=True,
        ),
    )


def _call_arguments(descriptor: ToolDescriptor, arguments: Mapping[str, Any]) -> Dict[str, Any]:
    """Keep declared parameters; an explicit null on an optional one means omitted."""

    schema = descriptor.input_schema
    known = schema.get("properties") or {}
    required = set(schema.get("required") or ())
    return {k: v for k, v in arguments.items() if k in known and (v is not None or k in required)}


class ToolDispatcher:
    """Validates ``tools/call`` arguments and runs the matching handler."""

    def __init__(self, registry: ToolRegistry, client: Any) -> None:
        self.registry = registry
        self.client = client
        self._validators: Dict[str, jsonschema.Draft7Validator] = {}

    def list_tools(self) -> List[types.Tool]:
        return [_tool_definition(descriptor) for descriptor in self.registry.descriptors()]

    def _validator(self, descriptor: ToolDescriptor) -> jsonschema.Draft7Validator:
        validator = self._validators.get(descriptor.name)
        if validator is None:
            validator = jsonschema.Draft7Validator(dict(descriptor.input_schema))
            self._validators[descriptor.name] = validator
        return validator

    async def call_tool(self, name: str, arguments: Mapping[str, Any]) -> types.CallToolResult:
        descriptor = self.registry.lookup(name)
        if descriptor is None:
            return _text_result(_structured_tool_error(ToolNotFoundError(name), context=name), is_error=True)

        arguments = dict(arguments or {})
        error = best_match(self._validator(descriptor).iter_errors(arguments))
        if error is not None:
            return _text_result(_structured_tool_error(error, context=name), is_error=True)

        try:
            result = await descriptor.handler(self.client, **_call_arguments(descriptor, arguments))
        except Exception as exc:  # noqa: BLE001
            return _text_result(_structured_tool_error(exc, context=name), is_error=True)
        return _text_result(result, is_error=False)


def build_mcp_server(
    dispatcher: ToolDispatcher,
    *,
    server_name: str = SERVER_NAME,
    server_version: str = SERVER_VERSION,
) -> Server:
    server: Server = Server(server_name, version=server_version)

    @server.list_tools()
    async def _list_tools() -> List[types.Tool]:
        return dispatcher.list_tools()

    # Arguments are validated by the dispatcher so failures carry the
    # structured error payload.
    @server.call_tool(validate_input=False)
    async def _call_tool(name: str, arguments: Dict[str, Any]) -> types.CallToolResult:
        return await dispatcher.call_tool(name, arguments)

    return server


class StatelessTransport:
    """Serves one credential's MCP server over stateless streamable HTTP."""

    def __init__(
        self,
        registry: ToolRegistry,
        client: Any,
        *,
        server_name: str = SERVER_NAME,
        server_version: str = SERVER_VERSION,
    ) -> None:
        self.dispatcher = ToolDispatcher(registry, client)
        self.server = build_mcp_server(self.dispatcher, server_name=server_name, server_version=server_version)

    async def handle_request(self, scope: Any, receive: Any, send: Any) -> None:
        http_transport = StreamableHTTPServerTransport(
            mcp_session_id=None,
            is_json_response_enabled=True,
            event_store=None,
        )

        async def _run_server(*, task_status: Any = anyio.TASK_STATUS_IGNORED) -> None:
            async with http_transport.connect() as (read_stream, write_stream):
                task_status.started()
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                    stateless=True,
                )

        async with anyio.create_task_group() as tg:
            await tg.start(_run_server)
            try:
                await http_transport.handle_request(scope, receive, send)
            finally:
                with anyio.CancelScope(shield=True):
                    await http_transport.terminate()
                tg.cancel_scope.cancel()


__all__ = [
    "StatelessTransport",
    "ToolDispatcher",
    "build_mcp_server",
    "jsonrpc_error",
]
