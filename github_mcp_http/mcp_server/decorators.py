"""Decorator utilities for MCP tool registration and consistent tool telemetry.

``github_tool`` turns an ``async def handler(client, ...)`` into a
``ToolDescriptor`` on a ``ToolGroup``:
- input schema derived from the signature (``client`` is injected, not exposed)
- description from the docstring unless given explicitly
- a wrapper emitting one-line tool events

A tool event includes:
- event: tool_call.start | tool_call.ok | tool_call.error
- status: start | ok | error
- tool_name, call_id, duration_ms (ok/error)
- arg_keys / arg_count (never argument values)

The structured payload is attached to the log record as a compact JSON string
under ``tool_json``.
"""

from __future__ import annotations

import functools
import json
import time
import uuid
from typing import Any, Callable, Mapping, Optional

from github_mcp_http.config import DETAILED_LEVEL, TOOLS_LOGGER
from github_mcp_http.mcp_server.errors import _structured_tool_error
from github_mcp_http.mcp_server.registry import ToolDescriptor, ToolGroup, ToolHandler
from github_mcp_http.mcp_server.schemas import description_from_docstring, schema_from_signature


def _log_tool_event(payload: Mapping[str, Any]) -> None:
    """Emit a single readable console line + attach full payload as JSON string."""

    try:
        event = payload.get("event", "tool")
        status = payload.get("status", "")
        tool = payload.get("tool_name", "")
        call_id = payload.get("call_id", "")
        dur = payload.get("duration_ms")
        dur_s = f" {int(dur)}ms" if isinstance(dur, (int, float)) else ""

        msg = f"[tool] {tool} {status}{dur_s} ({event})"
        tool_json = json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"), default=str)
        extra = {"event": "tool_json", "tool_json": tool_json, "tool_name": tool, "call_id": call_id}

        if status == "error":
            TOOLS_LOGGER.warning(msg, extra=extra)
        elif TOOLS_LOGGER.isEnabledFor(DETAILED_LEVEL):
            TOOLS_LOGGER.detailed(msg, extra=extra)  # type: ignore[attr-defined]
    except Exception:  # noqa: BLE001
        # Never allow logging to break tool execution.
        return


def _arg_summary(args: Mapping[str, Any]) -> dict[str, Any]:
    keys = sorted(args.keys())
    return {"arg_keys": keys[:32], "arg_count": len(keys)}


def _instrument(name: str, func: ToolHandler) -> ToolHandler:
    @functools.wraps(func)
    async def wrapper(client: Any, **arguments: Any) -> Any:
        call_id = str(uuid.uuid4())
        start = time.perf_counter()
        _log_tool_event(
            {
                "event": "tool_call.start",
                "status": "start",
                "tool_name": name,
                "call_id": call_id,
                **_arg_summary(arguments),
            }
        )

        try:
            result = await func(client, **arguments)
        except Exception as exc:
            _log_tool_event(
                {
                    "event": "tool_call.error",
                    "status": "error",
                    "tool_name": name,
                    "call_id": call_id,
                    "duration_ms": int((time.perf_counter() - start) * 1000),
                    "error": _structured_tool_error(exc, context=name)["error"],
                }
            )
            raise

        _log_tool_event(
            {
                "event": "tool_call.ok",
                "status": "ok",
                "tool_name": name,
                "call_id": call_id,
                "duration_ms": int((time.perf_counter() - start) * 1000),
                "result_type": type(result).__name__,
            }
        )
        return result

    return wrapper


def github_tool(
    group: ToolGroup,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    params: Optional[Mapping[str, str]] = None,
    write_action: bool = False,
) -> Callable[[ToolHandler], ToolHandler]:
    """Register the decorated handler on ``group``.

    The undecorated function is returned so it stays directly callable in
    tests.
    """

    def decorator(func: ToolHandler) -> ToolHandler:
        tool_name = name or func.__name__
        group.add(
            ToolDescriptor(
                name=tool_name,
                description=description or description_from_docstring(func, tool_name),
                input_schema=schema_from_signature(func, descriptions=params),
                handler=_instrument(tool_name, func),
                write_action=write_action,
            )
        )
        return func

    return decorator


__all__ = ["github_tool"]
