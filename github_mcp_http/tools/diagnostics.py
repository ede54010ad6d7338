from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from github_mcp_http.config import SERVER_NAME, TRANSPORT_NAME
from github_mcp_http.mcp_server.decorators import github_tool
from github_mcp_http.mcp_server.registry import ToolGroup

DIAGNOSTIC_TOOLS = ToolGroup("diagnostics")


@github_tool(DIAGNOSTIC_TOOLS)
async def hello(client: Any) -> Dict[str, Any]:
    """A simple test tool to verify that MCP is working correctly."""

    return {
        "message": f"Hello from {SERVER_NAME}!",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "transport": TRANSPORT_NAME,
        "hasToken": bool(getattr(client, "has_token", False)),
    }


__all__ = ["DIAGNOSTIC_TOOLS"]
