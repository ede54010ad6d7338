"""Utilities for producing consistent tool-failure payloads.

The payload shape should remain stable so clients can rely on it. Failures
raised inside a tool handler are reported inside the tool result (``isError``)
rather than as transport faults.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import httpx
import jsonschema

from github_mcp_http.exceptions import (
    GitHubAPIError,
    GitHubAuthError,
    GitHubRateLimitError,
    ToolNotFoundError,
)


def _summarize_exception(exc: BaseException) -> str:
    """Create a short human-readable message."""
    if isinstance(exc, jsonschema.ValidationError):
        path = list(exc.path)
        base_message = exc.message or exc.__class__.__name__
        if path:
            path_display = ".".join(str(p) for p in path)
            return f"{base_message} (at {path_display})"
        return base_message

    return str(exc) or exc.__class__.__name__


def _classify_category(exc: BaseException, message: str) -> str:
    """Best-effort category for client UX and retry logic."""
    if isinstance(exc, GitHubRateLimitError):
        return "rate_limited"
    if isinstance(exc, GitHubAuthError):
        return "auth"
    if isinstance(exc, GitHubAPIError):
        if exc.status_code == 404:
            return "not_found"
        return "github_api"

    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
        return "timeout"

    if isinstance(exc, ToolNotFoundError):
        return "unknown_tool"

    if isinstance(exc, (jsonschema.ValidationError, ValueError, TypeError)):
        return "validation"

    lowered = (message or "").lower()
    if "timeout" in lowered or "timed out" in lowered:
        return "timeout"

    return "unknown"


_NEXT_STEPS: Dict[str, str] = {
    "auth": "Check that the GitHub token is valid and has the required scopes.",
    "rate_limited": "Wait for the GitHub rate limit window to reset, then retry.",
    "not_found": "Verify the owner, repository and number/path arguments.",
    "github_api": "Retry after a short delay. If persistent, reduce request size or rate.",
    "timeout": "Retry the call; GitHub did not answer in time.",
    "validation": "Fix the tool arguments to match the input schema and retry.",
    "unknown_tool": "Call tools/list to see the available tool names.",
}


def _structured_tool_error(
    exc: BaseException, *, context: str, path: Optional[str] = None
) -> Dict[str, Any]:
    """Build a serializable payload for MCP clients."""
    message = _summarize_exception(exc)
    category = _classify_category(exc, message)

    payload: Dict[str, Any] = {
        "error": {
            "error": exc.__class__.__name__,
            "message": message,
            "context": context,
            "category": category,
            "next_steps": [
                _NEXT_STEPS.get(category, "Review the server logs and retry with smaller steps if needed.")
            ],
        }
    }

    status_code = getattr(exc, "status_code", None)
    if status_code:
        payload["error"]["status_code"] = status_code

    if path:
        payload["error"]["path"] = path

    return payload


__all__ = ["_structured_tool_error"]
