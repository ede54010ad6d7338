import asyncio
import json
import logging

import httpx
import jsonschema
import pytest

from github_mcp_http.exceptions import (
    GitHubAPIError,
    GitHubAuthError,
    GitHubRateLimitError,
    ToolNotFoundError,
)
from github_mcp_http.mcp_server.decorators import github_tool
from github_mcp_http.mcp_server.errors import _structured_tool_error
from github_mcp_http.mcp_server.registry import ToolGroup


@pytest.mark.parametrize(
    "exc, category",
    [
        (GitHubRateLimitError("slow down", status_code=429), "rate_limited"),
        (GitHubAuthError("bad token"), "auth"),
        (GitHubAPIError("missing", status_code=404), "not_found"),
        (GitHubAPIError("boom", status_code=502), "github_api"),
        (httpx.ReadTimeout("slow"), "timeout"),
        (asyncio.TimeoutError(), "timeout"),
        (ToolNotFoundError("nope"), "unknown_tool"),
        (ValueError("owner must be a GitHub owner or repository name"), "validation"),
        (RuntimeError("unexpected"), "unknown"),
    ],
)
def test_categories(exc, category):
    payload = _structured_tool_error(exc, context="some_tool")
    error = payload["error"]
    assert error["category"] == category
    assert error["context"] == "some_tool"
    assert error["error"] == type(exc).__name__
    assert len(error["next_steps"]) == 1


def test_status_code_and_path_are_optional():
    with_status = _structured_tool_error(GitHubAPIError("x", status_code=422), context="c", path="a/b")["error"]
    assert with_status["status_code"] == 422
    assert with_status["path"] == "a/b"

    without = _structured_tool_error(RuntimeError("x"), context="c")["error"]
    assert "status_code" not in without
    assert "path" not in without


def test_empty_message_falls_back_to_class_name():
    assert _structured_tool_error(RuntimeError(), context="c")["error"]["message"] == "RuntimeError"


def test_validation_error_names_the_argument_path():
    schema = {
        "type": "object",
        "properties": {"filters": {"type": "object", "properties": {"state": {"enum": ["open", "closed"]}}}},
    }
    error = next(jsonschema.Draft7Validator(schema).iter_errors({"filters": {"state": "bogus"}}))

    payload = _structured_tool_error(error, context="list_issues")["error"]

    assert payload["category"] == "validation"
    assert payload["message"].endswith("(at filters.state)")
    assert payload["message"].isascii()


def _records(caplog):
    return [r for r in caplog.records if r.name == "github_mcp_http.tools"]


@pytest.mark.asyncio
async def test_tool_events_log_arg_keys_not_values(caplog):
    group = ToolGroup("g")

    @github_tool(group)
    async def echo(client, secret: str):
        """Echo."""
        return {"ok": True}

    handler = group.tools[0].handler
    with caplog.at_level(logging.DEBUG, logger="github_mcp_http.tools"):
        assert await handler(None, secret="hunter2") == {"ok": True}

    records = _records(caplog)
    assert [json.loads(r.tool_json)["event"] for r in records] == ["tool_call.start", "tool_call.ok"]
    start = json.loads(records[0].tool_json)
    assert start["arg_keys"] == ["secret"]
    assert all("hunter2" not in r.getMessage() and "hunter2" not in r.tool_json for r in records)


@pytest.mark.asyncio
async def test_tool_errors_log_warning_and_reraise(caplog):
    group = ToolGroup("g")

    @github_tool(group)
    async def fails(client):
        """Fail."""
        raise GitHubAPIError("gone", status_code=410)

    handler = group.tools[0].handler
    with caplog.at_level(logging.DEBUG, logger="github_mcp_http.tools"):
        with pytest.raises(GitHubAPIError):
            await handler(None)

    warnings = [r for r in _records(caplog) if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    payload = json.loads(warnings[0].tool_json)
    assert payload["event"] == "tool_call.error"
    assert payload["error"]["status_code"] == 410
    assert "[tool] fails error" in warnings[0].getMessage()
