from typing import List, Literal, Optional

import jsonschema
import pytest

from github_mcp_http.exceptions import DuplicateToolError
from github_mcp_http.mcp_server.decorators import github_tool
from github_mcp_http.mcp_server.registry import ToolGroup, ToolRegistry, build_default_registry
from github_mcp_http.mcp_server.schemas import schema_from_signature

EXPECTED_TOOLS = {
    "hello",
    "search_repositories",
    "search_code",
    "search_issues",
    "search_users",
    "list_issues",
    "get_issue",
    "create_issue",
    "update_issue",
    "add_issue_comment",
    "list_issue_comments",
    "get_repository",
    "list_branches",
    "list_commits",
    "get_file_contents",
    "create_or_update_file",
    "create_branch",
    "fork_repository",
    "create_repository",
    "list_pull_requests",
    "get_pull_request",
    "create_pull_request",
    "merge_pull_request",
    "get_pull_request_files",
    "list_pull_request_reviews",
}


def test_default_registry_contains_catalogue():
    registry = build_default_registry()
    assert set(registry.names()) == EXPECTED_TOOLS
    assert registry.names()[0] == "hello"
    assert len(registry) == len(EXPECTED_TOOLS)


def test_default_registry_builds_fresh_instances():
    assert build_default_registry() is not build_default_registry()


def test_every_tool_has_description_and_object_schema():
    for descriptor in build_default_registry().descriptors():
        assert descriptor.description.strip(), descriptor.name
        assert descriptor.input_schema["type"] == "object"
        assert "client" not in descriptor.input_schema["properties"]


def test_write_tools_are_flagged():
    registry = build_default_registry()
    assert registry.lookup("create_issue").write_action is True
    assert registry.lookup("merge_pull_request").write_action is True
    assert registry.lookup("get_issue").write_action is False
    assert registry.lookup("hello").write_action is False


def test_duplicate_names_are_rejected():
    group = ToolGroup("dupes")

    @github_tool(group, name="same")
    async def first(client):
        """First."""

    @github_tool(group, name="same")
    async def second(client):
        """Second."""

    with pytest.raises(DuplicateToolError) as excinfo:
        ToolRegistry([group])
    assert "same" in str(excinfo.value)


def test_lookup_unknown_returns_none():
    registry = ToolRegistry()
    assert registry.lookup("nope") is None
    assert "nope" not in registry


def test_decorator_returns_plain_function_and_uses_docstring():
    group = ToolGroup("g")

    @github_tool(group, params={"x": "An x value"})
    async def sample(client, x: int, flag: bool = False):
        """Do a sample thing.

        Longer explanation that is not part of the description.
        """
        return x

    descriptor = group.tools[0]
    assert descriptor.name == "sample"
    assert descriptor.description == "Do a sample thing."
    assert descriptor.input_schema["properties"]["x"] == {"type": "integer", "description": "An x value"}
    assert descriptor.handler is not sample


def test_schema_from_signature_maps_annotations():
    async def handler(
        client,
        name: str,
        count: int,
        ratio: float = 1.5,
        tags: Optional[List[str]] = None,
        state: Literal["open", "closed"] = "open",
        extra: Optional[dict] = None,
    ):
        return None

    schema = schema_from_signature(handler)

    assert schema["required"] == ["name", "count"]
    props = schema["properties"]
    assert props["name"] == {"type": "string"}
    assert props["count"] == {"type": "integer"}
    assert props["ratio"] == {"type": "number", "default": 1.5}
    assert props["tags"] == {"anyOf": [{"type": "array", "items": {"type": "string"}}, {"type": "null"}]}
    assert props["state"] == {"enum": ["open", "closed"], "type": "string", "default": "open"}
    assert props["extra"] == {"anyOf": [{"type": "object"}, {"type": "null"}]}
    assert "client" not in props


def test_optional_parameters_accept_null():
    async def handler(client, owner: str, sort: Optional[Literal["created", "updated"]] = None):
        return None

    schema = schema_from_signature(handler)
    validator = jsonschema.Draft7Validator(schema)

    assert schema["properties"]["sort"] == {
        "anyOf": [{"enum": ["created", "updated"], "type": "string"}, {"type": "null"}]
    }
    assert list(validator.iter_errors({"owner": "o", "sort": None})) == []
    assert list(validator.iter_errors({"owner": None}))
