"""GitHub search tools."""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from github_mcp_http.http_clients import GitHubClient
from github_mcp_http.mcp_server.decorators import github_tool
from github_mcp_http.mcp_server.registry import ToolGroup

from ._shared import compact, label_names, login, page_params, pick

SEARCH_TOOLS = ToolGroup("search")

_QUERY = "GitHub search query, e.g. 'fastapi language:python stars:>100'"


async def _search(
    client: GitHubClient,
    kind: str,
    query: str,
    *,
    page: int,
    per_page: int,
    sort: Optional[str] = None,
    order: Optional[str] = None,
) -> Dict[str, Any]:
    if not query.strip():
        raise ValueError("query must be a non-empty string")
    params: Dict[str, Any] = {"q": query, **page_params(page, per_page)}
    params.update(compact({"sort": sort, "order": order}))
    return await client.request("GET", f"/search/{kind}", params=params) or {}


@github_tool(SEARCH_TOOLS, params={"query": _QUERY})
async def search_repositories(
    client: GitHubClient,
    query: str,
    sort: Optional[Literal["stars", "forks", "help-wanted-issues", "updated"]] = None,
    order: Optional[Literal["asc", "desc"]] = None,
    page: int = 1,
    per_page: int = 30,
) -> Dict[str, Any]:
    """Search for GitHub repositories."""

    data = await _search(client, "repositories", query, page=page, per_page=per_page, sort=sort, order=order)
    return {
        "total_count": data.get("total_count", 0),
        "incomplete_results": data.get("incomplete_results", False),
        "items": [
            {
                **pick(
                    item,
                    "full_name",
                    "description",
                    "html_url",
                    "language",
                    "stargazers_count",
                    "forks_count",
                    "open_issues_count",
                    "updated_at",
                ),
                "owner": login(item.get("owner")),
            }
            for item in data.get("items", [])
        ],
    }


@github_tool(SEARCH_TOOLS, params={"query": _QUERY})
async def search_code(
    client: GitHubClient,
    query: str,
    page: int = 1,
    per_page: int = 30,
) -> Dict[str, Any]:
    """Search for code across GitHub repositories."""

    data = await _search(client, "code", query, page=page, per_page=per_page)
    return {
        "total_count": data.get("total_count", 0),
        "items": [
            {
                **pick(item, "name", "path", "sha", "html_url"),
                "repository": (item.get("repository") or {}).get("full_name"),
            }
            for item in data.get("items", [])
        ],
    }


@github_tool(SEARCH_TOOLS, params={"query": _QUERY})
async def search_issues(
    client: GitHubClient,
    query: str,
    sort: Optional[Literal["comments", "reactions", "created", "updated"]] = None,
    order: Optional[Literal["asc", "desc"]] = None,
    page: int = 1,
    per_page: int = 30,
) -> Dict[str, Any]:
    """Search for issues and pull requests across GitHub repositories."""

    data = await _search(client, "issues", query, page=page, per_page=per_page, sort=sort, order=order)
    return {
        "total_count": data.get("total_count", 0),
        "items": [
            {
                **pick(item, "number", "title", "state", "html_url", "comments", "created_at", "updated_at"),
                "user": login(item.get("user")),
                "labels": label_names(item.get("labels")),
                "is_pull_request": "pull_request" in item,
            }
            for item in data.get("items", [])
        ],
    }


@github_tool(SEARCH_TOOLS, params={"query": _QUERY})
async def search_users(
    client: GitHubClient,
    query: str,
    sort: Optional[Literal["followers", "repositories", "joined"]] = None,
    order: Optional[Literal["asc", "desc"]] = None,
    page: int = 1,
    per_page: int = 30,
) -> Dict[str, Any]:
    """Search for GitHub users."""

    data = await _search(client, "users", query, page=page, per_page=per_page, sort=sort, order=order)
    return {
        "total_count": data.get("total_count", 0),
        "items": [pick(item, "login", "type", "html_url", "score") for item in data.get("items", [])],
    }


__all__ = ["SEARCH_TOOLS"]
