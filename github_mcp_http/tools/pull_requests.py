from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from github_mcp_http.http_clients import GitHubClient
from github_mcp_http.mcp_server.decorators import github_tool
from github_mcp_http.mcp_server.registry import ToolGroup

from ._shared import compact, items, login, page_params, pick, repo_path

PULL_REQUEST_TOOLS = ToolGroup("pull_requests")

_OWNER_REPO = {
    "owner": "Repository owner (user or organization)",
    "repo": "Repository name",
}


def _pr_summary(pr: Dict[str, Any]) -> Dict[str, Any]:
    return {
        **pick(pr, "number", "title", "state", "draft", "merged", "html_url", "created_at", "updated_at", "merged_at"),
        "user": login(pr.get("user")),
        "head": (pr.get("head") or {}).get("ref"),
        "base": (pr.get("base") or {}).get("ref"),
    }


@github_tool(PULL_REQUEST_TOOLS, params={**_OWNER_REPO, "head": "Filter by head user/org and branch, 'user:ref'"})
async def list_pull_requests(
    client: GitHubClient,
    owner: str,
    repo: str,
    state: Literal["open", "closed", "all"] = "open",
    head: Optional[str] = None,
    base: Optional[str] = None,
    sort: Optional[Literal["created", "updated", "popularity", "long-running"]] = None,
    direction: Optional[Literal["asc", "desc"]] = None,
    page: int = 1,
    per_page: int = 30,
) -> List[Dict[str, Any]]:
    """List pull requests in a GitHub repository."""

    params: Dict[str, Any] = {"state": state, **page_params(page, per_page)}
    params.update(compact({"head": head, "base": base, "sort": sort, "direction": direction}))
    data = await client.request("GET", f"{repo_path(owner, repo)}/pulls", params=params)
    return [_pr_summary(pr) for pr in items(data)]


@github_tool(PULL_REQUEST_TOOLS, params=_OWNER_REPO)
async def get_pull_request(client: GitHubClient, owner: str, repo: str, pull_number: int) -> Dict[str, Any]:
    """Get details of a specific pull request."""

    pr = await client.request("GET", f"{repo_path(owner, repo)}/pulls/{pull_number}")
    return {
        **_pr_summary(pr),
        **pick(pr, "body", "mergeable", "mergeable_state", "commits", "additions", "deletions", "changed_files"),
    }


@github_tool(PULL_REQUEST_TOOLS, params={**_OWNER_REPO, "head": "Branch containing the changes", "base": "Branch to merge into"}, write_action=True)
async def create_pull_request(
    client: GitHubClient,
    owner: str,
    repo: str,
    title: str,
    head: str,
    base: str,
    body: Optional[str] = None,
    draft: bool = False,
) -> Dict[str, Any]:
    """Create a new pull request."""

    payload = compact({"title": title, "head": head, "base": base, "body": body, "draft": draft})
    pr = await client.request("POST", f"{repo_path(owner, repo)}/pulls", json_body=payload)
    return _pr_summary(pr)


@github_tool(PULL_REQUEST_TOOLS, params=_OWNER_REPO, write_action=True)
async def merge_pull_request(
    client: GitHubClient,
    owner: str,
    repo: str,
    pull_number: int,
    merge_method: Literal["merge", "squash", "rebase"] = "merge",
    commit_title: Optional[str] = None,
    commit_message: Optional[str] = None,
) -> Dict[str, Any]:
    """Merge a pull request."""

    payload = compact(
        {"merge_method": merge_method, "commit_title": commit_title, "commit_message": commit_message}
    )
    data = await client.request(
        "PUT", f"{repo_path(owner, repo)}/pulls/{pull_number}/merge", json_body=payload
    )
    return pick(data, "merged", "sha", "message")


@github_tool(PULL_REQUEST_TOOLS, params=_OWNER_REPO)
async def get_pull_request_files(
    client: GitHubClient, owner: str, repo: str, pull_number: int, page: int = 1, per_page: int = 30
) -> List[Dict[str, Any]]:
    """List the files changed in a pull request."""

    data = await client.request(
        "GET", f"{repo_path(owner, repo)}/pulls/{pull_number}/files", params=page_params(page, per_page)
    )
    return [pick(f, "filename", "status", "additions", "deletions", "changes", "patch") for f in items(data)]


@github_tool(PULL_REQUEST_TOOLS, params=_OWNER_REPO)
async def list_pull_request_reviews(
    client: GitHubClient, owner: str, repo: str, pull_number: int, page: int = 1, per_page: int = 30
) -> List[Dict[str, Any]]:
    """List reviews submitted on a pull request."""

    data = await client.request(
        "GET", f"{repo_path(owner, repo)}/pulls/{pull_number}/reviews", params=page_params(page, per_page)
    )
    return [
        {**pick(review, "id", "state", "body", "submitted_at", "html_url"), "user": login(review.get("user"))}
        for review in items(data)
    ]


__all__ = ["PULL_REQUEST_TOOLS"]
