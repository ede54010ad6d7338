"""Issue tools."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from github_mcp_http.http_clients import GitHubClient
from github_mcp_http.mcp_server.decorators import github_tool
from github_mcp_http.mcp_server.registry import ToolGroup

from ._shared import compact, items, label_names, login, page_params, pick, repo_path

ISSUE_TOOLS = ToolGroup("issues")

_OWNER_REPO = {
    "owner": "Repository owner (user or organization)",
    "repo": "Repository name",
}


def _issue_summary(issue: Dict[str, Any]) -> Dict[str, Any]:
    return {
        **pick(issue, "number", "title", "state", "html_url", "comments", "created_at", "updated_at", "closed_at"),
        "user": login(issue.get("user")),
        "labels": label_names(issue.get("labels")),
        "assignees": [login(a) for a in issue.get("assignees") or []],
        "is_pull_request": "pull_request" in issue,
    }


def _comment_summary(comment: Dict[str, Any]) -> Dict[str, Any]:
    return {
        **pick(comment, "id", "body", "html_url", "created_at", "updated_at"),
        "user": login(comment.get("user")),
    }


@github_tool(ISSUE_TOOLS, params=_OWNER_REPO)
async def list_issues(
    client: GitHubClient,
    owner: str,
    repo: str,
    state: Literal["open", "closed", "all"] = "open",
    labels: Optional[List[str]] = None,
    sort: Optional[Literal["created", "updated", "comments"]] = None,
    direction: Optional[Literal["asc", "desc"]] = None,
    since: Optional[str] = None,
    page: int = 1,
    per_page: int = 30,
) -> List[Dict[str, Any]]:
    """List issues in a GitHub repository (pull requests included, flagged)."""

    params: Dict[str, Any] = {"state": state, **page_params(page, per_page)}
    params.update(
        compact(
            {
                "labels": ",".join(labels) if labels else None,
                "sort": sort,
                "direction": direction,
                "since": since,
            }
        )
    )
    data = await client.request("GET", f"{repo_path(owner, repo)}/issues", params=params)
    return [_issue_summary(issue) for issue in items(data)]


@github_tool(ISSUE_TOOLS, params=_OWNER_REPO)
async def get_issue(client: GitHubClient, owner: str, repo: str, issue_number: int) -> Dict[str, Any]:
    """Get the details of a specific issue."""

    issue = await client.request("GET", f"{repo_path(owner, repo)}/issues/{issue_number}")
    return {**_issue_summary(issue), "body": issue.get("body")}


@github_tool(ISSUE_TOOLS, params=_OWNER_REPO, write_action=True)
async def create_issue(
    client: GitHubClient,
    owner: str,
    repo: str,
    title: str,
    body: Optional[str] = None,
    labels: Optional[List[str]] = None,
    assignees: Optional[List[str]] = None,
    milestone: Optional[int] = None,
) -> Dict[str, Any]:
    """Create a new issue in a GitHub repository."""

    if not title.strip():
        raise ValueError("title must be a non-empty string")
    payload = compact(
        {"title": title, "body": body, "labels": labels, "assignees": assignees, "milestone": milestone}
    )
    issue = await client.request("POST", f"{repo_path(owner, repo)}/issues", json_body=payload)
    return _issue_summary(issue)


@github_tool(ISSUE_TOOLS, params=_OWNER_REPO, write_action=True)
async def update_issue(
    client: GitHubClient,
    owner: str,
    repo: str,
    issue_number: int,
    title: Optional[str] = None,
    body: Optional[str] = None,
    state: Optional[Literal["open", "closed"]] = None,
    labels: Optional[List[str]] = None,
    assignees: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Update an existing issue (title, body, state, labels or assignees)."""

    payload = compact(
        {"title": title, "body": body, "state": state, "labels": labels, "assignees": assignees}
    )
    if not payload:
        raise ValueError("at least one field to update must be provided")
    issue = await client.request(
        "PATCH", f"{repo_path(owner, repo)}/issues/{issue_number}", json_body=payload
    )
    return _issue_summary(issue)


@github_tool(ISSUE_TOOLS, params=_OWNER_REPO, write_action=True)
async def add_issue_comment(
    client: GitHubClient, owner: str, repo: str, issue_number: int, body: str
) -> Dict[str, Any]:
    """Add a comment to an issue or pull request."""

    if not body.strip():
        raise ValueError("body must be a non-empty string")
    comment = await client.request(
        "POST",
        f"{repo_path(owner, repo)}/issues/{issue_number}/comments",
        json_body={"body": body},
    )
    return _comment_summary(comment)


@github_tool(ISSUE_TOOLS, params=_OWNER_REPO)
async def list_issue_comments(
    client: GitHubClient,
    owner: str,
    repo: str,
    issue_number: int,
    page: int = 1,
    per_page: int = 30,
) -> List[Dict[str, Any]]:
    """List comments on an issue or pull request."""

    data = await client.request(
        "GET",
        f"{repo_path(owner, repo)}/issues/{issue_number}/comments",
        params=page_params(page, per_page),
    )
    return [_comment_summary(comment) for comment in items(data)]


__all__ = ["ISSUE_TOOLS"]
