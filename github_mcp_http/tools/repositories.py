"""Repository, branch, commit and file tools."""

from __future__ import annotations

import base64
import binascii
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from github_mcp_http.http_clients import GitHubClient
from github_mcp_http.mcp_server.decorators import github_tool
from github_mcp_http.mcp_server.registry import ToolGroup

from ._shared import compact, items, login, page_params, pick, repo_path

REPOSITORY_TOOLS = ToolGroup("repositories")

_OWNER_REPO = {
    "owner": "Repository owner (user or organization)",
    "repo": "Repository name",
}


def _content_path(path: str) -> str:
    normalized = path.strip().lstrip("/")
    if ".." in normalized.split("/"):
        raise ValueError("path must not contain '..' segments")
    return quote(normalized, safe="/")


def _decode_content(entry: Dict[str, Any]) -> Optional[str]:
    if entry.get("encoding") != "base64" or not isinstance(entry.get("content"), str):
        return None
    try:
        raw = base64.b64decode(entry["content"])
    except (binascii.Error, ValueError):
        return None
    return raw.decode("utf-8", errors="replace")


@github_tool(REPOSITORY_TOOLS, params=_OWNER_REPO)
async def get_repository(client: GitHubClient, owner: str, repo: str) -> Dict[str, Any]:
    """Get metadata for a GitHub repository."""

    data = await client.request("GET", repo_path(owner, repo))
    return {
        **pick(
            data,
            "full_name",
            "description",
            "html_url",
            "default_branch",
            "language",
            "visibility",
            "private",
            "fork",
            "archived",
            "stargazers_count",
            "forks_count",
            "open_issues_count",
            "topics",
            "created_at",
            "updated_at",
            "pushed_at",
        ),
        "owner": login(data.get("owner")),
        "license": (data.get("license") or {}).get("spdx_id"),
    }


@github_tool(REPOSITORY_TOOLS, params=_OWNER_REPO)
async def list_branches(
    client: GitHubClient, owner: str, repo: str, page: int = 1, per_page: int = 30
) -> List[Dict[str, Any]]:
    """List branches in a GitHub repository."""

    data = await client.request("GET", f"{repo_path(owner, repo)}/branches", params=page_params(page, per_page))
    return [
        {
            "name": branch.get("name"),
            "sha": (branch.get("commit") or {}).get("sha"),
            "protected": branch.get("protected", False),
        }
        for branch in items(data)
    ]


@github_tool(
    REPOSITORY_TOOLS,
    params={**_OWNER_REPO, "sha": "Branch name or commit SHA to start listing from"},
)
async def list_commits(
    client: GitHubClient,
    owner: str,
    repo: str,
    sha: Optional[str] = None,
    path: Optional[str] = None,
    author: Optional[str] = None,
    page: int = 1,
    per_page: int = 30,
) -> List[Dict[str, Any]]:
    """List commits on a branch of a GitHub repository."""

    params: Dict[str, Any] = {**page_params(page, per_page), **compact({"sha": sha, "path": path, "author": author})}
    data = await client.request("GET", f"{repo_path(owner, repo)}/commits", params=params)
    out: List[Dict[str, Any]] = []
    for entry in items(data):
        commit = entry.get("commit") or {}
        out.append(
            {
                "sha": entry.get("sha"),
                "message": commit.get("message"),
                "author": (commit.get("author") or {}).get("name"),
                "date": (commit.get("author") or {}).get("date"),
                "html_url": entry.get("html_url"),
            }
        )
    return out


@github_tool(
    REPOSITORY_TOOLS,
    params={**_OWNER_REPO, "path": "File or directory path", "ref": "Branch, tag or commit SHA"},
)
async def get_file_contents(
    client: GitHubClient, owner: str, repo: str, path: str = "", ref: Optional[str] = None
) -> Dict[str, Any]:
    """Get the contents of a file or directory from a GitHub repository."""

    data = await client.request(
        "GET",
        f"{repo_path(owner, repo)}/contents/{_content_path(path)}",
        params=compact({"ref": ref}),
    )
    if isinstance(data, list):
        return {
            "type": "dir",
            "path": path,
            "entries": [pick(entry, "name", "path", "type", "size", "sha") for entry in items(data)],
        }

    result = pick(data, "type", "name", "path", "size", "sha", "html_url")
    text = _decode_content(data)
    if text is not None:
        result["content"] = text
    return result


@github_tool(REPOSITORY_TOOLS, params={**_OWNER_REPO, "sha": "Blob SHA of the file being replaced"}, write_action=True)
async def create_or_update_file(
    client: GitHubClient,
    owner: str,
    repo: str,
    path: str,
    content: str,
    message: str,
    branch: Optional[str] = None,
    sha: Optional[str] = None,
) -> Dict[str, Any]:
    """Create or update a single file in a GitHub repository."""

    payload = compact(
        {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
            "sha": sha,
        }
    )
    data = await client.request(
        "PUT", f"{repo_path(owner, repo)}/contents/{_content_path(path)}", json_body=payload
    )
    return {
        "content": pick(data.get("content"), "path", "sha", "html_url"),
        "commit": pick(data.get("commit"), "sha", "message", "html_url"),
    }


@github_tool(
    REPOSITORY_TOOLS,
    params={**_OWNER_REPO, "from_branch": "Source branch; defaults to the repository default branch"},
    write_action=True,
)
async def create_branch(
    client: GitHubClient, owner: str, repo: str, branch: str, from_branch: Optional[str] = None
) -> Dict[str, Any]:
    """Create a new branch in a GitHub repository."""

    base = repo_path(owner, repo)
    if not from_branch:
        meta = await client.request("GET", base)
        from_branch = meta.get("default_branch") or "main"

    source = await client.request("GET", f"{base}/git/ref/heads/{quote(from_branch, safe='/')}")
    source_sha = (source.get("object") or {}).get("sha")
    if not source_sha:
        raise ValueError(f"could not resolve branch {from_branch!r}")

    created = await client.request(
        "POST", f"{base}/git/refs", json_body={"ref": f"refs/heads/{branch}", "sha": source_sha}
    )
    return {"ref": created.get("ref"), "sha": (created.get("object") or {}).get("sha"), "from_branch": from_branch}


@github_tool(REPOSITORY_TOOLS, params={**_OWNER_REPO, "organization": "Fork into this organization instead"}, write_action=True)
async def fork_repository(
    client: GitHubClient, owner: str, repo: str, organization: Optional[str] = None
) -> Dict[str, Any]:
    """Fork a GitHub repository to the authenticated account or an organization."""

    data = await client.request(
        "POST", f"{repo_path(owner, repo)}/forks", json_body=compact({"organization": organization})
    )
    return {**pick(data, "full_name", "html_url", "default_branch"), "owner": login(data.get("owner"))}


@github_tool(REPOSITORY_TOOLS, write_action=True)
async def create_repository(
    client: GitHubClient,
    name: str,
    description: Optional[str] = None,
    private: bool = False,
    auto_init: bool = False,
) -> Dict[str, Any]:
    """Create a new repository for the authenticated user."""

    if not name.strip():
        raise ValueError("name must be a non-empty string")
    data = await client.request(
        "POST",
        "/user/repos",
        json_body=compact({"name": name, "description": description, "private": private, "auto_init": auto_init}),
    )
    return pick(data, "full_name", "html_url", "private", "default_branch")


__all__ = ["REPOSITORY_TOOLS"]
