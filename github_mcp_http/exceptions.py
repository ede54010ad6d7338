"""Custom exception types used across the GitHub MCP HTTP gateway."""

from __future__ import annotations

from typing import Any, Optional


class GitHubAuthError(Exception):
    pass


class GitHubAPIError(Exception):
    """Raised when GitHub answers with an error status or cannot be reached."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        response_payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_payload = response_payload


class GitHubRateLimitError(GitHubAPIError):
    """Raised when GitHub responds with a rate limit error."""

    pass


class CredentialMissingError(Exception):
    """Raised when no GitHub token resolves for an inbound request."""

    code = -32001


class DuplicateToolError(Exception):
    """Raised at registry build time when two tools share a name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Tool {name!r} is already registered")
        self.name = name


class ToolNotFoundError(LookupError):
    """Raised when ``tools/call`` names a tool that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Tool {name} not found")
        self.name = name


__all__ = [
    "CredentialMissingError",
    "DuplicateToolError",
    "GitHubAPIError",
    "GitHubAuthError",
    "GitHubRateLimitError",
    "ToolNotFoundError",
]
