"""Per-request GitHub credential resolution."""

from __future__ import annotations

import hashlib
from typing import Mapping, Optional


TOKEN_QUERY_PARAM = "token"
TOKEN_HEADER = "X-GitHub-Token"

CREDENTIAL_MISSING_MESSAGE = (
    "GitHub token required. Provide via ?token=YOUR_TOKEN query param, "
    "X-GitHub-Token header, or GITHUB_PERSONAL_ACCESS_TOKEN environment variable."
)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def _header_value(headers: Mapping[str, str], name: str) -> Optional[str]:
    # Starlette's Headers is already case-insensitive; plain dicts are not.
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


def resolve_token(
    query_params: Mapping[str, str],
    headers: Mapping[str, str],
    default_token: Optional[str] = None,
) -> Optional[str]:
    """Return the caller's token or None.

    Precedence: ``?token=`` query parameter, then the ``X-GitHub-Token``
    header, then the server default. Blank values count as absent.
    """

    for candidate in (
        query_params.get(TOKEN_QUERY_PARAM),
        _header_value(headers, TOKEN_HEADER),
        default_token,
    ):
        token = _clean(candidate)
        if token:
            return token
    return None


def token_fingerprint(token: str) -> str:
    """Short, non-reversible identifier for logs. Never log the token itself."""

    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]


__all__ = [
    "CREDENTIAL_MISSING_MESSAGE",
    "TOKEN_HEADER",
    "TOKEN_QUERY_PARAM",
    "resolve_token",
    "token_fingerprint",
]
