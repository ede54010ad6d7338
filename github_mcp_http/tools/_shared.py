"""Helpers shared by the GitHub tool modules."""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

MAX_PER_PAGE = 100

_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def _check_name(value: str, field: str) -> str:
    if not value or not _NAME_RE.match(value):
        raise ValueError(f"{field} must be a GitHub owner or repository name")
    return value


def repo_path(owner: str, repo: str) -> str:
    return f"/repos/{_check_name(owner, 'owner')}/{_check_name(repo, 'repo')}"


def page_params(page: int, per_page: int) -> Dict[str, int]:
    if page <= 0:
        raise ValueError("page must be > 0")
    if per_page <= 0:
        raise ValueError("per_page must be > 0")
    return {"page": page, "per_page": min(per_page, MAX_PER_PAGE)}


def pick(obj: Optional[Mapping[str, Any]], *keys: str) -> Dict[str, Any]:
    """Return ``{key: obj[key]}`` for present keys; ``{}`` for non-mappings."""

    if not isinstance(obj, Mapping):
        return {}
    return {k: obj.get(k) for k in keys if k in obj}


def login(user: Any) -> Optional[str]:
    if isinstance(user, Mapping):
        return user.get("login")
    return None


def label_names(raw: Any) -> List[str]:
    out: List[str] = []
    for label in raw or []:
        if isinstance(label, Mapping):
            name = label.get("name")
            if name:
                out.append(name)
        elif isinstance(label, str):
            out.append(label)
    return out


def items(payload: Any) -> Iterable[Mapping[str, Any]]:
    if isinstance(payload, list):
        return [p for p in payload if isinstance(p, Mapping)]
    return []


def compact(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop ``None`` values from a request payload."""

    return {k: v for k, v in values.items() if v is not None}
