"""GitHub tool catalogue, grouped by area.

Each module declares a ``ToolGroup``; ``ALL_TOOL_GROUPS`` fixes the order in
which they are advertised by ``tools/list``.
"""

from .diagnostics import DIAGNOSTIC_TOOLS
from .issues import ISSUE_TOOLS
from .pull_requests import PULL_REQUEST_TOOLS
from .repositories import REPOSITORY_TOOLS
from .search import SEARCH_TOOLS

ALL_TOOL_GROUPS = (
    DIAGNOSTIC_TOOLS,
    SEARCH_TOOLS,
    ISSUE_TOOLS,
    REPOSITORY_TOOLS,
    PULL_REQUEST_TOOLS,
)

__all__ = [
    "ALL_TOOL_GROUPS",
    "DIAGNOSTIC_TOOLS",
    "ISSUE_TOOLS",
    "PULL_REQUEST_TOOLS",
    "REPOSITORY_TOOLS",
    "SEARCH_TOOLS",
]
