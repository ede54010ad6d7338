from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, Iterator, List, Mapping, Optional

from github_mcp_http.exceptions import DuplicateToolError

ToolHandler = Callable[..., Awaitable[Any]]


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    input_schema: Mapping[str, Any]
    handler: ToolHandler
    write_action: bool = False


@dataclass
class ToolGroup:
    """Tools declared by one module, in declaration order."""

    name: str
    tools: List[ToolDescriptor] = field(default_factory=list)

    def add(self, descriptor: ToolDescriptor) -> None:
        self.tools.append(descriptor)

    def __iter__(self) -> Iterator[ToolDescriptor]:
        return iter(self.tools)


class ToolRegistry:
    """Name -> ToolDescriptor mapping shared by every session.

    Handlers receive the session's bound client as an explicit argument, so a
    single registry serves all credentials.
    """

    def __init__(self, groups: Iterable[ToolGroup] = ()) -> None:
        self._tools: Dict[str, ToolDescriptor] = {}
        for group in groups:
            self.register(group)

    def register(self, group: ToolGroup) -> None:
        for descriptor in group:
            self.add(descriptor)

    def add(self, descriptor: ToolDescriptor) -> None:
        if descriptor.name in self._tools:
            raise DuplicateToolError(descriptor.name)
        self._tools[descriptor.name] = descriptor

    def lookup(self, name: str) -> Optional[ToolDescriptor]:
        return self._tools.get(name)

    def descriptors(self) -> List[ToolDescriptor]:
        return list(self._tools.values())

    def names(self) -> List[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def build_default_registry() -> ToolRegistry:
    from github_mcp_http.tools import ALL_TOOL_GROUPS

    return ToolRegistry(ALL_TOOL_GROUPS)


__all__ = [
    "ToolDescriptor",
    "ToolGroup",
    "ToolHandler",
    "ToolRegistry",
    "build_default_registry",
]
