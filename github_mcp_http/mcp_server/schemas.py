"""Schema + metadata helpers."""

from __future__ import annotations

import inspect
import re
import types
import typing
from typing import Any, Dict, Literal, Mapping, Optional, Union, get_args, get_origin

# Handler parameters that are injected by the transport and never exposed.
INJECTED_PARAMETERS = frozenset({"client", "self", "cls"})

_SCALARS: Dict[Any, str] = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
}


def _title_from_tool_name(name: str) -> str:
    # snake_case -> Title Case
    parts = [p for p in re.split(r"[_\-\s]+", name.strip()) if p]
    if not parts:
        return "Tool"
    return " ".join(p[:1].upper() + p[1:] for p in parts)


def _schema_for_annotation(annotation: Any) -> Dict[str, Any]:
    """Map a Python annotation onto a JSON Schema fragment."""

    if annotation is inspect.Parameter.empty or annotation is Any:
        return {}
    if annotation is None or annotation is type(None):
        return {"type": "null"}

    if annotation in _SCALARS:
        return {"type": _SCALARS[annotation]}

    origin = get_origin(annotation)
    args = get_args(annotation)

    if origin is Literal:
        values = list(args)
        schema: Dict[str, Any] = {"enum": values}
        kinds = {type(v) for v in values}
        if len(kinds) == 1 and next(iter(kinds)) in _SCALARS:
            schema["type"] = _SCALARS[next(iter(kinds))]
        return schema

    if origin in (list, tuple, set, frozenset) or annotation in (list, tuple):
        schema = {"type": "array"}
        if args:
            items = _schema_for_annotation(args[0])
            if items:
                schema["items"] = items
        return schema

    if origin in (dict, Mapping) or annotation is dict:
        return {"type": "object"}

    if origin is Union or origin is getattr(types, "UnionType", None):
        # Optional[X] keeps its {"type": "null"} branch so clients may send null.
        options = [_schema_for_annotation(a) for a in args]
        if any(not o for o in options):
            return {}
        return {"anyOf": options}

    return {}


def schema_from_signature(
    func: Any,
    *,
    descriptions: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """Build an MCP ``inputSchema`` from a handler's signature.

    Parameters without defaults are required. ``client`` is injected at call
    time and is left out of the schema.
    """

    descriptions = descriptions or {}
    signature = inspect.signature(func)
    try:
        hints = typing.get_type_hints(func)
    except Exception:  # noqa: BLE001
        hints = {}

    properties: Dict[str, Any] = {}
    required: list[str] = []
    for name, param in signature.parameters.items():
        if name in INJECTED_PARAMETERS:
            continue
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue

        annotation = hints.get(name, param.annotation)
        prop = _schema_for_annotation(annotation)
        if name in descriptions:
            prop["description"] = descriptions[name]
        if param.default is not inspect.Parameter.empty and param.default is not None:
            prop["default"] = param.default
        properties[name] = prop

        if param.default is inspect.Parameter.empty:
            required.append(name)

    schema: Dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def description_from_docstring(func: Any, name: str) -> str:
    doc = (inspect.getdoc(func) or "").strip()
    if doc:
        return doc.split("\n\n", 1)[0].replace("\n", " ")
    return f"{_title_from_tool_name(name)}."


__all__ = [
    "INJECTED_PARAMETERS",
    "description_from_docstring",
    "schema_from_signature",
]
