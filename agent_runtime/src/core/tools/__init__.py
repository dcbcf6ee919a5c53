from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Mapping, Sequence, get_type_hints

from ..errors import ToolNotFound


_JSON_TYPES = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    list: "array",
    tuple: "array",
    dict: "object",
}


def _copy_mapping(mapping: Mapping[str, Any] | None) -> dict[str, Any]:
    return dict(mapping or {})


@dataclass(frozen=True)
class ToolParameter:
    """Description of a keyword parameter accepted by a tool."""

    name: str
    description: str = ""
    required: bool = True
    schema: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolSpec:
    """Structured description of a tool, rendered for the reasoning client."""

    name: str
    description: str
    parameters: Sequence[ToolParameter] = field(default_factory=tuple)
    input_schema: Mapping[str, Any] = field(default_factory=dict)

    def to_definition(self) -> Dict[str, Any]:
        """Return the function-tool descriptor understood by chat clients."""

        if self.input_schema:
            parameters = _copy_mapping(self.input_schema)
        else:
            parameters = {
                "type": "object",
                "properties": {
                    param.name: _parameter_schema(param) for param in self.parameters
                },
                "required": [param.name for param in self.parameters if param.required],
            }
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }


def _parameter_schema(param: ToolParameter) -> Dict[str, Any]:
    schema = _copy_mapping(param.schema)
    if param.description and "description" not in schema:
        schema["description"] = param.description
    return schema


def _annotation_schema(annotation: Any) -> Dict[str, Any]:
    origin = getattr(annotation, "__origin__", None)
    json_type = _JSON_TYPES.get(origin or annotation)
    if json_type is None:
        return {}
    return {"type": json_type}


def _signature_parameters(func: Callable[..., Any]) -> tuple[ToolParameter, ...]:
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return tuple()
    try:
        hints = get_type_hints(func)
    except Exception:  # pragma: no cover - unresolvable forward references
        hints = {}
    parameters: List[ToolParameter] = []
    for param in signature.parameters.values():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        parameters.append(
            ToolParameter(
                name=param.name,
                required=param.default is inspect.Parameter.empty,
                schema=_annotation_schema(hints.get(param.name, param.annotation)),
            )
        )
    return tuple(parameters)


def describe_tool(
    name: str,
    func: Callable[..., Any],
    *,
    description: str | None = None,
    parameters: Mapping[str, Any] | None = None,
) -> ToolSpec:
    """Return a :class:`ToolSpec` for ``func``.

    An explicit JSON-schema ``parameters`` mapping wins.  Otherwise the
    parameter list is synthesised from the callable's signature and type
    hints, and the description falls back to the first docstring line.
    """

    if description is None:
        doc = inspect.getdoc(func) or ""
        description = doc.strip().splitlines()[0] if doc.strip() else str(name)
    return ToolSpec(
        name=str(name),
        description=str(description).strip() or str(name),
        parameters=_signature_parameters(func),
        input_schema=_copy_mapping(parameters),
    )


@dataclass(frozen=True)
class RegisteredTool:
    func: Callable[..., Any]
    spec: ToolSpec

    def invoke(self, args: Mapping[str, Any]) -> Any:
        return self.func(**dict(args))


class ToolRegistry:
    """Registry mapping tool names to callables invoked with keyword arguments."""

    def __init__(self, tools: Mapping[str, Callable[..., Any]] | None = None) -> None:
        self._tools: Dict[str, RegisteredTool] = {}
        for name, func in (tools or {}).items():
            self.register(name, func)

    def register(
        self,
        name: str,
        func: Callable[..., Any] | None = None,
        *,
        description: str | None = None,
        parameters: Mapping[str, Any] | None = None,
    ) -> Any:
        """Register ``func`` under ``name``; usable as a decorator when ``func`` is omitted."""

        def _register(target: Callable[..., Any]) -> Callable[..., Any]:
            if not callable(target):
                raise TypeError(f"Tool {name!r} must be callable")
            spec = describe_tool(name, target, description=description, parameters=parameters)
            self._tools[str(name)] = RegisteredTool(func=target, spec=spec)
            return target

        if func is None:
            return _register
        return _register(func)

    def call(self, name: str, args: Mapping[str, Any] | None = None) -> Any:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFound(f"Tool not found: {name}")
        return tool.invoke(args or {})

    def describe(self, name: str) -> ToolSpec:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFound(f"Tool not found: {name}")
        return tool.spec

    def definitions(self) -> List[Dict[str, Any]]:
        return [self._tools[name].spec.to_definition() for name in sorted(self._tools)]

    def names(self) -> List[str]:
        return sorted(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._tools)


__all__ = [
    "RegisteredTool",
    "ToolParameter",
    "ToolRegistry",
    "ToolSpec",
    "describe_tool",
]
