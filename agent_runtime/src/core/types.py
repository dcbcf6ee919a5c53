"""Shared type definitions for the agent runtime."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .errors import ToolArgumentsError


FINISH_ACTION = "finish"

MESSAGE_ROLES = frozenset({"user", "assistant", "tool"})


@dataclass(frozen=True)
class Decision:
    """Structured action proposed by the reasoning step."""

    action: Optional[str] = None
    params: Mapping[str, Any] = field(default_factory=dict)
    confidence: Optional[float] = None

    @classmethod
    def from_raw(cls, raw: Any) -> "Decision":
        """Normalise structured model output into a :class:`Decision`.

        ``raw`` may be a mapping or a JSON object string.  Keys are matched
        by name regardless of whether they arrive as strings or enum-like
        objects; unknown keys are ignored.
        """

        if isinstance(raw, Decision):
            return raw
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Decision payload is not valid JSON: {exc}") from exc
        if not isinstance(raw, Mapping):
            raise TypeError(f"Unsupported decision format: {raw!r}")
        data = {str(key): value for key, value in raw.items()}
        params = data.get("params")
        confidence = data.get("confidence")
        if confidence is not None:
            confidence = float(confidence)
        action = data.get("action")
        return cls(
            action=None if action is None else str(action),
            params=dict(params) if isinstance(params, Mapping) else {},
            confidence=confidence,
        )

    @property
    def is_finish(self) -> bool:
        return self.action == FINISH_ACTION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "params": json.loads(json.dumps(dict(self.params), default=str)),
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class ToolCall:
    """Request from the model to invoke a registered tool."""

    name: str
    raw_arguments: str = "{}"
    id: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Any) -> "ToolCall":
        """Build a call from the ``{id?, function: {name, arguments}}`` shape."""

        if isinstance(raw, ToolCall):
            return raw
        if not isinstance(raw, Mapping):
            function = getattr(raw, "function", None)
            raw = {
                "id": getattr(raw, "id", None),
                "function": {
                    "name": getattr(function, "name", None),
                    "arguments": getattr(function, "arguments", None),
                },
            }
        function = raw.get("function")
        if not isinstance(function, Mapping):
            function = raw
        name = function.get("name") or raw.get("name")
        if not name:
            raise ToolArgumentsError(f"Tool call is missing a function name: {dict(raw)!r}")
        arguments = function.get("arguments")
        if arguments is None:
            arguments = raw.get("arguments")
        if arguments is None:
            arguments = "{}"
        if not isinstance(arguments, str):
            arguments = json.dumps(arguments, default=str)
        ident = raw.get("id")
        return cls(name=str(name), raw_arguments=arguments, id=None if ident is None else str(ident))

    def parse_arguments(self) -> Dict[str, Any]:
        text = self.raw_arguments.strip() or "{}"
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ToolArgumentsError(f"Invalid JSON arguments for {self.name}: {exc}") from exc
        if not isinstance(parsed, dict):
            raise ToolArgumentsError(
                f"Arguments for {self.name} must decode to an object, got {type(parsed).__name__}"
            )
        return parsed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "function": {"name": self.name, "arguments": self.raw_arguments},
        }


@dataclass(frozen=True)
class Message:
    """Entry in the chat transcript exchanged with the reasoning client."""

    role: str
    content: str
    tool_call_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.role not in MESSAGE_ROLES:
            raise ValueError(f"Unsupported message role: {self.role!r}")

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_call_id is not None:
            payload["tool_call_id"] = self.tool_call_id
        return payload


@dataclass(frozen=True)
class TransitionRecord:
    """One entry of the FSM transition history."""

    from_state: Any
    to_state: Any
    reason: Optional[str]
    iteration: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": _state_name(self.from_state),
            "to": _state_name(self.to_state),
            "reason": self.reason,
            "iteration": self.iteration,
        }


def _state_name(state: Any) -> str:
    return str(getattr(state, "value", state))


__all__ = [
    "Decision",
    "FINISH_ACTION",
    "MESSAGE_ROLES",
    "Message",
    "ToolCall",
    "TransitionRecord",
]
