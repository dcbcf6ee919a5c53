from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence

from jsonschema import Draft202012Validator

from .errors import PlannerError
from .types import Decision, Message


class ReasoningClient(Protocol):
    """Language-model client consumed by the runtime.

    ``generate`` is single-shot structured output, ``chat`` a tool-less chat
    completion returning text and ``chat_raw`` the full chat response
    including any requested tool calls.
    """

    def generate(self, *, prompt: str, schema: Mapping[str, Any]) -> Any:  # pragma: no cover - interface
        ...

    def chat(self, *, messages: List[Dict[str, Any]], tools: Any = None) -> str:  # pragma: no cover - interface
        ...

    def chat_raw(self, *, messages: List[Dict[str, Any]], tools: Any = None) -> Any:  # pragma: no cover - interface
        ...


PromptBuilder = Callable[..., str]


def _serialise_messages(messages: Sequence[Message | Mapping[str, Any]]) -> List[Dict[str, Any]]:
    payload: List[Dict[str, Any]] = []
    for message in messages:
        if isinstance(message, Message):
            payload.append(message.to_dict())
        else:
            payload.append(dict(message))
    return payload


@dataclass
class Planner:
    """Adapter between the runtime and a :class:`ReasoningClient`."""

    client: ReasoningClient
    schema: Optional[Mapping[str, Any]] = None
    prompt_builder: Optional[PromptBuilder] = None

    def plan(self, input_text: str, state: Mapping[str, Any] | None = None) -> Decision:
        if self.schema is None or self.prompt_builder is None:
            raise PlannerError("Planner requires schema and prompt_builder to plan")
        prompt = self.prompt_builder(input=input_text, state=dict(state or {}))
        raw = self.client.generate(prompt=prompt, schema=self.schema)
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise PlannerError("Planner LLM returned invalid JSON") from exc
        if not isinstance(raw, Mapping):
            raise PlannerError(f"Planner LLM returned {type(raw).__name__}, expected an object")
        self._check_schema(raw)
        try:
            return Decision.from_raw(raw)
        except (TypeError, ValueError) as exc:
            raise PlannerError(f"Planner output is not a decision: {exc}") from exc

    def chat(self, messages: Sequence[Message | Mapping[str, Any]]) -> str:
        response = self.client.chat(messages=_serialise_messages(messages), tools=None)
        return extract_content(response)

    def chat_raw(
        self,
        messages: Sequence[Message | Mapping[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> Any:
        return self.client.chat_raw(messages=_serialise_messages(messages), tools=tools or None)

    def _check_schema(self, raw: Mapping[str, Any]) -> None:
        if not self.schema:
            return
        validator = Draft202012Validator(dict(self.schema))
        errors = sorted(validator.iter_errors(dict(raw)), key=lambda err: list(err.path))
        if errors:
            first = errors[0]
            location = "/".join(str(part) for part in first.path) or "<root>"
            raise PlannerError(f"Planner output failed schema validation at {location}: {first.message}")


def _field(container: Any, key: str) -> Any:
    if isinstance(container, Mapping):
        return container.get(key)
    return getattr(container, key, None)


def extract_content(response: Any) -> str:
    """Return the assistant text from any supported chat response shape."""

    if response is None:
        return ""
    if isinstance(response, str):
        return response
    message = _field(response, "message")
    if message is not None:
        content = _field(message, "content")
        if content is not None:
            return str(content)
    content = _field(response, "content")
    if content is not None:
        return str(content)
    return str(response)


def extract_tool_calls(response: Any) -> List[Any]:
    """Return the raw tool calls carried by a chat response, if any."""

    if response is None or isinstance(response, str):
        return []
    message = _field(response, "message")
    if message is not None:
        calls = _field(message, "tool_calls")
        if calls:
            return list(calls)
    calls = _field(response, "tool_calls")
    return list(calls or [])


__all__ = [
    "Planner",
    "PromptBuilder",
    "ReasoningClient",
    "extract_content",
    "extract_tool_calls",
]
