from __future__ import annotations

from types import SimpleNamespace

import pytest

from agent_runtime.src.core.errors import ToolArgumentsError
from agent_runtime.src.core.types import Decision, Message, ToolCall


def test_decision_from_mapping_and_json():
    decision = Decision.from_raw({"action": "search", "params": {"q": "x"}, "confidence": "0.7", "extra": 1})
    assert decision == Decision(action="search", params={"q": "x"}, confidence=0.7)
    assert Decision.from_raw('{"action": "finish"}').is_finish


def test_decision_ignores_malformed_params():
    assert Decision.from_raw({"action": "a", "params": [1, 2]}).params == {}


def test_decision_rejects_unsupported_payloads():
    with pytest.raises(ValueError):
        Decision.from_raw("not json")
    with pytest.raises(TypeError):
        Decision.from_raw([1, 2])


def test_decision_to_dict():
    assert Decision(action="a", params={"k": 1}).to_dict() == {"action": "a", "params": {"k": 1}, "confidence": None}


def test_tool_call_from_nested_shape():
    call = ToolCall.from_raw({"id": "c1", "function": {"name": "search", "arguments": '{"q": "x"}'}})
    assert call == ToolCall(name="search", raw_arguments='{"q": "x"}', id="c1")
    assert call.parse_arguments() == {"q": "x"}
    assert call.to_dict() == {"id": "c1", "function": {"name": "search", "arguments": '{"q": "x"}'}}


def test_tool_call_from_flat_shape_with_mapping_arguments():
    call = ToolCall.from_raw({"name": "search", "arguments": {"q": "x"}})
    assert call.id is None
    assert call.parse_arguments() == {"q": "x"}


def test_tool_call_from_object():
    raw = SimpleNamespace(id="c2", function=SimpleNamespace(name="ping", arguments=None))
    call = ToolCall.from_raw(raw)
    assert call.name == "ping"
    assert call.parse_arguments() == {}


def test_tool_call_requires_name():
    with pytest.raises(ToolArgumentsError):
        ToolCall.from_raw({"function": {"arguments": "{}"}})


@pytest.mark.parametrize("arguments", ["{bad json", "[1, 2]", '"text"'])
def test_tool_call_rejects_bad_arguments(arguments):
    with pytest.raises(ToolArgumentsError):
        ToolCall(name="search", raw_arguments=arguments).parse_arguments()


def test_blank_arguments_decode_to_empty_object():
    assert ToolCall(name="search", raw_arguments="  ").parse_arguments() == {}


def test_message_roles():
    assert Message(role="tool", content="{}", tool_call_id="c1").to_dict() == {
        "role": "tool",
        "content": "{}",
        "tool_call_id": "c1",
    }
    with pytest.raises(ValueError):
        Message(role="system", content="nope")
