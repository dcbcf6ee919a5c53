from __future__ import annotations

from typing import Any, Dict, List

import pytest

from agent_runtime.src.core.agent import Agent, build_next_input
from agent_runtime.src.core.config import RuntimeConfig
from agent_runtime.src.core.errors import ExecutionError, MaxIterationsExceeded, PolicyViolation
from agent_runtime.src.core.executor import Executor
from agent_runtime.src.core.planner import Planner
from agent_runtime.src.core.state import State
from agent_runtime.src.core.telemetry import InMemorySink, Telemetry
from agent_runtime.src.core.tools import ToolRegistry
from agent_runtime.src.governance.audit import InMemoryAuditLog
from agent_runtime.src.governance.policy import ConvergencePolicy, Policy


SCHEMA = {"type": "object", "required": ["action"]}


class SequenceClient:
    def __init__(self, decisions: List[Dict[str, Any]]) -> None:
        self.decisions = list(decisions)
        self.prompts: List[str] = []

    def generate(self, *, prompt: str, schema: Dict[str, Any]) -> Any:
        self.prompts.append(prompt)
        return self.decisions.pop(0) if len(self.decisions) > 1 else self.decisions[0]

    def chat(self, *, messages, tools=None):  # pragma: no cover - unused by Agent
        return ""

    def chat_raw(self, *, messages, tools=None):  # pragma: no cover - unused by Agent
        return {}


def _prompt(*, input: str, state: Dict[str, Any]) -> str:
    return input


def _registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register("add", lambda a, b: {"sum": a + b})
    return registry


def build_agent(decisions: List[Dict[str, Any]], **kwargs: Any) -> tuple[Agent, SequenceClient]:
    client = SequenceClient(decisions)
    policy = kwargs.pop("policy", Policy())
    agent = Agent(
        planner=Planner(client, schema=SCHEMA, prompt_builder=_prompt),
        policy=policy,
        executor=Executor(tool_registry=_registry()),
        state=kwargs.pop("state", State()),
        **kwargs,
    )
    return agent, client


ADD = {"action": "add", "params": {"a": 1, "b": 2}, "confidence": 0.9}
FINISH = {"action": "finish"}


def test_step_applies_result_to_state():
    agent, _ = build_agent([ADD])
    assert agent.step("add numbers") == {"sum": 3}
    assert agent.state.snapshot() == {"sum": 3}
    assert agent.state.progress.includes("tool_called")


def test_run_stops_on_finish_and_uses_input_builder():
    agent, client = build_agent([ADD, FINISH])
    inputs: List[Any] = []

    def builder(result: Any, iteration: int) -> str:
        inputs.append((result, iteration))
        return f"next {iteration}"

    result = agent.run("start", input_builder=builder)
    assert result == {"done": True, "iterations": 2}
    assert inputs == [({"sum": 3}, 1)]
    assert client.prompts == ["start", "next 1"]


def test_default_input_builder():
    assert build_next_input({"sum": 3}, 1) == "Continue based on: {'sum': 3}"
    agent, client = build_agent([ADD, FINISH])
    agent.run("start")
    assert client.prompts[1] == "Continue based on: {'sum': 3}"


def test_run_stops_when_policy_converges():
    agent, client = build_agent([ADD], policy=ConvergencePolicy(required_signals=["tool_called"]))
    result = agent.run("start")
    assert result == {"sum": 3, "done": True, "iterations": 1}
    assert len(client.prompts) == 1


def test_run_stops_on_done_result():
    agent, _ = build_agent([{"action": "stop"}])
    agent.executor.tool_registry.register("stop", lambda: {"done": True, "answer": 42})
    assert agent.run("start") == {"done": True, "answer": 42, "iterations": 1}


def test_run_enforces_iteration_ceiling():
    agent, client = build_agent([ADD], max_iterations=2)
    with pytest.raises(MaxIterationsExceeded, match=r"Max iterations \(2\) exceeded"):
        agent.run("start")
    assert len(client.prompts) == 2


def test_errors_propagate_directly():
    agent, _ = build_agent([{"action": "add", "confidence": 0.2}])
    with pytest.raises(PolicyViolation):
        agent.run("start")
    agent, _ = build_agent([{"action": "missing"}])
    with pytest.raises(ExecutionError, match="Tool not found: missing"):
        agent.run("start")


def test_steps_are_audited_and_traced():
    audit = InMemoryAuditLog()
    sink = InMemorySink()
    agent, _ = build_agent([ADD, FINISH], audit_log=audit, telemetry=Telemetry(sinks=[sink]))
    agent.run("start")
    assert [record.decision["action"] for record in audit.records] == ["add", "finish"]
    assert audit.records[0].result == {"sum": 3}
    assert [event["action"] for event in sink.named("agent.step")] == ["add", "finish"]


def test_rejects_non_positive_ceiling():
    with pytest.raises(ValueError):
        build_agent([ADD], max_iterations=0)


def test_from_config():
    client = SequenceClient([FINISH])
    agent = Agent.from_config(
        RuntimeConfig(max_iterations=4, allowed_actions=["add"]),
        planner=Planner(client, schema=SCHEMA, prompt_builder=_prompt),
        tool_registry=_registry(),
    )
    assert agent.max_iterations == 4
    assert agent.policy.allowed_actions == ["add"]
    assert agent.run("go") == {"done": True, "iterations": 1}


def test_progress_is_cleared_between_runs():
    agent, client = build_agent([ADD], policy=ConvergencePolicy(required_signals=["tool_called"]))
    agent.run("first")
    client.decisions = [{"action": "missing"}]
    with pytest.raises(ExecutionError, match="Tool not found: missing"):
        agent.run("second")
    assert agent.state.progress.empty
