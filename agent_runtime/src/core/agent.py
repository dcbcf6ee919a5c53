from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from .config import RuntimeConfig
from .errors import MaxIterationsExceeded
from .executor import Executor
from .fsm import DEFAULT_MAX_ITERATIONS
from .planner import Planner
from .state import State
from .telemetry import Telemetry
from .tools import ToolRegistry
from .types import Decision
from ..governance.audit import AuditSink
from ..governance.policy import Policy


InputBuilder = Callable[[Any, int], str]


def build_next_input(result: Any, iteration: int) -> str:
    return f"Continue based on: {result!r}"


@dataclass
class Agent:
    """Plan/validate/execute loop without the workflow FSM.

    Each step asks the planner for one decision, validates it, executes it
    and merges the result into the state.  ``run`` repeats steps until the
    decision is ``finish``, a result reports ``done``, the policy converges
    or the iteration ceiling is hit.  Unlike :class:`Orchestrator`, errors
    propagate to the caller as soon as they occur.
    """

    planner: Planner
    policy: Policy
    executor: Executor
    state: State
    audit_log: AuditSink | None = None
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    telemetry: Telemetry | None = None

    def __post_init__(self) -> None:
        if int(self.max_iterations) < 1:
            raise ValueError("max_iterations must be at least 1")

    @classmethod
    def from_config(
        cls,
        config: RuntimeConfig,
        *,
        planner: Planner,
        tool_registry: ToolRegistry,
        policy: Policy | None = None,
        state: State | None = None,
        audit_log: AuditSink | None = None,
        telemetry: Telemetry | None = None,
    ) -> "Agent":
        telemetry = telemetry or config.build_telemetry()
        return cls(
            planner=planner,
            policy=policy or config.build_policy(),
            executor=Executor(tool_registry=tool_registry, telemetry=telemetry),
            state=state or State(),
            audit_log=audit_log or config.build_audit_log(),
            max_iterations=config.max_iterations,
            telemetry=telemetry,
        )

    def _emit(self, event: str, **payload: Any) -> None:
        if self.telemetry is not None:
            self.telemetry.emit(event, **payload)

    def step(self, input_text: str) -> Any:
        result, _ = self._step(input_text)
        return result

    def _step(self, input_text: str) -> tuple[Any, Decision]:
        decision = self.planner.plan(input_text, self.state.snapshot())
        self.policy.validate(decision, state=self.state)
        result = self.executor.execute(decision, state=self.state)
        self.state.apply(result)
        if self.audit_log is not None:
            self.audit_log.record(input=input_text, decision=decision, result=result)
        self._emit("agent.step", action=decision.action)
        return result, decision

    def run(self, initial_input: str, input_builder: Optional[InputBuilder] = None) -> Dict[str, Any]:
        builder = input_builder or build_next_input
        self.state.progress.clear()
        current_input = initial_input
        iteration = 0
        while True:
            if iteration + 1 > self.max_iterations:
                raise MaxIterationsExceeded(f"Max iterations ({self.max_iterations}) exceeded")
            iteration += 1
            result, decision = self._step(current_input)
            if self._terminated(decision, result) or self.policy.converged(self.state):
                break
            current_input = builder(result, iteration)

        final: Dict[str, Any] = dict(result) if isinstance(result, Mapping) else {"result": result}
        final["done"] = True
        final["iterations"] = iteration
        return final

    @staticmethod
    def _terminated(decision: Decision, result: Any) -> bool:
        return decision.is_finish or (isinstance(result, Mapping) and result.get("done") is True)


__all__ = ["Agent", "InputBuilder", "build_next_input"]
