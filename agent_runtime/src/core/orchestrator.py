from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, NoReturn, Optional, Type

from .config import RuntimeConfig
from .errors import ExecutionError, MaxIterationsExceeded, PolicyViolation, ToolArgumentsError
from .executor import Executor
from .fsm import DEFAULT_MAX_ITERATIONS, FSM, FSMState
from .planner import Planner, extract_content, extract_tool_calls
from .state import State
from .telemetry import Telemetry, now_iso
from .tools import ToolRegistry
from .types import Decision, Message, ToolCall
from ..governance.audit import AuditSink
from ..governance.policy import Policy


# Keys written during a run; a caller-supplied State keeps everything else.
RUN_SCOPED_KEYS = ("plan", "decision", "pending_tool_calls", "observations", "started_at")


@dataclass
class Orchestrator:
    """Drive a run through the workflow FSM, one handler per state.

    ``run`` resets the machine, seeds the transcript and loops over the
    handler of the current state until FINALIZE or HALT is reached.  Only
    EXECUTE talks to the model with tools enabled and only EXECUTE advances
    the iteration counter, so the configured ceiling bounds every run no
    matter what the model proposes.  Handlers turn collaborator failures into
    HALT transitions; the HALT handler is the single place that raises.
    """

    planner: Planner
    policy: Policy
    executor: Executor
    state: State | None = None
    tool_registry: ToolRegistry | None = None
    audit_log: AuditSink | None = None
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    telemetry: Telemetry | None = None
    summarize_on_finalize: bool = False

    fsm: FSM = field(init=False, repr=False)
    messages: List[Message] = field(init=False, default_factory=list, repr=False)
    plan: Optional[Dict[str, Any]] = field(init=False, default=None, repr=False)
    decision: Optional[Dict[str, Any]] = field(init=False, default=None, repr=False)

    _owns_state: bool = field(init=False, default=False, repr=False)
    _run_id: Optional[str] = field(init=False, default=None, repr=False)
    _run_telemetry: Optional[Telemetry] = field(init=False, default=None, repr=False)
    _halt_error: Type[Exception] = field(init=False, default=ExecutionError, repr=False)
    _pass_observations: int = field(init=False, default=0, repr=False)
    _finish_requested: bool = field(init=False, default=False, repr=False)
    _handlers: Dict[FSMState, Callable[[], None]] = field(init=False, default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        self.fsm = FSM(max_iterations=self.max_iterations)
        self._owns_state = self.state is None
        if self.state is None:
            self.state = State()
        if self.tool_registry is None:
            self.tool_registry = self.executor.tool_registry
        self._handlers = {
            FSMState.PLAN: self._handle_plan,
            FSMState.DECIDE: self._handle_decide,
            FSMState.EXECUTE: self._handle_execute,
            FSMState.OBSERVE: self._handle_observe,
            FSMState.LOOP_CHECK: self._handle_loop_check,
        }

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
    ) -> "Orchestrator":
        telemetry = telemetry or config.build_telemetry()
        return cls(
            planner=planner,
            policy=policy or config.build_policy(),
            executor=Executor(tool_registry=tool_registry, telemetry=telemetry),
            state=state,
            tool_registry=tool_registry,
            audit_log=audit_log or config.build_audit_log(),
            max_iterations=config.max_iterations,
            telemetry=telemetry,
            summarize_on_finalize=config.summarize_on_finalize,
        )

    def _emit(self, event: str, **payload: Any) -> None:
        if self._run_telemetry is not None:
            self._run_telemetry.emit(event, **payload)

    def run(self, initial_input: str) -> Dict[str, Any]:
        self.fsm.reset()
        self.messages = []
        self.plan = None
        self.decision = None
        self._halt_error = ExecutionError
        self._pass_observations = 0
        self._finish_requested = False
        if self._owns_state:
            self.state = State()
        else:
            self.state.progress.clear()
            self.state.discard(*RUN_SCOPED_KEYS)
        self._run_id = uuid.uuid4().hex
        if self.telemetry is not None:
            self._run_telemetry = self.telemetry.bind(run_id=self._run_id)
        self._emit("orchestrator.run_started", input=initial_input, max_iterations=self.fsm.max_iterations)

        while True:
            current = self.fsm.state
            if current is FSMState.INTAKE:
                self._handle_intake(initial_input)
            elif current is FSMState.FINALIZE:
                return self._handle_finalize()
            elif current is FSMState.HALT:
                self._handle_halt()
            else:
                self._handlers[current]()

    # -- transitions -------------------------------------------------------

    def _transition(self, target: FSMState, reason: str) -> None:
        record = self.fsm.transition_to(target, reason=reason)
        self._emit("orchestrator.transition", **record.to_dict())

    def _halt(self, reason: str, error: Type[Exception] = ExecutionError) -> None:
        self._halt_error = error
        self._transition(FSMState.HALT, reason)

    # -- handlers ----------------------------------------------------------

    def _handle_intake(self, initial_input: str) -> None:
        self.messages = [Message(role="user", content=str(initial_input))]
        self.state.apply({"goal": initial_input, "started_at": now_iso()})
        self._transition(FSMState.PLAN, "Input normalized")

    def _handle_plan(self) -> None:
        goal_input = self.messages[0].content
        try:
            plan_decision = self.planner.plan(goal_input, self.state.snapshot())
            self.policy.validate(plan_decision, state=self.state)
        except PolicyViolation as exc:
            self._halt(f"Plan rejected: {exc}", PolicyViolation)
            return
        except Exception as exc:
            self._halt(f"Plan failed: {exc}")
            return

        params = dict(plan_decision.params)
        self.plan = {
            "goal": params.get("goal") or goal_input,
            "required_capabilities": _as_list(params.get("required_capabilities")),
            "initial_steps": _as_list(params.get("initial_steps")),
        }
        self.state.apply({"plan": self.plan})
        self._transition(FSMState.DECIDE, "Plan created")

    def _handle_decide(self) -> None:
        goal = (self.plan or {}).get("goal")
        if isinstance(goal, str):
            goal = goal.strip()
        if goal:
            self.decision = {"continue": True, "reason": "Plan valid, proceeding to execution"}
            self.state.apply({"decision": self.decision})
            self._transition(FSMState.EXECUTE, "Decision: continue")
        else:
            self.decision = {"continue": False, "reason": "Invalid plan"}
            self.state.apply({"decision": self.decision})
            self._halt("Invalid plan")

    def _handle_execute(self) -> None:
        try:
            self.fsm.increment_iteration()
        except MaxIterationsExceeded as exc:
            self._halt(str(exc), MaxIterationsExceeded)
            return

        try:
            response = self.planner.chat_raw(self.messages, tools=self.tool_registry.definitions())
            tool_calls = [_pending_call(raw) for raw in extract_tool_calls(response)]
        except Exception as exc:
            self._halt(f"Execution failed: {exc}")
            return

        if tool_calls:
            self.state.apply({"pending_tool_calls": tool_calls})
            self._transition(FSMState.OBSERVE, f"Tool calls requested: {len(tool_calls)}")
            return
        self.messages.append(Message(role="assistant", content=extract_content(response)))
        self._transition(FSMState.FINALIZE, "No tool calls, execution complete")

    def _handle_observe(self) -> None:
        pending = self.state.get("pending_tool_calls") or []
        outcomes = [self._observe_call(raw) for raw in pending]
        observations = list(self.state.get("observations") or [])
        observations.extend(outcomes)
        self.state.apply({"observations": observations, "pending_tool_calls": None})
        self._pass_observations = len(outcomes)
        self._transition(FSMState.LOOP_CHECK, f"Tools executed, {len(outcomes)} results")

    def _observe_call(self, raw: Any) -> Dict[str, Any]:
        try:
            call = ToolCall.from_raw(raw)
        except ToolArgumentsError as exc:
            ident = raw.get("id") if isinstance(raw, Mapping) else None
            outcome: Dict[str, Any] = {"tool_call_id": ident or uuid.uuid4().hex[:16], "name": None, "error": str(exc)}
            self._record_observation(outcome)
            return outcome

        outcome = {"tool_call_id": call.id or uuid.uuid4().hex[:16], "name": call.name}
        try:
            decision = Decision(action=call.name, params=call.parse_arguments())
            self.policy.validate(decision, state=self.state)
            result = self.executor.execute(decision, state=self.state)
        except Exception as exc:
            outcome["error"] = str(exc)
        else:
            outcome["result"] = result
            if decision.is_finish:
                self._finish_requested = True
        self._record_observation(outcome)
        return outcome

    def _record_observation(self, outcome: Dict[str, Any]) -> None:
        self.messages.append(
            Message(
                role="tool",
                content=json.dumps(outcome, default=str),
                tool_call_id=outcome["tool_call_id"],
            )
        )
        self._emit(
            "orchestrator.tool_observed",
            tool=outcome.get("name"),
            tool_call_id=outcome["tool_call_id"],
            ok="error" not in outcome,
        )

    def _handle_loop_check(self) -> None:
        if self.fsm.iteration_count > self.fsm.max_iterations:
            self._halt(f"Max iterations ({self.fsm.max_iterations}) exceeded", MaxIterationsExceeded)
            return
        try:
            converged = self.policy.converged(self.state)
        except Exception as exc:
            self._halt(f"Convergence check failed: {exc}")
            return

        if converged:
            self._transition(FSMState.FINALIZE, "Policy converged")
        elif self._finish_requested:
            self._transition(FSMState.FINALIZE, "Finish requested")
        elif self._pass_observations:
            self._transition(FSMState.EXECUTE, "Continuing loop")
        else:
            self._transition(FSMState.FINALIZE, "No observations, finalizing")

    def _handle_finalize(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.summarize_on_finalize:
            try:
                summary = self.planner.chat(self.messages)
            except Exception as exc:
                result["summary_error"] = str(exc)
            else:
                self.messages.append(Message(role="assistant", content=summary))

        result.update(
            {
                "done": True,
                "iterations": self.fsm.iteration_count,
                "state": self.state.snapshot(),
                "progress": self.state.progress.snapshot(),
                "fsm_history": self.fsm.history_payload(),
                "final_message": self._last_assistant_message(),
            }
        )
        if self.audit_log is not None:
            self.audit_log.record(input=self._initial_message(), decision=self.decision, result=result)
        self._emit("orchestrator.run_finalized", iterations=self.fsm.iteration_count)
        return result

    def _handle_halt(self) -> NoReturn:
        reason = self.fsm.last_reason or "Unknown error"
        if self.audit_log is not None:
            self.audit_log.record(
                input=self._initial_message(),
                decision=self.decision,
                result={
                    "done": False,
                    "error": reason,
                    "iterations": self.fsm.iteration_count,
                    "state": self.state.snapshot(),
                    "fsm_history": self.fsm.history_payload(),
                },
            )
        self._emit("orchestrator.run_halted", reason=reason, iterations=self.fsm.iteration_count)
        raise self._halt_error(f"Agent halted: {reason}")

    def _initial_message(self) -> Optional[str]:
        if not self.messages:
            return None
        return self.messages[0].content

    def _last_assistant_message(self) -> Optional[str]:
        for message in reversed(self.messages):
            if message.role == "assistant":
                return message.content
        return None


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _pending_call(raw: Any) -> Dict[str, Any]:
    try:
        return ToolCall.from_raw(raw).to_dict()
    except ToolArgumentsError:
        # Left unnamed so OBSERVE reports it as a per-call error.
        ident = raw.get("id") if isinstance(raw, Mapping) else getattr(raw, "id", None)
        return {"id": ident, "function": {"name": None, "arguments": "{}"}}


__all__ = ["Orchestrator", "RUN_SCOPED_KEYS"]
