from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping

from .errors import ExecutionError
from .state import State
from .telemetry import Telemetry
from .tools import ToolRegistry
from .types import Decision


TOOL_CALLED = "tool_called"
STEP_COMPLETED = "step_completed"


def normalize_params(params: Mapping[Any, Any] | None) -> Dict[str, Any]:
    """Return ``params`` with every mapping key coerced to ``str``, recursively."""

    if not params:
        return {}
    return {str(getattr(key, "value", key)): _normalize_value(value) for key, value in params.items()}


def _normalize_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return normalize_params(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_value(item) for item in value]
    return value


@dataclass
class Executor:
    """Dispatch validated decisions to the tool registry.

    ``finish`` is answered with ``{"done": True}`` without consulting the
    registry.  Every other action is looked up by name and called with its
    normalised parameters as keyword arguments.  Lookup and invocation
    failures surface as :class:`ExecutionError` carrying the underlying
    message.  After a successful call the generic ``tool_called`` and
    ``step_completed`` signals are marked on the state's progress tracker;
    this is the only place the runtime writes progress signals.
    """

    tool_registry: ToolRegistry
    telemetry: Telemetry | None = None

    def _emit(self, event: str, **payload: Any) -> None:
        if self.telemetry is not None:
            self.telemetry.emit(event, **payload)

    def execute(self, decision: Decision, state: Any = None) -> Any:
        if decision.is_finish:
            return {"done": True}
        params = normalize_params(decision.params)
        try:
            result = self.tool_registry.call(str(decision.action), params)
        except Exception as exc:
            self._emit("executor.tool_failed", tool=decision.action, error=str(exc))
            raise ExecutionError(str(exc)) from exc

        if isinstance(state, State):
            state.progress.mark(TOOL_CALLED)
            state.progress.mark(STEP_COMPLETED)
        self._emit("executor.tool_called", tool=decision.action, params=sorted(params))
        return result


__all__ = ["Executor", "STEP_COMPLETED", "TOOL_CALLED", "normalize_params"]
