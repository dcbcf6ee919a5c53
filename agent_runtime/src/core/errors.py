"""Error taxonomy shared by the runtime components."""

from __future__ import annotations

from typing import Any


class AgentRuntimeError(Exception):
    """Base class for every error raised by the runtime."""


class PolicyViolation(AgentRuntimeError):
    """A decision failed static validation and must not be acted on."""


class UnknownAction(AgentRuntimeError):
    pass


class ToolNotFound(AgentRuntimeError):
    pass


class ToolArgumentsError(AgentRuntimeError):
    """Tool-call arguments could not be decoded into an object."""


class PlannerError(AgentRuntimeError):
    pass


class ExecutionError(AgentRuntimeError):
    """Tool dispatch failed or the run halted."""


class MaxIterationsExceeded(ExecutionError):
    pass


class InvalidTransition(ExecutionError):
    """A handler attempted a transition missing from the adjacency table."""

    def __init__(self, current: Any, attempted: Any) -> None:
        self.current = current
        self.attempted = attempted
        super().__init__(
            f"Invalid transition from {_state_name(current)} to {_state_name(attempted)}"
        )


def _state_name(state: Any) -> str:
    return str(getattr(state, "value", state))


__all__ = [
    "AgentRuntimeError",
    "ExecutionError",
    "InvalidTransition",
    "MaxIterationsExceeded",
    "PlannerError",
    "PolicyViolation",
    "ToolArgumentsError",
    "ToolNotFound",
    "UnknownAction",
]
