from __future__ import annotations

import pytest

from agent_runtime.src.core import errors
from agent_runtime.src.core.fsm import FSMState


@pytest.mark.parametrize(
    "error_cls",
    [
        errors.PolicyViolation,
        errors.UnknownAction,
        errors.ToolNotFound,
        errors.ToolArgumentsError,
        errors.PlannerError,
        errors.ExecutionError,
    ],
)
def test_errors_share_a_base(error_cls):
    assert issubclass(error_cls, errors.AgentRuntimeError)


def test_halt_errors_are_execution_errors():
    assert issubclass(errors.MaxIterationsExceeded, errors.ExecutionError)
    assert issubclass(errors.InvalidTransition, errors.ExecutionError)


def test_invalid_transition_message():
    exc = errors.InvalidTransition(FSMState.OBSERVE, FSMState.HALT)
    assert str(exc) == "Invalid transition from OBSERVE to HALT"
    assert exc.current is FSMState.OBSERVE
    assert exc.attempted is FSMState.HALT


def test_public_api_is_exported_lazily():
    import agent_runtime

    assert agent_runtime.ExecutionError is errors.ExecutionError
    assert "Orchestrator" in dir(agent_runtime)
    with pytest.raises(AttributeError):
        agent_runtime.DoesNotExist
