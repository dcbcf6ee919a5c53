"""Finite state machine backing the orchestrator.

The legal transitions live in a literal table rather than in branching
logic, so the legality check is a single lookup and the table itself can be
tested exhaustively.  The machine also owns the iteration counter: only the
EXECUTE handler increments it, and the increment refuses to move past the
configured ceiling.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from .errors import InvalidTransition, MaxIterationsExceeded
from .types import TransitionRecord


DEFAULT_MAX_ITERATIONS = 50


class FSMState(str, Enum):
    INTAKE = "INTAKE"
    PLAN = "PLAN"
    DECIDE = "DECIDE"
    EXECUTE = "EXECUTE"
    OBSERVE = "OBSERVE"
    LOOP_CHECK = "LOOP_CHECK"
    FINALIZE = "FINALIZE"
    HALT = "HALT"


TRANSITIONS: Dict[FSMState, FrozenSet[FSMState]] = {
    FSMState.INTAKE: frozenset({FSMState.PLAN}),
    FSMState.PLAN: frozenset({FSMState.DECIDE, FSMState.HALT}),
    FSMState.DECIDE: frozenset({FSMState.EXECUTE, FSMState.FINALIZE, FSMState.HALT}),
    FSMState.EXECUTE: frozenset({FSMState.OBSERVE, FSMState.FINALIZE, FSMState.HALT}),
    FSMState.OBSERVE: frozenset({FSMState.LOOP_CHECK}),
    FSMState.LOOP_CHECK: frozenset({FSMState.EXECUTE, FSMState.FINALIZE, FSMState.HALT}),
    FSMState.FINALIZE: frozenset(),
    FSMState.HALT: frozenset(),
}

TERMINAL_STATES: FrozenSet[FSMState] = frozenset({FSMState.FINALIZE, FSMState.HALT})


class FSM:
    """Explicit workflow state with a bounded iteration counter."""

    def __init__(self, max_iterations: int = DEFAULT_MAX_ITERATIONS) -> None:
        max_iterations = int(max_iterations)
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.max_iterations = max_iterations
        self._state = FSMState.INTAKE
        self._iteration_count = 0
        self._history: List[TransitionRecord] = []

    @property
    def state(self) -> FSMState:
        return self._state

    @property
    def iteration_count(self) -> int:
        return self._iteration_count

    @property
    def history(self) -> List[TransitionRecord]:
        return list(self._history)

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    @property
    def last_reason(self) -> Optional[str]:
        if not self._history:
            return None
        return self._history[-1].reason

    def can_transition_to(self, target: FSMState) -> bool:
        return FSMState(target) in TRANSITIONS[self._state]

    def transition_to(self, target: FSMState, reason: Optional[str] = None) -> TransitionRecord:
        target = FSMState(target)
        if target not in TRANSITIONS[self._state]:
            raise InvalidTransition(self._state, target)
        record = TransitionRecord(
            from_state=self._state,
            to_state=target,
            reason=reason,
            iteration=self._iteration_count,
        )
        self._history.append(record)
        self._state = target
        return record

    def increment_iteration(self) -> int:
        if self._iteration_count + 1 > self.max_iterations:
            raise MaxIterationsExceeded(f"Max iterations ({self.max_iterations}) exceeded")
        self._iteration_count += 1
        return self._iteration_count

    def reset(self) -> None:
        self._state = FSMState.INTAKE
        self._iteration_count = 0
        self._history = []

    def history_payload(self) -> List[Dict[str, object]]:
        return [record.to_dict() for record in self._history]


__all__ = [
    "DEFAULT_MAX_ITERATIONS",
    "FSM",
    "FSMState",
    "TERMINAL_STATES",
    "TRANSITIONS",
]
