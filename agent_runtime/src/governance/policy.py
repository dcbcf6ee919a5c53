from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence

from ..core.errors import PolicyViolation
from ..core.types import FINISH_ACTION, Decision


DEFAULT_MIN_CONFIDENCE = 0.5


@dataclass
class Policy:
    """Authority that gates decisions and decides when a run has converged.

    The two responsibilities are deliberately separate:

    ``validate``
        Static checks applied to every decision before anything acts on it.
        The action must be present and non-empty, a reported confidence must
        reach ``min_confidence`` and, when ``allowed_actions`` is configured,
        the action must be listed (``finish`` is always allowed).

    ``converged``
        A predicate over the accumulated state that tells the orchestrator to
        stop looping.  The base implementation never converges; applications
        subclass and inspect ``state.progress`` or the state contents.
    """

    min_confidence: float = DEFAULT_MIN_CONFIDENCE
    allowed_actions: Optional[Sequence[str]] = None

    def validate(self, decision: Decision, state: Any = None) -> None:
        self._validate_action(decision)
        self._validate_confidence(decision)

    def converged(self, state: Any) -> bool:
        return False

    def _validate_action(self, decision: Decision) -> None:
        action = decision.action
        if action is None or not str(action).strip():
            raise PolicyViolation("Missing action")
        if self.allowed_actions is None or action == FINISH_ACTION:
            return
        if action not in set(self.allowed_actions):
            raise PolicyViolation(f"Action not allowed: {action}")

    def _validate_confidence(self, decision: Decision) -> None:
        confidence = decision.confidence
        if confidence is None:
            return
        # NaN fails every comparison and is rejected here.
        if not confidence >= self.min_confidence:
            raise PolicyViolation(f"Low confidence: {confidence} < {self.min_confidence}")


@dataclass
class ConvergencePolicy(Policy):
    """Policy that converges once every required progress signal is marked."""

    required_signals: Iterable[str] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        self.required_signals = tuple(str(signal) for signal in self.required_signals)
        if not self.required_signals:
            raise ValueError("ConvergencePolicy requires at least one signal")

    def converged(self, state: Any) -> bool:
        progress = getattr(state, "progress", None)
        if progress is None:
            return False
        return progress.includes(*self.required_signals)


__all__ = ["ConvergencePolicy", "DEFAULT_MIN_CONFIDENCE", "Policy"]
