from __future__ import annotations

from typing import Iterable, Iterator, List, Set


class ProgressTracker:
    """Set of opaque progress signals.

    The runtime never interprets the signals it stores.  Tools and
    application code mark them; a :class:`~agent_runtime.src.governance.policy.Policy`
    reads them when deciding whether a run has converged.
    """

    def __init__(self, signals: Iterable[str] = ()) -> None:
        self._signals: Set[str] = {str(signal) for signal in signals}

    def mark(self, signal: str) -> None:
        self._signals.add(str(signal))

    def includes(self, *signals: str) -> bool:
        """Return ``True`` when every given signal has been marked."""

        return all(str(signal) in self._signals for signal in signals)

    def __contains__(self, signal: object) -> bool:
        return str(signal) in self._signals

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._signals))

    def __len__(self) -> int:
        return len(self._signals)

    @property
    def signals(self) -> List[str]:
        return sorted(self._signals)

    @property
    def empty(self) -> bool:
        return not self._signals

    def clear(self) -> None:
        self._signals.clear()

    def snapshot(self) -> List[str]:
        return sorted(self._signals)

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        return f"ProgressTracker({self.signals!r})"


__all__ = ["ProgressTracker"]
