"""Accumulating key-value state shared by the runtime handlers."""

from __future__ import annotations

import copy
from typing import Any, Dict, Mapping, MutableMapping, Optional

from .progress import ProgressTracker


def deep_merge(target: MutableMapping[str, Any], source: Mapping[str, Any]) -> None:
    """Merge ``source`` into ``target`` in place.

    Keys holding mappings on both sides merge recursively; any other incoming
    value replaces the existing one.  Incoming values are deep-copied so the
    caller's payload never aliases the merged result.
    """

    for key, value in source.items():
        existing = target.get(key)
        if isinstance(existing, MutableMapping) and isinstance(value, Mapping):
            deep_merge(existing, value)
        else:
            target[key] = copy.deepcopy(value)


class State:
    """Explicit run state with deep-merge updates and isolated snapshots.

    ``apply`` accepts the result payloads produced by tools and handlers.
    Mapping payloads are merged into the accumulated data; anything else is
    ignored.  ``snapshot`` hands out deep copies so readers can never mutate
    the live container.
    """

    def __init__(
        self,
        data: Optional[Mapping[str, Any]] = None,
        *,
        progress: Optional[ProgressTracker] = None,
    ) -> None:
        self._data: Dict[str, Any] = copy.deepcopy(dict(data or {}))
        self.progress = progress if progress is not None else ProgressTracker()

    def apply(self, result: Any) -> None:
        if not isinstance(result, Mapping):
            return
        deep_merge(self._data, result)

    def snapshot(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)

    def get(self, key: str, default: Any = None) -> Any:
        """Return a copy of a single top-level value."""

        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def discard(self, *keys: str) -> None:
        for key in keys:
            self._data.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        return f"State(keys={sorted(self._data)!r}, progress={self.progress.signals!r})"


__all__ = ["State", "deep_merge"]
