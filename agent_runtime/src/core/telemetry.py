"""Structured telemetry used across the runtime in place of ad-hoc logging."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterable, List, MutableMapping, Protocol


class TelemetrySink(Protocol):
    """A destination for telemetry events."""

    def write(self, event: Dict[str, Any]) -> None:
        """Persist or forward a telemetry event."""


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Telemetry:
    """Dispatcher that fans events out to the configured sinks."""

    sinks: Iterable[TelemetrySink] = field(default_factory=tuple)
    context: MutableMapping[str, Any] = field(default_factory=dict)

    def bind(self, **context: Any) -> "Telemetry":
        """Return a dispatcher sharing these sinks with ``context`` added to every event."""

        merged = dict(self.context)
        merged.update(context)
        return Telemetry(sinks=self.sinks, context=merged)

    def emit(self, event: str, **payload: Any) -> None:
        if not self.sinks:
            return
        base: Dict[str, Any] = {"event": event, "time": now_iso(), "component": event.split(".", 1)[0]}
        if self.context:
            base.update(self.context)
        base.update(payload)
        for sink in self.sinks:
            try:
                sink.write(dict(base))
            except Exception:  # pragma: no cover - telemetry failures must not break runs
                continue


@dataclass
class InMemorySink:
    """Sink that keeps telemetry in memory for inspection in tests."""

    events: List[Dict[str, Any]] = field(default_factory=list)

    def write(self, event: Dict[str, Any]) -> None:
        self.events.append(dict(event))

    def named(self, event: str) -> List[Dict[str, Any]]:
        return [entry for entry in self.events if entry.get("event") == event]


@dataclass
class JsonLinesSink:
    """Append-only JSONL sink for telemetry events."""

    path: Path
    _lock: Lock = field(default_factory=Lock, init=False)

    def write(self, event: Dict[str, Any]) -> None:
        line = json.dumps(event, sort_keys=True, default=str)
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")


__all__ = [
    "InMemorySink",
    "JsonLinesSink",
    "Telemetry",
    "TelemetrySink",
    "now_iso",
]
