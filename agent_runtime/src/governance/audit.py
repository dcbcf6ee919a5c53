"""Audit trail of the inputs, decisions and results of each run.

Records are described with Pydantic so the JSONL files written here are
self-describing and can be validated again when they are read back, both in
tests and by the ``agent-runtime audit`` CLI.
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Mapping, Optional, Protocol, TextIO

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.telemetry import now_iso
from ..core.types import Decision


class AuditSink(Protocol):
    def record(self, *, input: Any, decision: Any, result: Any) -> None:  # pragma: no cover - interface
        ...


class AuditRecord(BaseModel):
    """One audited step or run outcome."""

    model_config = ConfigDict(extra="forbid")

    time: str = Field(default_factory=now_iso)
    input: Any = None
    decision: Optional[Dict[str, Any]] = None
    result: Any = None

    @field_validator("decision", mode="before")
    @classmethod
    def _coerce_decision(cls, value: Any) -> Any:
        return _decision_payload(value)

    @property
    def succeeded(self) -> bool:
        return not (isinstance(self.result, Mapping) and self.result.get("done") is False)


def _decision_payload(decision: Any) -> Optional[Dict[str, Any]]:
    if decision is None:
        return None
    if isinstance(decision, Decision):
        return decision.to_dict()
    if isinstance(decision, Mapping):
        return json.loads(json.dumps(dict(decision), default=str))
    to_dict = getattr(decision, "to_dict", None)
    if callable(to_dict):
        return dict(to_dict())
    return {"value": str(decision)}


def _jsonable(value: Any) -> Any:
    return json.loads(json.dumps(value, default=str))


def build_record(*, input: Any, decision: Any, result: Any) -> AuditRecord:
    return AuditRecord(input=_jsonable(input), decision=decision, result=_jsonable(result))


@dataclass
class AuditLog:
    """Write one JSON line per audited record.

    Records go to ``path`` when one is configured, otherwise to ``stream``
    (standard output by default).
    """

    path: Optional[Path] = None
    stream: Optional[TextIO] = None
    _lock: Lock = field(default_factory=Lock, init=False, repr=False)

    def record(self, *, input: Any, decision: Any = None, result: Any = None) -> AuditRecord:
        entry = build_record(input=input, decision=decision, result=result)
        line = entry.model_dump_json()
        with self._lock:
            if self.path is not None:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
            else:
                out = self.stream if self.stream is not None else sys.stdout
                out.write(line + "\n")
                out.flush()
        return entry


@dataclass
class InMemoryAuditLog:
    """Audit sink that keeps records in memory for inspection in tests."""

    records: List[AuditRecord] = field(default_factory=list)

    def record(self, *, input: Any, decision: Any = None, result: Any = None) -> AuditRecord:
        entry = build_record(input=input, decision=decision, result=result)
        self.records.append(entry)
        return entry


def load_audit_records(path: Path | str) -> List[AuditRecord]:
    """Read and validate every record of a JSONL audit file."""

    records: List[AuditRecord] = []
    with Path(path).open("r", encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            records.append(AuditRecord.model_validate_json(line))
    return records


__all__ = [
    "AuditLog",
    "AuditRecord",
    "AuditSink",
    "InMemoryAuditLog",
    "build_record",
    "load_audit_records",
]
