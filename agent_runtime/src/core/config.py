from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .fsm import DEFAULT_MAX_ITERATIONS
from .telemetry import JsonLinesSink, Telemetry
from ..governance.audit import AuditLog
from ..governance.policy import DEFAULT_MIN_CONFIDENCE, Policy


class RuntimeConfig(BaseModel):
    """Tunable settings shared by :class:`Orchestrator` and :class:`Agent`."""

    model_config = ConfigDict(extra="forbid")

    max_iterations: int = Field(default=DEFAULT_MAX_ITERATIONS, ge=1)
    min_confidence: float = Field(default=DEFAULT_MIN_CONFIDENCE, ge=0.0, le=1.0)
    allowed_actions: Optional[List[str]] = None
    summarize_on_finalize: bool = False
    audit_path: Optional[Path] = None
    telemetry_path: Optional[Path] = None

    @field_validator("allowed_actions")
    @classmethod
    def _strip_actions(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return None
        actions = [action.strip() for action in value if action and action.strip()]
        if not actions:
            raise ValueError("allowed_actions must list at least one action")
        return actions

    @classmethod
    def load(cls, path: Path | str) -> "RuntimeConfig":
        content = Path(path).read_text(encoding="utf-8")
        return cls.model_validate(json.loads(content))

    def build_policy(self) -> Policy:
        return Policy(min_confidence=self.min_confidence, allowed_actions=self.allowed_actions)

    def build_audit_log(self) -> Optional[AuditLog]:
        if self.audit_path is None:
            return None
        return AuditLog(path=self.audit_path)

    def build_telemetry(self) -> Optional[Telemetry]:
        if self.telemetry_path is None:
            return None
        return Telemetry(sinks=[JsonLinesSink(self.telemetry_path)])


__all__ = ["RuntimeConfig"]
