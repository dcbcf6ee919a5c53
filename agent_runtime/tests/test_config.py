from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from agent_runtime.src.core.config import RuntimeConfig
from agent_runtime.src.core.telemetry import JsonLinesSink
from agent_runtime.src.governance.audit import AuditLog


def test_defaults():
    config = RuntimeConfig()
    assert config.max_iterations == 50
    assert config.min_confidence == 0.5
    assert config.allowed_actions is None
    assert config.build_audit_log() is None
    assert config.build_telemetry() is None


def test_load_and_build_collaborators(tmp_path):
    path = tmp_path / "runtime.json"
    path.write_text(
        json.dumps(
            {
                "max_iterations": 5,
                "min_confidence": 0.7,
                "allowed_actions": [" search ", "fetch"],
                "audit_path": str(tmp_path / "audit.jsonl"),
                "telemetry_path": str(tmp_path / "telemetry.jsonl"),
            }
        ),
        encoding="utf-8",
    )
    config = RuntimeConfig.load(path)
    assert config.allowed_actions == ["search", "fetch"]

    policy = config.build_policy()
    assert policy.min_confidence == 0.7
    assert policy.allowed_actions == ["search", "fetch"]

    audit = config.build_audit_log()
    assert isinstance(audit, AuditLog)
    assert audit.path == tmp_path / "audit.jsonl"

    telemetry = config.build_telemetry()
    sink = list(telemetry.sinks)[0]
    assert isinstance(sink, JsonLinesSink)
    telemetry.emit("config.loaded", ok=True)
    event = json.loads((tmp_path / "telemetry.jsonl").read_text(encoding="utf-8"))
    assert event["event"] == "config.loaded"


@pytest.mark.parametrize(
    "payload",
    [
        {"max_iterations": 0},
        {"min_confidence": 1.5},
        {"allowed_actions": ["  "]},
        {"unknown": True},
    ],
)
def test_invalid_settings_are_rejected(payload):
    with pytest.raises(ValidationError):
        RuntimeConfig.model_validate(payload)
