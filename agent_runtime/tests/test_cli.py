from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from agent_runtime.cli import app
from agent_runtime.src.core.types import Decision
from agent_runtime.src.governance.audit import AuditLog


runner = CliRunner()


def _write_audit(path: Path) -> None:
    log = AuditLog(path=path)
    log.record(input="first goal", decision=Decision(action="search"), result={"done": True})
    log.record(
        input="second goal",
        decision={"continue": True, "reason": "Plan valid"},
        result={"done": False, "error": "Execution failed: down"},
    )


def test_fsm_command_lists_transitions():
    result = runner.invoke(app, ["fsm"])
    assert result.exit_code == 0
    assert "INTAKE -> PLAN" in result.stdout
    assert "OBSERVE -> LOOP_CHECK" in result.stdout
    assert "HALT -> (terminal)" in result.stdout


def test_fsm_command_json():
    result = runner.invoke(app, ["fsm", "--json"])
    assert result.exit_code == 0
    table = json.loads(result.stdout)
    assert table["LOOP_CHECK"] == ["EXECUTE", "FINALIZE", "HALT"]
    assert table["FINALIZE"] == []


def test_config_validate_success(tmp_path):
    path = tmp_path / "runtime.json"
    path.write_text(json.dumps({"max_iterations": 7}), encoding="utf-8")
    result = runner.invoke(app, ["config", "validate", str(path)])
    assert result.exit_code == 0
    assert json.loads(result.stdout)["max_iterations"] == 7


def test_config_validate_rejects_bad_values(tmp_path):
    path = tmp_path / "runtime.json"
    path.write_text(json.dumps({"max_iterations": 0}), encoding="utf-8")
    result = runner.invoke(app, ["config", "validate", str(path)])
    assert result.exit_code == 1


def test_config_validate_rejects_invalid_json(tmp_path):
    path = tmp_path / "runtime.json"
    path.write_text("{", encoding="utf-8")
    result = runner.invoke(app, ["config", "validate", str(path)])
    assert result.exit_code == 1


def test_config_validate_missing_file(tmp_path):
    result = runner.invoke(app, ["config", "validate", str(tmp_path / "missing.json")])
    assert result.exit_code == 1


def test_audit_show_summarises_records(tmp_path):
    path = tmp_path / "audit.jsonl"
    _write_audit(path)
    result = runner.invoke(app, ["audit", "show", str(path)])
    assert result.exit_code == 0
    assert "Records: 2 (finalized=1, halted=1)" in result.stdout
    assert "[ok] action=search input=first goal" in result.stdout
    assert "[halted] action=Plan valid" in result.stdout
    assert "error=Execution failed: down" in result.stdout


def test_audit_show_limit(tmp_path):
    path = tmp_path / "audit.jsonl"
    _write_audit(path)
    result = runner.invoke(app, ["audit", "show", str(path), "--limit", "1"])
    assert result.exit_code == 0
    assert "first goal" not in result.stdout
    assert "second goal" in result.stdout


def test_audit_show_rejects_schema_violations(tmp_path):
    path = tmp_path / "audit.jsonl"
    path.write_text(json.dumps({"time": "t", "unexpected": 1}) + "\n", encoding="utf-8")
    result = runner.invoke(app, ["audit", "show", str(path)])
    assert result.exit_code == 1


def test_audit_show_rejects_invalid_json(tmp_path):
    path = tmp_path / "audit.jsonl"
    path.write_text("not json\n", encoding="utf-8")
    result = runner.invoke(app, ["audit", "show", str(path)])
    assert result.exit_code == 1
