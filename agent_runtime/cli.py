from __future__ import annotations

"""Developer-facing CLI utilities for the agent runtime."""

import json
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional

import typer
from jsonschema import Draft202012Validator
from pydantic import ValidationError

from agent_runtime.src.core.config import RuntimeConfig
from agent_runtime.src.core.fsm import TERMINAL_STATES, TRANSITIONS, FSMState
from agent_runtime.src.governance.audit import AuditRecord


app = typer.Typer(help="Utility commands for inspecting agent runtime artefacts.")
config_app = typer.Typer(help="Validate runtime configuration files.")
audit_app = typer.Typer(help="Inspect JSONL audit logs.")
app.add_typer(config_app, name="config")
app.add_typer(audit_app, name="audit")


def _fail(message: str) -> NoReturn:
    typer.secho(message, err=True, fg=typer.colors.RED)
    raise typer.Exit(code=1)


def _truncate_text(value: Optional[str], limit: int = 80) -> Optional[str]:
    if not value:
        return None
    text = value.strip()
    if not text:
        return None
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


@app.command("fsm")
def show_fsm(as_json: bool = typer.Option(False, "--json", help="Emit the transition table as JSON.")) -> None:
    """Print the workflow state machine transition table."""

    if as_json:
        table = {state.value: sorted(target.value for target in TRANSITIONS[state]) for state in FSMState}
        typer.echo(json.dumps(table, indent=2))
        return
    for state in FSMState:
        targets = sorted(target.value for target in TRANSITIONS[state])
        if state in TERMINAL_STATES:
            typer.echo(f"{state.value} -> (terminal)")
        else:
            typer.echo(f"{state.value} -> {', '.join(targets)}")


@config_app.command("validate")
def validate_config(path: Path = typer.Argument(..., help="RuntimeConfig JSON file.")) -> None:
    """Validate a runtime configuration file and print the normalised settings."""

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        _fail(f"Failed to read config: {exc}")
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        _fail(f"Invalid JSON in {path}: {exc}")
    try:
        config = RuntimeConfig.model_validate(payload)
    except ValidationError as exc:
        typer.secho("Config validation failed:", err=True, fg=typer.colors.RED)
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(config.model_dump_json(indent=2))


def _load_audit_lines(path: Path) -> List[Dict[str, Any]]:
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        _fail(f"Failed to read audit log: {exc}")
    validator = Draft202012Validator(AuditRecord.model_json_schema())
    entries: List[Dict[str, Any]] = []
    for number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as exc:
            _fail(f"Invalid JSON on line {number}: {exc}")
        errors = sorted(validator.iter_errors(payload), key=lambda err: list(err.path))
        if errors:
            location = "/".join(str(part) for part in errors[0].path) or "<root>"
            _fail(f"Line {number} failed audit schema validation at {location}: {errors[0].message}")
        entries.append(payload)
    return entries


@audit_app.command("show")
def show_audit(
    path: Path = typer.Argument(..., help="JSONL audit log written by AuditLog."),
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Maximum records to list."),
) -> None:
    """Summarise an audit log."""

    records = [AuditRecord.model_validate(entry) for entry in _load_audit_lines(path)]
    outcomes: Counter[str] = Counter()
    for record in records:
        outcomes["finalized" if record.succeeded else "halted"] += 1
    typer.echo(f"Records: {len(records)} (finalized={outcomes['finalized']}, halted={outcomes['halted']})")
    for record in records[-limit:]:
        action = (record.decision or {}).get("action") or (record.decision or {}).get("reason") or "-"
        status = "ok" if record.succeeded else "halted"
        line = f"{record.time} [{status}] action={action}"
        text = _truncate_text(str(record.input) if record.input is not None else None)
        if text:
            line += f" input={text}"
        if isinstance(record.result, dict) and record.result.get("error"):
            line += f" error={_truncate_text(str(record.result['error']))}"
        typer.echo(line)


if __name__ == "__main__":  # pragma: no cover - manual invocation
    app()
