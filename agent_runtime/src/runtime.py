"""High level entrypoints that compose the runtime subsystems."""
from __future__ import annotations

from agent_runtime.src.core.agent import Agent
from agent_runtime.src.core.config import RuntimeConfig
from agent_runtime.src.core.errors import (
    AgentRuntimeError,
    ExecutionError,
    InvalidTransition,
    MaxIterationsExceeded,
    PlannerError,
    PolicyViolation,
    ToolArgumentsError,
    ToolNotFound,
    UnknownAction,
)
from agent_runtime.src.core.executor import Executor
from agent_runtime.src.core.fsm import FSM, FSMState, TRANSITIONS
from agent_runtime.src.core.orchestrator import Orchestrator
from agent_runtime.src.core.planner import Planner, ReasoningClient
from agent_runtime.src.core.progress import ProgressTracker
from agent_runtime.src.core.state import State
from agent_runtime.src.core.telemetry import InMemorySink, JsonLinesSink, Telemetry
from agent_runtime.src.core.tools import ToolRegistry, ToolSpec
from agent_runtime.src.core.types import Decision, Message, ToolCall, TransitionRecord
from agent_runtime.src.governance.audit import AuditLog, AuditRecord, InMemoryAuditLog
from agent_runtime.src.governance.policy import ConvergencePolicy, Policy

__all__ = (
    "Agent",
    "AgentRuntimeError",
    "AuditLog",
    "AuditRecord",
    "ConvergencePolicy",
    "Decision",
    "ExecutionError",
    "Executor",
    "FSM",
    "FSMState",
    "InMemoryAuditLog",
    "InMemorySink",
    "InvalidTransition",
    "JsonLinesSink",
    "MaxIterationsExceeded",
    "Message",
    "Orchestrator",
    "Planner",
    "PlannerError",
    "Policy",
    "PolicyViolation",
    "ProgressTracker",
    "ReasoningClient",
    "RuntimeConfig",
    "State",
    "TRANSITIONS",
    "Telemetry",
    "ToolArgumentsError",
    "ToolCall",
    "ToolNotFound",
    "ToolRegistry",
    "ToolSpec",
    "TransitionRecord",
    "UnknownAction",
)
