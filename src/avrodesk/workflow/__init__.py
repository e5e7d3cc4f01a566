"""Message-driven workflow: session state, events, commands and the engine."""

from avrodesk.workflow.engine import WorkflowEngine, step
from avrodesk.workflow.runner import CommandRunner, run_session
from avrodesk.workflow.state import Session

__all__ = ["WorkflowEngine", "step", "CommandRunner", "run_session", "Session"]
