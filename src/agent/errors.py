# src/agent/errors.py
"""
Domain errors for the task agent.

Task failures (TaskError subclasses) are caught by the QueueRunner and
retried after a backoff. TaskCancelled is not a failure: it signals that a
global stop ended the run. Configuration and client errors are raised to
the process entrypoint.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


class TaskError(RuntimeError):
    """Base class for failures of a single task run."""


class PathfindingError(TaskError):
    """The movement planner reported an unrecoverable path state."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Pathfinder: {reason}")
        self.reason = reason


class GotoTimeoutError(TaskError):
    """The goal was not reached within the allotted time."""

    def __init__(self, timeout_s: float) -> None:
        super().__init__(f"Timeout while pathfinding ({timeout_s:g}s)")
        self.timeout_s = timeout_s


class UnknownTaskError(TaskError):
    def __init__(self, task_type: str) -> None:
        super().__init__(f"Unknown task type: {task_type}")
        self.task_type = task_type


class TaskCancelled(Exception):
    """Raised inside a task run when the global stop cancels it."""


@dataclass
class GameClientError(RuntimeError):
    """
    Error raised for connection-level failures of the game client.

    Examples:
        - failed to create or connect the client
        - adapter library missing
    """

    code: str
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"GameClientError(code={self.code!r}, details={self.details!r})"


__all__ = [
    "TaskError",
    "PathfindingError",
    "GotoTimeoutError",
    "UnknownTaskError",
    "TaskCancelled",
    "GameClientError",
]
