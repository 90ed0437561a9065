# path: src/runtime/failure_mitigation.py

"""
Failure handling helpers for the task agent.

This module centralizes how failures are turned into structured monitoring
events. It DOES NOT try to detect failures itself; the components that hit
trouble call these helpers and then decide what to do next.

Failure classes covered:

1) Task runs (QueueRunner)
   - emit_task_failure(...) for every failed attempt (retry follows)
   - emit_task_dead_lettered(...) when the retry cap gives up on a task

2) Connection (game client session)
   - emit_connection_lost(...) on end / kicked / error

3) Chat commands
   - emit_command_error(...) when a command handler raised
"""

from __future__ import annotations  # forward type references in type hints

from typing import Any, Dict, Optional  # type hints

from monitoring.bus import EventBus                    # event bus used across system
from monitoring.events import EventType                # monitoring event type enum
from monitoring.logger import log_event                # convenience helper for publishing
from spec.types import TaskDescriptor, task_to_dict    # task payloads


JsonDict = Dict[str, Any]


# ------------------------------------------------------------------------------
# 1. Task runs
# ------------------------------------------------------------------------------

def emit_task_failure(
    bus: Optional[EventBus],
    *,
    task: TaskDescriptor,
    attempt: int,
    error: BaseException,
    backoff_s: Optional[float] = None,
    correlation_id: Optional[str] = None,
) -> None:
    """
    Emit a TASK_FAILED event for one failed attempt of the active task.

    `backoff_s` is the delay before the next attempt, or None when the
    task will not be retried.
    """
    payload: JsonDict = {
        "task": task_to_dict(task),
        "attempt": attempt,
        "error_type": type(error).__name__,
        "error": str(error),
        "backoff_s": backoff_s,
    }

    log_event(
        bus=bus,
        module="agent.loop",
        event_type=EventType.TASK_FAILED,
        message=f"Task {task.type} failed: {error}",
        payload=payload,
        correlation_id=correlation_id,
    )


def emit_task_dead_lettered(
    bus: Optional[EventBus],
    *,
    task: TaskDescriptor,
    attempts: int,
    last_error: BaseException,
    correlation_id: Optional[str] = None,
) -> None:
    payload: JsonDict = {
        "task": task_to_dict(task),
        "attempts": attempts,
        "last_error": str(last_error),
    }

    log_event(
        bus=bus,
        module="agent.loop",
        event_type=EventType.TASK_DEAD_LETTERED,
        message=f"Task {task.type} abandoned after {attempts} attempts",
        payload=payload,
        correlation_id=correlation_id,
    )


# ------------------------------------------------------------------------------
# 2. Connection
# ------------------------------------------------------------------------------

def emit_connection_lost(
    bus: Optional[EventBus],
    *,
    event: str,
    reason: Any = None,
    will_reconnect: bool = False,
) -> None:
    """
    Emit a CONNECTION event for a lost session.

    `event` is the client event that ended it ("end", "kicked", "error").
    """
    payload: JsonDict = {
        "subtype": "CONNECTION_LOST",
        "event": event,
        "reason": repr(reason) if isinstance(reason, BaseException) else reason,
        "will_reconnect": will_reconnect,
    }

    log_event(
        bus=bus,
        module="app.runtime",
        event_type=EventType.CONNECTION,
        message=f"Connection lost ({event})",
        payload=payload,
        correlation_id=None,
    )


# ------------------------------------------------------------------------------
# 3. Chat commands
# ------------------------------------------------------------------------------

def emit_command_error(
    bus: Optional[EventBus],
    *,
    username: str,
    command: str,
    error: BaseException,
) -> None:
    payload: JsonDict = {
        "subtype": "COMMAND_ERROR",
        "username": username,
        "command": command,
        "error": repr(error),
    }

    log_event(
        bus=bus,
        module="agent.commands",
        event_type=EventType.COMMAND,
        message=f"Command {command!r} failed",
        payload=payload,
        correlation_id=None,
    )


__all__ = [
    "emit_task_failure",
    "emit_task_dead_lettered",
    "emit_connection_lost",
    "emit_command_error",
]
