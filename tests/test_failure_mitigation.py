# path: tests/test_failure_mitigation.py

"""
Unit tests for runtime.failure_mitigation helpers.

These tests verify that the helpers:
- Emit events with the correct event_type.
- Carry the expected subtype and payload fields.
"""

from __future__ import annotations

from typing import List  # type hints

from agent.errors import PathfindingError    # task failure type
from monitoring.bus import EventBus          # event bus
from monitoring.events import EventType      # event types
from monitoring.events import MonitoringEvent  # event dataclass
from spec.types import GotoTask

from runtime.failure_mitigation import (
    emit_command_error,
    emit_connection_lost,
    emit_task_dead_lettered,
    emit_task_failure,
)


def _capture_events(bus: EventBus) -> List[MonitoringEvent]:
    """
    Subscribe a collector to the bus and return the underlying list.
    """
    captured: List[MonitoringEvent] = []

    def subscriber(evt: MonitoringEvent) -> None:
        captured.append(evt)

    bus.subscribe(subscriber)
    return captured


def test_emit_task_failure_and_dead_letter():
    bus = EventBus()
    captured = _capture_events(bus)
    task = GotoTask(1, 2, 3)
    error = PathfindingError("stuck")

    emit_task_failure(bus, task=task, attempt=2, error=error, backoff_s=2.0)
    emit_task_dead_lettered(bus, task=task, attempts=3, last_error=error)

    assert [e.event_type for e in captured] == [
        EventType.TASK_FAILED,
        EventType.TASK_DEAD_LETTERED,
    ]

    failed = captured[0].payload
    assert failed["task"] == {"type": "goto", "x": 1, "y": 2, "z": 3, "range": 1}
    assert failed["attempt"] == 2
    assert failed["error_type"] == "PathfindingError"
    assert failed["error"] == "Pathfinder: stuck"
    assert failed["backoff_s"] == 2.0

    dead = captured[1].payload
    assert dead["attempts"] == 3
    assert dead["last_error"] == "Pathfinder: stuck"


def test_emit_connection_lost():
    bus = EventBus()
    captured = _capture_events(bus)

    emit_connection_lost(bus, event="kicked", reason="Server closed", will_reconnect=True)
    emit_connection_lost(bus, event="error", reason=ConnectionResetError("reset"))

    assert all(e.event_type == EventType.CONNECTION for e in captured)
    assert captured[0].payload["subtype"] == "CONNECTION_LOST"
    assert captured[0].payload["reason"] == "Server closed"
    assert captured[0].payload["will_reconnect"] is True
    assert captured[1].payload["reason"] == "ConnectionResetError('reset')"
    assert captured[1].payload["will_reconnect"] is False


def test_emit_command_error():
    bus = EventBus()
    captured = _capture_events(bus)

    emit_command_error(bus, username="Alice", command="goto", error=ValueError("bad"))

    assert len(captured) == 1
    evt = captured[0]
    assert evt.event_type == EventType.COMMAND
    assert evt.payload["subtype"] == "COMMAND_ERROR"
    assert evt.payload["username"] == "Alice"
    assert evt.payload["command"] == "goto"
    assert "bad" in evt.payload["error"]


def test_helpers_accept_missing_bus():
    # No bus wired up: nothing is published and nothing raises
    emit_task_failure(None, task=GotoTask(0, 0, 0), attempt=1, error=RuntimeError("x"))
    emit_connection_lost(None, event="end")
    emit_command_error(None, username="a", command="b", error=RuntimeError("c"))
