#tests/test_monitoring_logger.py
"""
Tests for monitoring.logger.JsonFileLogger and log_event.

Covers:
- JSON structure validity
- Correct field encoding
- Flush behavior (file actually gets data)
- close() detaches the logger from the bus
"""

from __future__ import annotations

import json
from pathlib import Path

from monitoring.bus import EventBus
from monitoring.logger import JsonFileLogger, log_event
from monitoring.events import EventType


def test_json_file_logger_writes_valid_json(tmp_path: Path):
    bus = EventBus()
    log_path = tmp_path / "events.log"

    logger = JsonFileLogger(log_path, bus)

    # Emit one event
    log_event(
        bus=bus,
        module="agent.loop",
        event_type=EventType.TASK_STARTED,
        message="Task goto started",
        payload={"task": {"type": "goto", "x": 1, "y": 2, "z": 3, "range": 1}},
        correlation_id="run-1",
    )

    # Explicit close to ensure file handle is flushed
    logger.close()

    content = log_path.read_text(encoding="utf-8").strip()
    lines = content.splitlines()
    assert len(lines) == 1

    data = json.loads(lines[0])

    assert data["module"] == "agent.loop"
    assert data["event_type"] == "TASK_STARTED"
    assert data["message"] == "Task goto started"
    assert data["payload"]["task"]["type"] == "goto"
    assert data["correlation_id"] == "run-1"
    assert isinstance(data["ts"], (int, float))


def test_logger_parent_dir_created(tmp_path: Path):
    # Create nested path that doesn't exist initially
    log_dir = tmp_path / "nested" / "logs"
    log_path = log_dir / "events.log"

    bus = EventBus()
    logger = JsonFileLogger(log_path, bus)

    log_event(
        bus=bus,
        module="test.module",
        event_type=EventType.LOG,
        message="hello",
        payload={},
    )
    logger.close()

    assert log_path.exists()
    content = log_path.read_text(encoding="utf-8").strip()
    assert content  # not empty


def test_logger_stops_after_close(tmp_path: Path):
    bus = EventBus()
    log_path = tmp_path / "events.log"
    logger = JsonFileLogger(log_path, bus)

    log_event(bus=bus, module="m", event_type=EventType.LOG, message="one")
    logger.close()
    log_event(bus=bus, module="m", event_type=EventType.LOG, message="two")

    lines = log_path.read_text(encoding="utf-8").strip().splitlines()
    assert [json.loads(line)["message"] for line in lines] == ["one"]
    assert len(bus) == 0


def test_log_event_without_bus_is_noop():
    # Must not raise
    log_event(bus=None, module="m", event_type=EventType.LOG, message="dropped")
