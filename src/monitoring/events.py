# path: src/monitoring/events.py
"""
Event schema for monitoring.

This module defines:
- EventType enum
- MonitoringEvent (structured system events)

All events are JSON-serializable via `.to_dict()` and are intended
for use with monitoring.bus.EventBus and monitoring.logger.JsonFileLogger.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum, auto
from typing import Any, Dict, Optional


# ============================================================
# Event Types
# ============================================================

class EventType(Enum):
    """Typed monitoring events emitted by the agent runtime."""

    # Process / session lifecycle
    AGENT_STARTED = auto()
    CONNECTION = auto()            # joined, disconnected, kicked, error, reconnecting

    # Task execution (QueueRunner)
    TASK_STARTED = auto()
    TASK_COMPLETED = auto()
    TASK_FAILED = auto()
    TASK_CANCELLED = auto()
    TASK_DEAD_LETTERED = auto()

    # Queue store mutations
    QUEUE_CHANGED = auto()
    PERSISTENCE_ERROR = auto()

    # Chat command surface
    COMMAND = auto()

    # Generic log messages
    LOG = auto()


# ============================================================
# Monitoring Event Structure
# ============================================================

@dataclass
class MonitoringEvent:
    """
    Runtime event emitted by the queue runner, store, dispatcher or
    connection lifecycle.

    All fields must be JSON-safe.
    """

    ts: float                   # UNIX timestamp (seconds)
    module: str                 # Source module string ("agent.loop", "app.runtime", ...)
    event_type: EventType       # Enum describing the event class
    message: str                # Short human-readable description
    payload: Dict[str, Any]     # Structured data (task dict, reason, counts)
    correlation_id: Optional[str] = None  # Groups the events of one task attempt

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-safe dict for loggers."""
        data = asdict(self)
        data["event_type"] = self.event_type.name  # store name, not enum
        return data
