# EventBus for monitoring events
"""
Event bus for monitoring.

Provides a minimal in-process pub/sub mechanism:

- Subscribers receive MonitoringEvent objects, optionally filtered by type.
- Used by:
    - JsonFileLogger (JSONL event log)
    - QueueRunner / QueueStore / CommandDispatcher instrumentation
    - tests that assert on emitted events

Everything runs on the agent's event loop thread, so no locking is done.
"""

from __future__ import annotations

import logging
from typing import Callable, FrozenSet, Iterable, List, Optional, Tuple

from .events import EventType, MonitoringEvent

log = logging.getLogger(__name__)


# ============================================================
# Type aliases
# ============================================================

SubscriberFn = Callable[[MonitoringEvent], None]


# ============================================================
# Event Bus
# ============================================================

class EventBus:
    """
    Simple in-process event bus for monitoring events.

    A subscriber that raises is logged and skipped; it never breaks the
    publisher or the other subscribers.
    """

    def __init__(self) -> None:
        # (subscriber, event types or None for all)
        self._subscribers: List[Tuple[SubscriberFn, Optional[FrozenSet[EventType]]]] = []

    # --------------------------------------------------------
    # Subscription API
    # --------------------------------------------------------

    def subscribe(
        self,
        fn: SubscriberFn,
        event_types: Optional[Iterable[EventType]] = None,
    ) -> None:
        """Register `fn` for all events, or only for `event_types`."""
        types = frozenset(event_types) if event_types is not None else None
        self._subscribers.append((fn, types))

    def unsubscribe(self, fn: SubscriberFn) -> None:
        """
        Remove a previously registered subscriber.

        Safe to call even if `fn` is not present.
        """
        self._subscribers = [(s, t) for (s, t) in self._subscribers if s != fn]

    # --------------------------------------------------------
    # Publish API
    # --------------------------------------------------------

    def publish(self, event: MonitoringEvent) -> None:
        """Publish a MonitoringEvent to every matching subscriber."""
        for fn, types in list(self._subscribers):
            if types is not None and event.event_type not in types:
                continue
            try:
                fn(event)
            except Exception:
                log.exception("Monitoring subscriber %r failed on %s", fn, event.event_type.name)

    # --------------------------------------------------------
    # Utility
    # --------------------------------------------------------

    def clear(self) -> None:
        """Drop all subscribers (mostly for tests)."""
        self._subscribers.clear()

    def __len__(self) -> int:
        return len(self._subscribers)
