#tests/test_monitoring_event_bus.py
"""
Tests for monitoring.bus.EventBus

Covers:
- Publish/subscribe behavior
- Unsubscribe behavior (plain functions and bound methods)
- Event type filtering
- Ordering guarantees
- A failing subscriber does not break the others
"""

from __future__ import annotations

from typing import List

from monitoring.bus import EventBus
from monitoring.events import MonitoringEvent, EventType


def make_event(
    ts: float,
    module: str = "test",
    msg: str = "msg",
    event_type: EventType = EventType.LOG,
) -> MonitoringEvent:
    return MonitoringEvent(
        ts=ts,
        module=module,
        event_type=event_type,
        message=msg,
        payload={},
        correlation_id=None,
    )


def test_event_bus_publish_subscribe_basic():
    bus = EventBus()
    received: List[MonitoringEvent] = []

    def subscriber(evt: MonitoringEvent) -> None:
        received.append(evt)

    bus.subscribe(subscriber)

    bus.publish(make_event(1.0, msg="first"))
    bus.publish(make_event(2.0, msg="second"))

    assert len(received) == 2
    assert received[0].message == "first"
    assert received[1].message == "second"


def test_event_bus_unsubscribe():
    bus = EventBus()
    received: List[MonitoringEvent] = []

    def subscriber(evt: MonitoringEvent) -> None:
        received.append(evt)

    bus.subscribe(subscriber)
    bus.unsubscribe(subscriber)

    bus.publish(make_event(1.0))

    # Should not receive anything after unsubscribe
    assert received == []
    assert len(bus) == 0


def test_event_bus_unsubscribe_bound_method():
    class Sink:
        def __init__(self) -> None:
            self.seen: List[MonitoringEvent] = []

        def on_event(self, evt: MonitoringEvent) -> None:
            self.seen.append(evt)

    bus = EventBus()
    sink = Sink()
    bus.subscribe(sink.on_event)
    # a fresh bound-method object must still match
    bus.unsubscribe(sink.on_event)

    bus.publish(make_event(1.0))

    assert sink.seen == []


def test_event_bus_type_filter():
    bus = EventBus()
    tasks: List[MonitoringEvent] = []
    everything: List[MonitoringEvent] = []

    bus.subscribe(tasks.append, event_types=[EventType.TASK_STARTED, EventType.TASK_FAILED])
    bus.subscribe(everything.append)

    bus.publish(make_event(1.0, event_type=EventType.TASK_STARTED))
    bus.publish(make_event(2.0, event_type=EventType.QUEUE_CHANGED))
    bus.publish(make_event(3.0, event_type=EventType.TASK_FAILED))

    assert [e.ts for e in tasks] == [1.0, 3.0]
    assert len(everything) == 3


def test_event_bus_ordering_guarantee():
    bus = EventBus()
    seen: List[int] = []

    def subscriber(evt: MonitoringEvent) -> None:
        seen.append(int(evt.ts))

    bus.subscribe(subscriber)

    # Publish in ascending order
    for ts in [1, 2, 3, 4, 5]:
        bus.publish(make_event(float(ts)))

    assert seen == [1, 2, 3, 4, 5]


def test_failing_subscriber_is_isolated():
    bus = EventBus()
    received: List[MonitoringEvent] = []

    def broken(evt: MonitoringEvent) -> None:
        raise RuntimeError("boom")

    bus.subscribe(broken)
    bus.subscribe(received.append)

    bus.publish(make_event(1.0))

    assert len(received) == 1
