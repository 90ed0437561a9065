# src/agent/scheduler.py
"""
Managed periodic tick callbacks.

Every repeating task behaviour (follow re-aim, afk look, attack swing, ...)
is registered here so that a global stop can cancel all of them at once.

Callbacks run on the event loop thread, one at a time; a callback may be a
plain function or return an awaitable. The first call happens one period
after registration.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, List, Optional, Union

log = logging.getLogger(__name__)

TickFn = Callable[[], Union[None, Awaitable[Any]]]
ErrorFn = Callable[[BaseException], None]


class ManagedInterval:
    """One periodic callback. Stops on cancel() or after the first error."""

    def __init__(
        self,
        registry: "IntervalRegistry",
        fn: TickFn,
        every_s: float,
        *,
        name: str = "tick",
        on_error: Optional[ErrorFn] = None,
    ) -> None:
        self.name = name
        self.every_s = every_s
        self.ticks = 0
        self._registry = registry
        self._fn = fn
        self._on_error = on_error
        self._task = asyncio.ensure_future(self._run())
        self._task.add_done_callback(self._on_done)

    @property
    def active(self) -> bool:
        return not self._task.done()

    def cancel(self) -> None:
        if not self._task.done():
            self._task.cancel()
        self._registry._forget(self)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.every_s)
            try:
                result = self._fn()
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                if self._on_error is None:
                    log.exception("Tick callback %s failed; stopping it", self.name)
                else:
                    self._on_error(exc)
                return
            self.ticks += 1

    def _on_done(self, _task: "asyncio.Future[None]") -> None:
        self._registry._forget(self)


class IntervalRegistry:
    """Tracks every live ManagedInterval for the process."""

    def __init__(self) -> None:
        self._intervals: List[ManagedInterval] = []

    def every(
        self,
        every_ms: float,
        fn: TickFn,
        *,
        name: str = "tick",
        on_error: Optional[ErrorFn] = None,
    ) -> ManagedInterval:
        """Start calling `fn` every `every_ms` milliseconds."""
        interval = ManagedInterval(
            self,
            fn,
            max(float(every_ms), 1.0) / 1000.0,
            name=name,
            on_error=on_error,
        )
        self._intervals.append(interval)
        return interval

    def cancel_all(self) -> int:
        """Cancel every outstanding interval; returns how many were live."""
        intervals, self._intervals = self._intervals, []
        for interval in intervals:
            interval.cancel()
        if intervals:
            log.debug("Cancelled %d tick callbacks", len(intervals))
        return len(intervals)

    def live_count(self) -> int:
        return len(self._intervals)

    def __len__(self) -> int:
        return len(self._intervals)

    def _forget(self, interval: ManagedInterval) -> None:
        if interval in self._intervals:
            self._intervals.remove(interval)


__all__ = ["IntervalRegistry", "ManagedInterval", "TickFn"]
