#"src/agent/state.py"

from __future__ import annotations

import asyncio
from enum import Enum, auto
from typing import Optional, TypeVar

from .errors import TaskCancelled

T = TypeVar("T")


class TaskState(Enum):
    """
    Lifecycle of the active task as seen by the QueueRunner.

        PENDING -> RUNNING_FINITE   -> COMPLETED
                                    -> FAILED    (retried: back to PENDING)
        PENDING -> RUNNING_INFINITE -> CANCELLED (global stop only)

    RUNNING_INFINITE never leaves through the executor's normal return
    path; only the run's CancelToken ends it.
    """

    IDLE = auto()
    PENDING = auto()
    RUNNING_FINITE = auto()
    RUNNING_INFINITE = auto()
    COMPLETED = auto()
    FAILED = auto()
    CANCELLED = auto()


class CancelToken:
    """
    Cancellation token for one task run.

    Tick callbacks check `cancelled`; suspending handlers await `wait()` or
    `sleep()`, which raise TaskCancelled as soon as the token fires.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise TaskCancelled()

    async def wait(self) -> None:
        """Block until cancelled. Returns normally; callers decide what that means."""
        await self._event.wait()

    async def sleep(self, seconds: float) -> None:
        """Sleep for `seconds` unless cancelled first (then raise TaskCancelled)."""
        self.raise_if_cancelled()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise TaskCancelled()

    async def park(self) -> None:
        """Suspend an infinite task until cancelled."""
        await self._event.wait()
        raise TaskCancelled()

    async def race(
        self,
        future: "asyncio.Future[T]",
        timeout: Optional[float] = None,
    ) -> T:
        """
        Await `future` unless the token fires or `timeout` elapses first.

        Raises TaskCancelled or asyncio.TimeoutError respectively; the
        losing future is cancelled either way.
        """
        self.raise_if_cancelled()
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {future, waiter},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
            if future in done:
                return future.result()
            if waiter in done:
                raise TaskCancelled()
            raise asyncio.TimeoutError()
        finally:
            waiter.cancel()
            if not future.done():
                future.cancel()
