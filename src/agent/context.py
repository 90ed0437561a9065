# src/agent/context.py
"""
Application context shared by the queue runner, task executor and
command dispatcher.

It owns the live pieces of one agent process: the resolved config, the
persisted queue store, the game client session, the registry of tick
callbacks, the monitoring bus and the cancel token of the task run in
flight. Created at startup; `stop_tasks()` is the single global stop.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from env.schema import AgentConfig
from monitoring.bus import EventBus
from spec.bot_core import GameClient
from spec.types import TaskDescriptor

from .scheduler import IntervalRegistry
from .state import CancelToken
from .store import QueueStore

log = logging.getLogger(__name__)


@dataclass
class AgentContext:
    config: AgentConfig
    store: QueueStore
    client: GameClient
    intervals: IntervalRegistry = field(default_factory=IntervalRegistry)
    bus: Optional[EventBus] = None
    current_token: Optional[CancelToken] = None
    wakeup: asyncio.Event = field(default_factory=asyncio.Event)

    # ------------------------------------------------------------------
    # Task run tokens
    # ------------------------------------------------------------------

    def new_token(self) -> CancelToken:
        """Create and remember the cancel token for the next task run."""
        self.current_token = CancelToken()
        return self.current_token

    # ------------------------------------------------------------------
    # Queue control
    # ------------------------------------------------------------------

    def stop_tasks(self) -> None:
        """
        Global stop: cancel every tick callback, clear the movement goal,
        cancel the running task and persist an empty queue.
        """
        cancelled = self.intervals.cancel_all()
        self._halt_movement()
        if self.current_token is not None:
            self.current_token.cancel()
        self.store.clear()
        log.info("Stopped all tasks (%d tick callbacks cancelled)", cancelled)

    def push_task(self, task: TaskDescriptor) -> None:
        self.store.push(task)
        self.wakeup.set()

    def cancel_ticks(self) -> int:
        """Cancel tick callbacks only (connection loss); the queue is kept."""
        if self.current_token is not None:
            self.current_token.cancel()
        return self.intervals.cancel_all()

    def _halt_movement(self) -> None:
        try:
            self.client.set_goal(None)
        except Exception:
            # The session may already be gone; the queue still has to be cleared.
            log.warning("Could not clear movement goal", exc_info=True)
