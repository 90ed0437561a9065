# Path: src/agent/loop.py
"""
Queue runner: the single consumer of the persisted task queue.

One iteration:
  1. no active task -> promote the queue head (persisted); nothing queued
     -> idle until notify() or `idle_s` elapses
  2. run the active task through the TaskExecutor with a fresh CancelToken
  3. completed -> clear the active slot (persisted), continue at once
  4. failed    -> log + event, wait `backoff_s`, run the same task again
  5. cancelled -> nothing persisted (the stop already did), continue

The loop ends when the game session is gone. The active task is left in
place so the next session (or process) resumes it.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import TYPE_CHECKING, Optional

from bot_core.tracing import TaskTracer
from monitoring.events import EventType
from monitoring.logger import log_event
from runtime.failure_mitigation import emit_task_dead_lettered, emit_task_failure
from spec.types import TaskDescriptor, describe_task, task_to_dict

from .errors import TaskCancelled
from .state import TaskState

if TYPE_CHECKING:
    from bot_core.actions import TaskExecutor

    from .context import AgentContext

logger = logging.getLogger(__name__)


class QueueRunner:
    def __init__(
        self,
        ctx: "AgentContext",
        executor: "TaskExecutor",
        *,
        tracer: Optional[TaskTracer] = None,
    ) -> None:
        self._ctx = ctx
        self._executor = executor
        self._tracer = tracer or TaskTracer()
        self._running = False

        self.state: TaskState = TaskState.IDLE
        # consecutive failed attempts of the current active task
        self._failures = 0
        self._failing: Optional[TaskDescriptor] = None

    # -----------------------------------------------------------
    # Public API
    # -----------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    @property
    def tracer(self) -> TaskTracer:
        return self._tracer

    def notify(self) -> None:
        """Wake an idle loop (a task was pushed or the session ended)."""
        self._ctx.wakeup.set()

    async def run(self) -> None:
        """Process the queue until the session ends. A second concurrent call returns at once."""
        if self._running:
            logger.debug("QueueRunner.run called while already running; ignoring")
            return

        self._running = True
        logger.info("Queue runner started")
        try:
            while self._ctx.client.is_alive():
                await self.step()
        finally:
            self._running = False
            self.state = TaskState.IDLE
            logger.info("Queue runner stopped")

    async def step(self) -> None:
        """One loop iteration (see module docstring)."""
        store = self._ctx.store
        task = store.promote()
        if task is None:
            self.state = TaskState.IDLE
            await self._idle()
            return

        self.state = TaskState.PENDING
        await self._run_active(task)

    # -----------------------------------------------------------
    # Internals
    # -----------------------------------------------------------

    async def _idle(self) -> None:
        wakeup = self._ctx.wakeup
        wakeup.clear()
        try:
            await asyncio.wait_for(wakeup.wait(), timeout=self._ctx.config.runner.idle_s)
        except asyncio.TimeoutError:
            pass

    async def _run_active(self, task: TaskDescriptor) -> None:
        ctx = self._ctx
        store = ctx.store

        if task is not self._failing:
            self._failing = None
            self._failures = 0
        attempt = self._failures + 1

        token = ctx.new_token()
        run_id = uuid.uuid4().hex[:12]
        self.state = TaskState.RUNNING_INFINITE if task.infinite else TaskState.RUNNING_FINITE
        logger.info("Running task %s (attempt %d)", describe_task(task), attempt)
        log_event(
            bus=ctx.bus,
            module="agent.loop",
            event_type=EventType.TASK_STARTED,
            message=f"Task {task.type} started",
            payload={"task": task_to_dict(task), "attempt": attempt},
            correlation_id=run_id,
        )

        started = time.monotonic()
        try:
            await self._executor.execute(task, token)
        except TaskCancelled:
            self.state = TaskState.CANCELLED
            self._failing = None
            self._failures = 0
            self._tracer.record(
                task=task,
                outcome="cancelled",
                duration_s=time.monotonic() - started,
                attempt=attempt,
            )
            log_event(
                bus=ctx.bus,
                module="agent.loop",
                event_type=EventType.TASK_CANCELLED,
                message=f"Task {task.type} cancelled",
                payload={"task": task_to_dict(task)},
                correlation_id=run_id,
            )
            return
        except Exception as exc:
            self.state = TaskState.FAILED
            self._tracer.record(
                task=task,
                outcome="failed",
                duration_s=time.monotonic() - started,
                attempt=attempt,
                error=exc,
            )
            await self._handle_failure(task, attempt, exc, run_id)
            return
        finally:
            if ctx.current_token is token:
                ctx.current_token = None

        self.state = TaskState.COMPLETED
        self._failing = None
        self._failures = 0
        self._tracer.record(
            task=task,
            outcome="completed",
            duration_s=time.monotonic() - started,
            attempt=attempt,
        )
        # A stop during the run already replaced the active slot.
        if store.active is task:
            store.complete()
        log_event(
            bus=ctx.bus,
            module="agent.loop",
            event_type=EventType.TASK_COMPLETED,
            message=f"Task {task.type} completed",
            payload={"task": task_to_dict(task), "attempt": attempt},
            correlation_id=run_id,
        )

    async def _handle_failure(
        self,
        task: TaskDescriptor,
        attempt: int,
        exc: BaseException,
        run_id: str,
    ) -> None:
        ctx = self._ctx
        runner_cfg = ctx.config.runner
        self._failing = task
        self._failures = attempt

        if runner_cfg.max_retries > 0 and attempt >= runner_cfg.max_retries:
            logger.error(
                "Task %s failed %d times, moving it to dead letter: %s",
                describe_task(task), attempt, exc,
            )
            emit_task_failure(
                ctx.bus, task=task, attempt=attempt, error=exc, backoff_s=None, correlation_id=run_id
            )
            if ctx.store.active is task:
                ctx.store.dead_letter_active()
            emit_task_dead_lettered(
                ctx.bus, task=task, attempts=attempt, last_error=exc, correlation_id=run_id
            )
            self._failing = None
            self._failures = 0
            return

        logger.warning(
            "Task %s failed (attempt %d): %s; retrying in %.1fs",
            describe_task(task), attempt, exc, runner_cfg.backoff_s,
        )
        emit_task_failure(
            ctx.bus, task=task, attempt=attempt, error=exc, backoff_s=runner_cfg.backoff_s,
            correlation_id=run_id,
        )
        await asyncio.sleep(runner_cfg.backoff_s)


__all__ = ["QueueRunner"]
