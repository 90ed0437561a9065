# src/bot_core/actions.py
"""
Task execution.

This module turns one task descriptor into calls on the GameClient.

Design constraints:
- One execute(task, token) call per task run.
- Finite tasks return when done; infinite tasks only end through their
  CancelToken (global stop or connection loss) or a failing tick.
- Failures surface as exceptions:
    - PathfindingError / GotoTimeoutError from goto
    - UnknownTaskError for unrecognised task types
    - whatever a tick callback raised
- Every repeating behaviour is registered in the context's
  IntervalRegistry and cancelled again when the run ends.
- No persistence and no retries; the QueueRunner owns both.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import random
from typing import TYPE_CHECKING, Any, Callable, Optional

from agent.errors import UnknownTaskError
from agent.state import CancelToken
from spec.bot_core import line_of_sight
from spec.types import (
    AfkTask,
    AttackLoopTask,
    FollowTask,
    GotoTask,
    RightClickBlockTask,
    RightClickItemTask,
    TaskDescriptor,
    Vec3,
    WaitTask,
)

from .nav import GoalNear, wait_for_goal
from .targeting import pick_attack_target

if TYPE_CHECKING:
    from agent.context import AgentContext


log = logging.getLogger(__name__)

# rightClickBlock walks this close before it starts clicking
BLOCK_APPROACH_RANGE = 2

# afk jitter amplitudes (radians): yaw +-0.2, pitch +-0.1
AFK_YAW_SPAN = 0.4
AFK_PITCH_SPAN = 0.2

# A tick returning False did nothing and is not counted towards `times`.
TickResult = Optional[bool]
Tick = Callable[[], Any]


class TaskExecutor:
    """
    Run task descriptors against the context's game client.

    Public contract:
      await execute(task, token) -> None

    The handler's outcome propagates unchanged: returning means the task
    completed, TaskCancelled means the run was stopped, anything else is a
    task failure.
    """

    def __init__(
        self,
        ctx: "AgentContext",
        *,
        rng: Optional[random.Random] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._ctx = ctx
        self._rng = rng if rng is not None else random.Random()
        self._log = logger or log

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def execute(self, task: TaskDescriptor, token: CancelToken) -> None:
        token.raise_if_cancelled()

        if isinstance(task, WaitTask):
            await token.sleep(task.ms / 1000.0)
        elif isinstance(task, GotoTask):
            await self._execute_goto(task, token)
        elif isinstance(task, FollowTask):
            await self._execute_follow(task, token)
        elif isinstance(task, RightClickItemTask):
            await self._execute_right_click_item(task, token)
        elif isinstance(task, RightClickBlockTask):
            await self._execute_right_click_block(task, token)
        elif isinstance(task, AttackLoopTask):
            await self._execute_attack_loop(task, token)
        elif isinstance(task, AfkTask):
            await self._execute_afk(task, token)
        else:
            raise UnknownTaskError(task.type)

    # ------------------------------------------------------------------
    # Task handlers
    # ------------------------------------------------------------------

    async def _execute_goto(self, task: GotoTask, token: CancelToken) -> None:
        goal = GoalNear(task.x, task.y, task.z, task.range)
        self._log.info("Going to %s %s %s (range %s)", task.x, task.y, task.z, task.range)
        await self._goto(goal, token)

    async def _goto(self, goal: GoalNear, token: CancelToken) -> None:
        await wait_for_goal(
            self._ctx.client,
            goal,
            timeout_s=self._ctx.config.runner.goto_timeout_s,
            token=token,
        )

    async def _execute_follow(self, task: FollowTask, token: CancelToken) -> None:
        client = self._ctx.client
        self._log.info("Following %s (distance %s)", task.player, task.distance)

        def tick() -> TickResult:
            entity = client.observe().player_entity(task.player)
            if entity is None:
                return False
            client.set_goal(GoalNear.around(entity.position, task.distance))
            return True

        await self._run_ticks("follow", task.every_ms, tick, token)

    async def _execute_right_click_item(
        self,
        task: RightClickItemTask,
        token: CancelToken,
    ) -> None:
        client = self._ctx.client
        self._log.info("Right-click item loop (%dms, times=%d)", task.every_ms, task.times)

        def tick() -> TickResult:
            client.activate_item()
            return True

        await self._run_ticks("rightClickItem", task.every_ms, tick, token, times=task.times)

    async def _execute_right_click_block(
        self,
        task: RightClickBlockTask,
        token: CancelToken,
    ) -> None:
        """
        Walk near the block, then activate it every `every_ms`.

        Ticks where the block is not loaded, or where the agent drifted out
        of interaction distance (the approach goal is re-issued), do not
        count towards `times`.
        """
        client = self._ctx.client
        target = Vec3(task.x, task.y, task.z)
        approach = GoalNear.around(target, BLOCK_APPROACH_RANGE)
        max_distance = self._ctx.config.interact_distance

        await self._goto(approach, token)
        self._log.info(
            "Right-click block loop at %s %s %s (%dms, times=%d)",
            task.x, task.y, task.z, task.every_ms, task.times,
        )

        async def tick() -> TickResult:
            block = client.block_at(target)
            if block is None:
                return False

            distance = client.observe().position.distance_to(block.position)
            if distance > max_distance:
                client.set_goal(approach)
                return False

            await client.look_at(block.position.offset(0.5, 0.5, 0.5))
            client.activate_block(block)
            return True

        await self._run_ticks("rightClickBlock", task.every_ms, tick, token, times=task.times)

    async def _execute_afk(self, task: AfkTask, token: CancelToken) -> None:
        client = self._ctx.client
        rng = self._rng
        self._log.info("AFK mode (every %dms)", task.every_ms)

        def tick() -> TickResult:
            snapshot = client.observe()
            yaw = snapshot.yaw + (rng.random() - 0.5) * AFK_YAW_SPAN
            pitch = snapshot.pitch + (rng.random() - 0.5) * AFK_PITCH_SPAN
            client.look(yaw, pitch)
            return True

        await self._run_ticks("afk", task.every_ms, tick, token)

    async def _execute_attack_loop(self, task: AttackLoopTask, token: CancelToken) -> None:
        client = self._ctx.client
        combat = self._ctx.config.combat
        every_ms = task.every_ms if task.every_ms is not None else combat.every_ms
        can_see = line_of_sight(client)
        self._log.info(
            "Attack loop (every %dms, range %s, fov %s)",
            every_ms, combat.range, combat.fov_cos,
        )

        def tick() -> TickResult:
            client.swing_arm("right")
            target = pick_attack_target(client.observe(), combat, can_see)
            if target is None:
                return False
            try:
                client.attack(target)
            except Exception:
                self._log.debug("Attack on entity %s failed", target.entity_id, exc_info=True)
            return True

        await self._run_ticks("attackLoop", every_ms, tick, token)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _run_ticks(
        self,
        name: str,
        every_ms: float,
        tick: Tick,
        token: CancelToken,
        *,
        times: int = 0,
    ) -> None:
        """
        Register `tick` as a managed interval and wait for the run to end.

        Returns once `times` ticks counted (times > 0). Raises the first
        exception a tick raises, or TaskCancelled when the token fires.
        The interval is cancelled on every exit path.
        """
        loop = asyncio.get_running_loop()
        finished: "asyncio.Future[int]" = loop.create_future()
        count = 0

        async def on_tick() -> None:
            nonlocal count
            if token.cancelled or finished.done():
                return
            result = tick()
            if inspect.isawaitable(result):
                result = await result
            if result is False:
                return
            count += 1
            if times > 0 and count >= times and not finished.done():
                finished.set_result(count)

        def on_error(exc: BaseException) -> None:
            if not finished.done():
                finished.set_exception(exc)

        interval = self._ctx.intervals.every(every_ms, on_tick, name=name, on_error=on_error)
        try:
            await token.race(finished)
        finally:
            interval.cancel()


__all__ = ["TaskExecutor", "BLOCK_APPROACH_RANGE"]
