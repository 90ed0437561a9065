# src/bot_core/nav/goals.py
"""
Movement goals and goal waiting.

Pathfinding itself is done by the game client's movement planner; this
module only describes goals and turns the planner's event callbacks into
one awaitable outcome.

wait_for_goal() sets the goal, then resolves exactly once:
  - "goal_reached"                      -> returns normally
  - "path_reset" with noPath / stuck    -> raises PathfindingError
  - timeout                             -> raises GotoTimeoutError
  - the run's cancel token fires        -> raises TaskCancelled

Planner events queued before the goal was handed over belong to an
earlier goal and are ignored. Listeners are removed on every exit path.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from agent.errors import GotoTimeoutError, PathfindingError
from spec.types import Vec3

if TYPE_CHECKING:
    from agent.state import CancelToken
    from spec.bot_core import GameClient


log = logging.getLogger(__name__)

# path_reset reasons that mean the planner gave up
FATAL_RESET_REASONS = frozenset({"noPath", "stuck"})


@dataclass(frozen=True)
class GoalNear:
    """Reach any block within `range` of (x, y, z)."""

    x: float
    y: float
    z: float
    range: float = 1.0

    @classmethod
    def around(cls, pos: Vec3, range: float) -> "GoalNear":
        return cls(pos.x, pos.y, pos.z, range)

    @property
    def position(self) -> Vec3:
        return Vec3(self.x, self.y, self.z)


async def wait_for_goal(
    client: "GameClient",
    goal: GoalNear,
    *,
    timeout_s: float,
    token: Optional["CancelToken"] = None,
) -> None:
    """
    Hand `goal` to the planner and wait until it arrives, gives up, or
    time runs out. The goal is cleared again on every exit path.
    """
    from agent.state import CancelToken

    token = token if token is not None else CancelToken()
    loop = asyncio.get_running_loop()
    outcome: asyncio.Future[None] = loop.create_future()
    armed = False

    def arm() -> None:
        nonlocal armed
        armed = True

    def on_goal_reached(*_args: Any) -> None:
        if not armed:
            log.debug("stale goal_reached ignored")
            return
        if not outcome.done():
            outcome.set_result(None)

    def on_path_reset(reason: Any = None, *_args: Any) -> None:
        if not armed or outcome.done():
            return
        if reason in FATAL_RESET_REASONS:
            outcome.set_exception(PathfindingError(str(reason)))
        else:
            log.debug("path_reset reason=%s ignored", reason)

    client.on("goal_reached", on_goal_reached)
    client.on("path_reset", on_path_reset)
    try:
        # Runs after every callback already queued on the loop.
        loop.call_soon(arm)
        client.set_goal(goal)
        await token.race(outcome, timeout=timeout_s)
    except asyncio.TimeoutError:
        raise GotoTimeoutError(timeout_s) from None
    finally:
        client.off("goal_reached", on_goal_reached)
        client.off("path_reset", on_path_reset)
        try:
            client.set_goal(None)
        except Exception:
            log.warning("Could not clear movement goal", exc_info=True)


__all__ = ["GoalNear", "wait_for_goal", "FATAL_RESET_REASONS"]
