# tests/test_nav_goals.py
"""
Tests for bot_core.nav.goals.wait_for_goal against the FakeGameClient planner.
"""

from __future__ import annotations

import asyncio

import pytest

from agent.errors import GotoTimeoutError, PathfindingError, TaskCancelled
from agent.state import CancelToken
from bot_core.nav import GoalNear, wait_for_goal
from bot_core.testing.fakes import FakeGameClient
from spec.types import Vec3


def _run(client: FakeGameClient, goal: GoalNear, **kwargs) -> None:
    asyncio.run(wait_for_goal(client, goal, timeout_s=kwargs.pop("timeout_s", 1.0), **kwargs))


def test_goal_reached_returns_and_clears_goal() -> None:
    client = FakeGameClient(goal_outcome="reached")
    goal = GoalNear(10, 64, -3, 2)

    _run(client, goal)

    assert client.goals == [goal, None]
    assert client.listener_count("goal_reached") == 0
    assert client.listener_count("path_reset") == 0


@pytest.mark.parametrize("reason", ["noPath", "stuck"])
def test_fatal_path_reset_raises(reason: str) -> None:
    client = FakeGameClient(goal_outcome=reason)

    with pytest.raises(PathfindingError) as exc_info:
        _run(client, GoalNear(1, 2, 3))

    assert str(exc_info.value) == f"Pathfinder: {reason}"
    assert client.goal is None
    assert client.listener_count("path_reset") == 0


def test_non_fatal_path_reset_is_ignored() -> None:
    async def scenario() -> None:
        client = FakeGameClient(goal_outcome="blockUpdate")
        loop = asyncio.get_running_loop()
        loop.call_later(0.02, client.emit, "goal_reached")

        await wait_for_goal(client, GoalNear(0, 0, 0), timeout_s=1.0)

    asyncio.run(scenario())


def test_goal_reached_queued_before_set_goal_is_ignored() -> None:
    async def scenario() -> None:
        client = FakeGameClient(goal_outcome=None)
        # left over from an earlier goal, still waiting on the loop
        asyncio.get_running_loop().call_soon(client.emit, "goal_reached")

        with pytest.raises(GotoTimeoutError):
            await wait_for_goal(client, GoalNear(0, 0, 0), timeout_s=0.05)

    asyncio.run(scenario())


def test_fatal_path_reset_queued_before_set_goal_is_ignored() -> None:
    async def scenario() -> None:
        client = FakeGameClient(goal_outcome="reached")
        asyncio.get_running_loop().call_soon(client.emit, "path_reset", "stuck")

        await wait_for_goal(client, GoalNear(0, 0, 0), timeout_s=1.0)

    asyncio.run(scenario())


def test_timeout_raises() -> None:
    client = FakeGameClient(goal_outcome=None)

    with pytest.raises(GotoTimeoutError):
        _run(client, GoalNear(0, 0, 0), timeout_s=0.02)

    assert client.goals[-1] is None
    assert client.listener_count("goal_reached") == 0


def test_cancel_token_ends_wait() -> None:
    async def scenario() -> FakeGameClient:
        client = FakeGameClient(goal_outcome=None)
        token = CancelToken()
        asyncio.get_running_loop().call_later(0.01, token.cancel)

        with pytest.raises(TaskCancelled):
            await wait_for_goal(client, GoalNear(0, 0, 0), timeout_s=5.0, token=token)
        return client

    client = asyncio.run(scenario())
    assert client.goal is None


def test_goal_near_around() -> None:
    goal = GoalNear.around(Vec3(1.5, 64.0, -2.0), 3)

    assert goal == GoalNear(1.5, 64.0, -2.0, 3)
    assert goal.position == Vec3(1.5, 64.0, -2.0)
