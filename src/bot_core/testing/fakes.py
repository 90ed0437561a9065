# src/bot_core/testing/fakes.py
"""
Test helpers for bot_core.

Provides:
- FakeGameClient: in-memory GameClient implementation for unit tests and
  offline smoke runs (BOT_CLIENT=fake).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from spec.types import Vec3

from ..nav import GoalNear
from ..snapshot import RawBlock, RawEntity, RawWorldSnapshot


@dataclass
class LookCall:
    """Record of a look() call."""

    yaw: float
    pitch: float


class FakeGameClient:
    """
    In-memory GameClient used for unit and integration tests.

    Features:
    - Records every action call (looks, activations, attacks, chat, goals).
    - `snapshot` and `blocks` are plain attributes tests set up directly.
    - `goal_outcome` simulates the movement planner: "reached" emits
      goal_reached, any other string emits path_reset with that reason,
      None leaves the goal pending. Outcomes are emitted on the next loop
      iteration, like a real planner callback.
    - emit() triggers registered handlers manually.
    - No real network.
    """

    def __init__(
        self,
        username: str = "agent",
        *,
        snapshot: Optional[RawWorldSnapshot] = None,
        goal_outcome: Optional[str] = "reached",
    ) -> None:
        self.username = username
        self.alive: bool = False
        self.snapshot: RawWorldSnapshot = snapshot or RawWorldSnapshot(
            self_id=1, position=Vec3(0.0, 0.0, 0.0), yaw=0.0, pitch=0.0
        )
        self.blocks: Dict[Tuple[float, float, float], RawBlock] = {}
        self.goal_outcome = goal_outcome
        self.visible: Optional[set] = None   # entity ids; None = no LOS check
        self.attack_error: Optional[Exception] = None
        self.activate_error: Optional[Exception] = None

        self.goal: Optional[GoalNear] = None
        self.goals: List[Optional[GoalNear]] = []
        self.looks: List[LookCall] = []
        self.looked_at: List[Vec3] = []
        self.item_activations: int = 0
        self.block_activations: List[RawBlock] = []
        self.attacks: List[RawEntity] = []
        self.swings: List[str] = []
        self.chats: List[str] = []
        self.connects: int = 0

        self._handlers: Dict[str, List[Any]] = {}

    # ------------------------------------------------------------------
    # GameClient protocol
    # ------------------------------------------------------------------

    def connect(self) -> None:
        self.connects += 1
        self.alive = True
        self._emit_soon("spawn")

    def disconnect(self) -> None:
        if not self.alive:
            return
        self.alive = False
        self.emit("end", "disconnect.quitting")

    def is_alive(self) -> bool:
        return self.alive

    def on(self, event: str, handler: Any) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def off(self, event: str, handler: Any) -> None:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def observe(self) -> RawWorldSnapshot:
        return self.snapshot

    def block_at(self, position: Vec3) -> Optional[RawBlock]:
        return self.blocks.get((position.x, position.y, position.z))

    def set_goal(self, goal: Optional[GoalNear]) -> None:
        self.goal = goal
        self.goals.append(goal)
        if goal is None or self.goal_outcome is None:
            return
        if self.goal_outcome == "reached":
            self._emit_soon("goal_reached")
        else:
            self._emit_soon("path_reset", self.goal_outcome)

    def look(self, yaw: float, pitch: float) -> None:
        self.looks.append(LookCall(yaw, pitch))

    async def look_at(self, position: Vec3) -> None:
        self.looked_at.append(position)

    def activate_item(self) -> None:
        if self.activate_error is not None:
            raise self.activate_error
        self.item_activations += 1

    def activate_block(self, block: RawBlock) -> None:
        self.block_activations.append(block)

    def attack(self, entity: RawEntity) -> None:
        if self.attack_error is not None:
            raise self.attack_error
        self.attacks.append(entity)

    def swing_arm(self, hand: str = "right") -> None:
        self.swings.append(hand)

    def can_see_entity(self, entity: RawEntity) -> bool:
        if self.visible is None:
            return True
        return entity.entity_id in self.visible

    def chat(self, message: str) -> None:
        self.chats.append(message)

    # ------------------------------------------------------------------
    # Test-only helpers
    # ------------------------------------------------------------------

    def add_block(self, x: float, y: float, z: float, name: str = "lever") -> RawBlock:
        block = RawBlock(position=Vec3(x, y, z), name=name)
        self.blocks[(x, y, z)] = block
        return block

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))

    def emit(self, event: str, *args: Any) -> None:
        """Call every handler registered for `event` with `args`."""
        for handler in list(self._handlers.get(event, [])):
            handler(*args)

    def _emit_soon(self, event: str, *args: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.emit(event, *args)
            return
        loop.call_soon(self.emit, event, *args)


__all__ = ["FakeGameClient", "LookCall"]
