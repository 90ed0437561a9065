# mineflayer adapter
# src/bot_core/net/mineflayer_client.py
"""
GameClient adapter over mineflayer.

mineflayer and mineflayer-pathfinder run in Node.js; the `javascript`
package (JSPyBridge) exposes them as Python proxies. JS event callbacks
arrive on the bridge thread, so every event is re-emitted on the agent's
asyncio loop with call_soon_threadsafe before any agent handler sees it.

Requires the npm packages mineflayer, mineflayer-pathfinder and vec3;
JSPyBridge installs them on first require().
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from javascript import On, globalThis, off, require

from agent.errors import GameClientError
from env.schema import ConnectionConfig
from spec.bot_core import EventHandler
from spec.types import Vec3

from ..nav import GoalNear
from ..snapshot import RawBlock, RawEntity, RawWorldSnapshot

log = logging.getLogger(__name__)


def _vec(js_vec: Any) -> Vec3:
    return Vec3(float(js_vec.x), float(js_vec.y), float(js_vec.z))


class MineflayerClient:
    """One mineflayer bot per connect(); handlers survive reconnects."""

    def __init__(
        self,
        connection: ConnectionConfig,
        *,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.username = connection.username
        self._connection = connection
        self._loop = loop
        self._bot: Any = None
        self._alive = False
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._js_listeners: List[Tuple[str, Any]] = []

        self._mineflayer = require("mineflayer")
        self._pathfinder = require("mineflayer-pathfinder")
        self._vec3 = require("vec3")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> None:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        if self._bot is not None:
            self._retire_bot()

        conn = self._connection
        log.info("Connecting to %s:%d as %s (version %s)", conn.host, conn.port, conn.username, conn.version)
        try:
            bot = self._mineflayer.createBot(
                {
                    "host": conn.host,
                    "port": conn.port,
                    "version": conn.version,
                    "username": conn.username,
                    "auth": conn.auth,
                    "profilesFolder": conn.profiles_folder,
                }
            )
            bot.loadPlugin(self._pathfinder.pathfinder)
        except Exception as exc:
            raise GameClientError("connect_failed", {"error": str(exc)}) from exc

        self._bot = bot
        self._wire(bot)

    def disconnect(self) -> None:
        self._alive = False
        if self._bot is not None:
            self._bot.quit()

    def _retire_bot(self) -> None:
        # Only one bot per account may stay logged in.
        self._unwire()
        self._alive = False
        try:
            self._bot.quit()
        except Exception:
            log.warning("Could not quit the previous bot", exc_info=True)
        self._bot = None

    def is_alive(self) -> bool:
        return self._alive and self._bot is not None

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def off(self, event: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def _wire(self, bot: Any) -> None:
        pathfinder = self._pathfinder

        @On(bot, "spawn")
        def on_spawn(this: Any, *args: Any) -> None:
            bot.pathfinder.setMovements(pathfinder.Movements(bot))
            self._dispatch("spawn")

        @On(bot, "chat")
        def on_chat(this: Any, username: Any, message: Any, *args: Any) -> None:
            self._dispatch("chat", str(username), str(message))

        @On(bot, "goal_reached")
        def on_goal_reached(this: Any, *args: Any) -> None:
            self._dispatch("goal_reached")

        @On(bot, "path_reset")
        def on_path_reset(this: Any, reason: Any = None, *args: Any) -> None:
            self._dispatch("path_reset", str(reason))

        @On(bot, "end")
        def on_end(this: Any, reason: Any = None, *args: Any) -> None:
            self._dispatch("end", str(reason))

        @On(bot, "kicked")
        def on_kicked(this: Any, reason: Any = None, *args: Any) -> None:
            self._dispatch("kicked", str(reason))

        @On(bot, "error")
        def on_error(this: Any, err: Any = None, *args: Any) -> None:
            self._dispatch("error", GameClientError("client_error", {"error": str(err)}))

        self._js_listeners = [
            ("spawn", on_spawn),
            ("chat", on_chat),
            ("goal_reached", on_goal_reached),
            ("path_reset", on_path_reset),
            ("end", on_end),
            ("kicked", on_kicked),
            ("error", on_error),
        ]

    def _unwire(self) -> None:
        for event, fn in self._js_listeners:
            off(self._bot, event, fn)
        self._js_listeners = []

    def _dispatch(self, event: str, *args: Any) -> None:
        # Bridge thread -> agent loop.
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._emit, event, args)

    def _emit(self, event: str, args: Tuple[Any, ...]) -> None:
        if event == "spawn":
            self._alive = True
            name = self._bot.username
            if name:
                self.username = str(name)
        elif event in ("end", "kicked", "error"):
            self._alive = False

        for handler in list(self._handlers.get(event, [])):
            try:
                handler(*args)
            except Exception:
                log.exception("Handler for %r failed", event)

    # ------------------------------------------------------------------
    # World state
    # ------------------------------------------------------------------

    def observe(self) -> RawWorldSnapshot:
        bot = self._bot
        me = bot.entity
        self_id = int(me.id)

        entities: List[RawEntity] = []
        for e in globalThis.Object.values(bot.entities):
            if e is None or e.position is None:
                continue
            entities.append(self._entity(e))

        players: Dict[str, Optional[RawEntity]] = {}
        for name in globalThis.Object.keys(bot.players):
            player = bot.players[name]
            ent = player.entity if player is not None else None
            players[str(name)] = self._entity(ent) if ent is not None else None

        return RawWorldSnapshot(
            self_id=self_id,
            position=_vec(me.position),
            yaw=float(me.yaw),
            pitch=float(me.pitch),
            height=float(me.height or 1.62),
            entities=entities,
            players=players,
        )

    def _entity(self, e: Any) -> RawEntity:
        return RawEntity(
            entity_id=int(e.id),
            kind=str(e.type),
            position=_vec(e.position),
            name=str(e.username or e.name or "") or None,
            height=float(e.height or 0.0),
            handle=e,
        )

    def block_at(self, position: Vec3) -> Optional[RawBlock]:
        block = self._bot.blockAt(self._vec3(position.x, position.y, position.z))
        if block is None:
            return None
        return RawBlock(position=_vec(block.position), name=str(block.name), handle=block)

    # ------------------------------------------------------------------
    # Movement
    # ------------------------------------------------------------------

    def set_goal(self, goal: Optional[GoalNear]) -> None:
        if goal is None:
            self._bot.pathfinder.setGoal(None)
            return
        js_goal = self._pathfinder.goals.GoalNear(goal.x, goal.y, goal.z, goal.range)
        self._bot.pathfinder.setGoal(js_goal, False)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def look(self, yaw: float, pitch: float) -> None:
        self._bot.look(yaw, pitch, True)

    async def look_at(self, position: Vec3) -> None:
        # lookAt returns a promise; the bridge call blocks until it settles.
        target = self._vec3(position.x, position.y, position.z)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, lambda: self._bot.lookAt(target, True))

    def activate_item(self) -> None:
        self._bot.activateItem()

    def activate_block(self, block: RawBlock) -> None:
        self._bot.activateBlock(block.handle)

    def attack(self, entity: RawEntity) -> None:
        self._bot.attack(entity.handle)

    def swing_arm(self, hand: str = "right") -> None:
        self._bot.swingArm(hand)

    def can_see_entity(self, entity: RawEntity) -> bool:
        # Only some plugin setups provide canSeeEntity.
        if self._bot.canSeeEntity is None:
            return True
        return bool(self._bot.canSeeEntity(entity.handle))

    def chat(self, message: str) -> None:
        self._bot.chat(message)


__all__ = ["MineflayerClient"]
