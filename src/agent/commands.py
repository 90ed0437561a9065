# src/agent/commands.py
"""
Chat command surface.

CommandDispatcher turns operator chat lines into queue mutations.

Messages are ignored (no reply) when they are the agent's own, do not
start with the command prefix, or come from a sender outside the
configured operator set.

Supported commands:
- help                       -> list commands
- stop                       -> global stop
- afk                        -> stop, then queue afk
- goto <x> <y> <z> [range]   -> stop, then queue goto
- follow <player>            -> stop, then queue follow
- rc                         -> stop, then queue an unbounded rightClickItem
- rcblock <x> <y> <z>        -> stop, then queue an unbounded rightClickBlock
- lc | attack                -> stop, then queue attackLoop
- attackcfg                  -> report combat tuning (no mutation)
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence

from monitoring.events import EventType
from monitoring.logger import log_event
from runtime.failure_mitigation import emit_command_error
from spec.types import (
    AfkTask,
    AttackLoopTask,
    FollowTask,
    GotoTask,
    RightClickBlockTask,
    RightClickItemTask,
    TaskDescriptor,
)

if TYPE_CHECKING:
    from .context import AgentContext
    from .loop import QueueRunner

log = logging.getLogger(__name__)


class UsageError(ValueError):
    """Command arguments are missing or malformed; the usage line is the message."""


def _parse_number(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(text)
    return int(value) if value.is_integer() else value


def _parse_coords(args: Sequence[str], usage: str) -> List[float]:
    if len(args) < 3:
        raise UsageError(usage)
    try:
        return [_parse_number(a) for a in args[:3]]
    except ValueError:
        raise UsageError(usage) from None


class CommandDispatcher:
    """Route `<prefix><command> [args]` chat lines to queue mutations."""

    def __init__(
        self,
        ctx: "AgentContext",
        runner: Optional["QueueRunner"] = None,
    ) -> None:
        self._ctx = ctx
        self._runner = runner
        self._handlers: Dict[str, Callable[[List[str]], None]] = {
            "help": self._cmd_help,
            "stop": self._cmd_stop,
            "afk": self._cmd_afk,
            "goto": self._cmd_goto,
            "follow": self._cmd_follow,
            "rc": self._cmd_rc,
            "rcblock": self._cmd_rcblock,
            "lc": self._cmd_attack,
            "attack": self._cmd_attack,
            "attackcfg": self._cmd_attackcfg,
        }

    @property
    def prefix(self) -> str:
        return self._ctx.config.prefix

    # --------------------------------------------------------
    # Entry point (wired to the client's "chat" event)
    # --------------------------------------------------------

    def handle_chat(self, username: str, message: str) -> None:
        config = self._ctx.config
        if username == self._ctx.client.username:
            return
        if not message.startswith(config.prefix):
            return
        if not config.is_allowed(username):
            log.debug("Ignoring command from unauthorized user %s", username)
            return

        args = message[len(config.prefix):].split()
        cmd = args.pop(0).lower() if args else ""

        handler = self._handlers.get(cmd)
        if handler is None:
            self._reply(f"Unknown command. Use {config.prefix}help")
            return

        try:
            handler(args)
        except UsageError as exc:
            self._reply(str(exc))
            return
        except Exception as exc:
            log.exception("Command %r from %s failed", cmd, username)
            emit_command_error(self._ctx.bus, username=username, command=cmd, error=exc)
            self._reply(f"Command error: {exc}")
            return

        log_event(
            bus=self._ctx.bus,
            module="agent.commands",
            event_type=EventType.COMMAND,
            message=f"Command: {cmd}",
            payload={"username": username, "command": cmd, "args": args},
            correlation_id=None,
        )

    # --------------------------------------------------------
    # Commands
    # --------------------------------------------------------

    def _cmd_help(self, args: List[str]) -> None:
        p = self.prefix
        self._reply(
            " | ".join(
                [
                    "Commands:",
                    f"{p}help",
                    f"{p}stop",
                    f"{p}afk",
                    f"{p}goto <x> <y> <z> [range]",
                    f"{p}follow <player>",
                    f"{p}rc  (right-click item loop)",
                    f"{p}rcblock <x> <y> <z>  (right-click block loop)",
                    f"{p}lc  (attack loop, safe targeting)",
                    f"{p}attackcfg  (prints current attack settings)",
                ]
            )
        )

    def _cmd_stop(self, args: List[str]) -> None:
        self._ctx.stop_tasks()
        self._reply("Stopped all tasks.")

    def _cmd_afk(self, args: List[str]) -> None:
        self._restart_with(AfkTask(every_ms=5000))
        self._reply("AFK mode ON.")

    def _cmd_goto(self, args: List[str]) -> None:
        usage = f"Usage: {self.prefix}goto <x> <y> <z> [range]"
        x, y, z = _parse_coords(args, usage)
        range_ = 1
        if len(args) > 3:
            try:
                range_ = _parse_number(args[3])
            except ValueError:
                raise UsageError(usage) from None
        self._restart_with(GotoTask(x, y, z, range_))
        self._reply(f"Going to {x} {y} {z}")

    def _cmd_follow(self, args: List[str]) -> None:
        if not args:
            raise UsageError(f"Usage: {self.prefix}follow <player>")
        player = args[0]
        self._restart_with(FollowTask(player, distance=3, every_ms=700))
        self._reply(f"Following {player}")

    def _cmd_rc(self, args: List[str]) -> None:
        self._restart_with(RightClickItemTask(every_ms=250, times=0))
        self._reply("Right-click ITEM loop ON.")

    def _cmd_rcblock(self, args: List[str]) -> None:
        x, y, z = _parse_coords(args, f"Usage: {self.prefix}rcblock <x> <y> <z>")
        self._restart_with(RightClickBlockTask(x, y, z, every_ms=500, times=0))
        self._reply(f"Right-clicking BLOCK at {x} {y} {z}")

    def _cmd_attack(self, args: List[str]) -> None:
        self._restart_with(AttackLoopTask(every_ms=self._ctx.config.combat.every_ms))
        self._reply("Attack loop ON (safe target).")

    def _cmd_attackcfg(self, args: List[str]) -> None:
        combat = self._ctx.config.combat
        self._reply(
            f"attackRange={combat.range} fovDot={combat.fov_cos} "
            f"everyMs={combat.every_ms} types={','.join(combat.kinds)}"
        )

    # --------------------------------------------------------
    # Helpers
    # --------------------------------------------------------

    def _restart_with(self, task: TaskDescriptor) -> None:
        self._ctx.stop_tasks()
        self._ctx.push_task(task)
        if self._runner is not None:
            self._runner.notify()

    def _reply(self, text: str) -> None:
        self._ctx.client.chat(text)


__all__ = ["CommandDispatcher", "UsageError"]
