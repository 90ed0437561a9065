# src/app/runtime.py
"""
Process entrypoint for the task agent.

AgentRuntime wires the pieces together and owns the connection lifecycle:

    connect -> "spawn"           -> start the queue runner
            -> "end" / "kicked"  -> session lost: cancel tick callbacks,
               / "error"            close the client, stop the runner,
                                    keep the queue
    session lost -> EXIT_ON_DISCONNECT=1: exit status 1 (a supervisor
                    restarts the process, which resumes from the state file)
                 -> otherwise: reconnect with exponential backoff

CLI:

    python -m app.runtime            # same as "run"
    python -m app.runtime run --log-level DEBUG
    python -m app.runtime status     # print the persisted queue
"""

from __future__ import annotations  # allow forward type hints

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from agent.commands import CommandDispatcher          # chat command surface
from agent.context import AgentContext                # shared application context
from agent.errors import GameClientError
from agent.logging_config import configure_logging
from agent.loop import QueueRunner                    # queue consumer
from agent.store import QueueStore                    # persisted queue
from bot_core.actions import TaskExecutor             # per-task handlers
from bot_core.net import create_game_client_for_env
from env.loader import ConfigError, load_environment
from env.schema import AgentConfig, ReconnectConfig
from monitoring.bus import EventBus
from monitoring.events import EventType
from monitoring.logger import JsonFileLogger, log_event
from monitoring.status_view import print_status
from runtime.failure_mitigation import emit_connection_lost
from spec.bot_core import GameClient

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_DISCONNECTED = 1
EXIT_CONFIG = 2


def reconnect_delay(policy: ReconnectConfig, attempt: int) -> float:
    """Delay before reconnect `attempt` (1-based): initial * factor^(attempt-1), capped."""
    delay = policy.initial_s * (policy.factor ** max(attempt - 1, 0))
    return min(delay, policy.max_s)


class AgentRuntime:
    """
    One agent process: config, store, client session, runner and dispatcher.

    The game client is created from config unless one is injected (tests
    pass a FakeGameClient).
    """

    def __init__(
        self,
        config: AgentConfig,
        *,
        client: Optional[GameClient] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.config = config
        self.bus = bus or EventBus()
        self.client: GameClient = client if client is not None else create_game_client_for_env(config)

        store = QueueStore.load(config.state_file, bus=self.bus)
        self.ctx = AgentContext(config=config, store=store, client=self.client, bus=self.bus)
        self.executor = TaskExecutor(self.ctx)
        self.runner = QueueRunner(self.ctx, self.executor)
        self.dispatcher = CommandDispatcher(self.ctx, self.runner)

        self.sessions = 0
        self._runner_task: Optional["asyncio.Task[None]"] = None
        self._session_over: Optional[asyncio.Event] = None
        self._stopping = False

        self.client.on("spawn", self._on_spawn)
        self.client.on("chat", self.dispatcher.handle_chat)
        self.client.on("end", self._on_end)
        self.client.on("kicked", self._on_kicked)
        self.client.on("error", self._on_error)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def run(self) -> int:
        """Run sessions until exit; returns the process exit status."""
        if self.ctx.store.ensure_default():
            log.info("Queue was empty, seeded the default task")

        log_event(
            bus=self.bus,
            module="app.runtime",
            event_type=EventType.AGENT_STARTED,
            message="Agent started",
            payload={
                "host": self.config.connection.host,
                "port": self.config.connection.port,
                "client_mode": self.config.client_mode,
                "state_file": str(self.config.state_file),
            },
        )

        policy = self.config.reconnect
        failures = 0
        while True:
            spawned = await self.run_session()
            if self._stopping:
                return EXIT_OK
            if self.config.exit_on_disconnect:
                log.info("Disconnected; exiting (EXIT_ON_DISCONNECT=1)")
                return EXIT_DISCONNECTED

            failures = 1 if spawned else failures + 1
            if policy.max_attempts and failures > policy.max_attempts:
                log.error("Giving up after %d reconnect attempts", policy.max_attempts)
                return EXIT_DISCONNECTED

            delay = reconnect_delay(policy, failures)
            log.info("Reconnecting in %.1fs (attempt %d)", delay, failures)
            await asyncio.sleep(delay)

    async def run_session(self) -> bool:
        """
        Connect once and block until the session is over.

        Returns True if the session reached "spawn".
        """
        self._session_over = asyncio.Event()
        spawned_before = self.sessions
        try:
            self.client.connect()
        except GameClientError as exc:
            log.error("Could not connect: %s", exc)
            emit_connection_lost(
                self.bus,
                event="connect",
                reason=exc,
                will_reconnect=not self.config.exit_on_disconnect,
            )
            return False

        await self._session_over.wait()
        self._close_session()
        await self._stop_runner()
        return self.sessions > spawned_before

    def request_stop(self) -> None:
        """Leave the run loop after the current session (no reconnect)."""
        self._stopping = True
        if self.client.is_alive():
            self.client.disconnect()
        if self._session_over is not None:
            self._session_over.set()

    def _close_session(self) -> None:
        # An "error" can end the session while the client is still logged in.
        if not self.client.is_alive():
            return
        try:
            self.client.disconnect()
        except Exception:
            log.warning("Could not close the game client session", exc_info=True)

    async def _stop_runner(self) -> None:
        task, self._runner_task = self._runner_task, None
        if task is None:
            return
        self.runner.notify()
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    # ------------------------------------------------------------------
    # Client events
    # ------------------------------------------------------------------

    def _on_spawn(self, *_args: Any) -> None:
        self.sessions += 1
        log.info("Joined the server as %s", self.client.username)
        log_event(
            bus=self.bus,
            module="app.runtime",
            event_type=EventType.CONNECTION,
            message="Joined the server",
            payload={"subtype": "SPAWN", "session": self.sessions},
        )
        if self._runner_task is None or self._runner_task.done():
            self._runner_task = asyncio.ensure_future(self.runner.run())

    def _on_end(self, reason: Any = None, *_args: Any) -> None:
        self._session_lost("end", reason)

    def _on_kicked(self, reason: Any = None, *_args: Any) -> None:
        self._session_lost("kicked", reason)

    def _on_error(self, error: Any = None, *_args: Any) -> None:
        self._session_lost("error", error)

    def _session_lost(self, event: str, reason: Any) -> None:
        if self._session_over is None or self._session_over.is_set():
            return
        log.warning("Connection lost (%s): %s", event, reason)
        cancelled = self.ctx.cancel_ticks()
        log.debug("Cancelled %d tick callbacks after %s", cancelled, event)
        emit_connection_lost(
            self.bus,
            event=event,
            reason=reason,
            will_reconnect=not (self.config.exit_on_disconnect or self._stopping),
        )
        self._session_over.set()


# ----------------------------------------------------------------------
# CLI
# ----------------------------------------------------------------------


def _cmd_run(args: argparse.Namespace, config: AgentConfig) -> int:
    bus = EventBus()
    event_logger = JsonFileLogger(config.event_log, bus) if config.event_log else None
    try:
        runtime = AgentRuntime(config, bus=bus)
        return asyncio.run(runtime.run())
    except GameClientError as exc:
        log.error("Game client unavailable: %s", exc)
        return EXIT_DISCONNECTED
    except KeyboardInterrupt:
        log.info("Interrupted")
        return EXIT_OK
    finally:
        if event_logger is not None:
            event_logger.close()


def _cmd_status(args: argparse.Namespace, config: AgentConfig) -> int:
    path = Path(args.state_file) if args.state_file else config.state_file
    print_status(path)
    return EXIT_OK


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mc-taskbot",
        description="Chat-controlled task agent for a Minecraft server.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML config file (default: $AGENT_CONFIG, if set).",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ...).",
    )
    sub = parser.add_subparsers(dest="command")

    p_run = sub.add_parser("run", help="Connect and process the task queue (default).")
    p_run.set_defaults(func=_cmd_run)

    p_status = sub.add_parser("status", help="Print the persisted task queue.")
    p_status.add_argument(
        "--state-file",
        type=str,
        default=None,
        help="State file to read (default: STATE_FILE from config).",
    )
    p_status.set_defaults(func=_cmd_status)

    parser.set_defaults(func=_cmd_run)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point; returns the process exit status."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    try:
        config = load_environment(config_path=Path(args.config) if args.config else None)
    except ConfigError as exc:
        configure_logging(args.log_level or "INFO")
        log.error("Invalid configuration: %s", exc)
        return EXIT_CONFIG

    configure_logging(args.log_level or config.log_level, log_file=config.log_file)
    return args.func(args, config)


if __name__ == "__main__":
    sys.exit(main())
