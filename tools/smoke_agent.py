#!/usr/bin/env python3
"""
tools/smoke_agent.py

Minimal harness to sanity-check the agent wiring offline.

Runs AgentRuntime against FakeGameClient (no server, no Node.js):
    - connects (spawn)
    - sends a few operator chat commands
    - lets the queue runner work for a couple of seconds
    - prints chat replies, client calls and the persisted queue

The state file goes to a temp directory unless --state-file is given.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys
import tempfile
from pathlib import Path

# ---------------------------------------------------------------------------
# Ensure src/ is on sys.path when running as a script
# ---------------------------------------------------------------------------

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# ---------------------------------------------------------------------------
# Imports from the project
# ---------------------------------------------------------------------------

from app.runtime import AgentRuntime  # type: ignore[import]
from bot_core.snapshot import RawEntity  # type: ignore[import]
from bot_core.testing.fakes import FakeGameClient  # type: ignore[import]
from env.schema import AgentConfig, RunnerConfig  # type: ignore[import]
from monitoring.status_view import print_status  # type: ignore[import]
from spec.types import Vec3  # type: ignore[import]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _print_header(title: str) -> None:
    print("\n" + "=" * 80)
    print(title)
    print("=" * 80)


async def run_smoke(state_file: Path, seconds: float) -> None:
    config = AgentConfig(
        runner=RunnerConfig(idle_s=0.2, backoff_s=0.2, goto_timeout_s=2.0),
        state_file=state_file,
        client_mode="fake",
        exit_on_disconnect=True,
        control_users=frozenset({"Operator"}),
    )
    client = FakeGameClient(username="SmokeBot")
    client.snapshot.entities.append(
        RawEntity(entity_id=7, kind="mob", position=Vec3(0.0, 1.62, -2.0), name="zombie")
    )
    runtime = AgentRuntime(config, client=client)

    _print_header("Starting runtime (fake client)")
    run = asyncio.ensure_future(runtime.run())
    await asyncio.sleep(0.1)

    for line in ("!help", "!goto 10 64 -3 2", "!attackcfg", "!lc"):
        print(f"<Operator> {line}")
        client.emit("chat", "Operator", line)
        await asyncio.sleep(seconds / 4)

    print("<Stranger> !stop   (ignored: not an operator)")
    client.emit("chat", "Stranger", "!stop")

    runtime.request_stop()
    code = await run

    _print_header("Chat replies")
    for reply in client.chats:
        print("  ", reply)

    _print_header("Client calls")
    print("goals:", [dataclasses.asdict(g) if g else None for g in client.goals])
    print("swings:", len(client.swings), "attacks:", [e.name for e in client.attacks])

    _print_header("Task runs")
    for record in runtime.runner.tracer.get_records():
        print(f"  {record.task_type:16} {record.outcome:10} {record.duration_s:.2f}s {record.error or ''}")

    _print_header(f"Persisted queue (exit code {code})")
    print_status(state_file)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def main(argv: list | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Offline smoke test for the task agent (FakeGameClient)",
    )
    parser.add_argument(
        "--state-file",
        default=None,
        help="State file to use (default: a temp file)",
    )
    parser.add_argument(
        "--seconds",
        type=float,
        default=2.0,
        help="Roughly how long to let the runner work",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    if args.state_file:
        asyncio.run(run_smoke(Path(args.state_file), args.seconds))
        return
    with tempfile.TemporaryDirectory() as tmp:
        asyncio.run(run_smoke(Path(tmp) / "state.json", args.seconds))


if __name__ == "__main__":
    main()
