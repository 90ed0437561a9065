# rich-based queue status view
#src/monitoring/status_view.py
"""
Terminal status view for the persisted task queue.

Renders a state snapshot (`{queue, active, deadLetter?}`) with `rich`:

- Active task (or <none>)
- Queued tasks in execution order
- Dead-lettered tasks, when the retry cap has abandoned any

Used by `python -m app.runtime status` and tools/inspect_state.py. It reads
the state file only; no connection to a running agent is needed.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table

from agent.store import QueueStore


def _params(task: Mapping[str, Any]) -> str:
    return " ".join(f"{k}={v}" for k, v in task.items() if k != "type") or "-"


def build_queue_table(snapshot: Mapping[str, Any]) -> Table:
    """One row per task: position, type and parameters."""
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", width=4)
    table.add_column("Type", style="bold", width=16)
    table.add_column("Parameters")

    active = snapshot.get("active")
    if active:
        table.add_row("[green]>[/green]", str(active.get("type")), _params(active))

    for idx, task in enumerate(snapshot.get("queue") or [], start=1):
        table.add_row(str(idx), str(task.get("type")), _params(task))

    if not active and not snapshot.get("queue"):
        table.add_row("-", "<empty>", "-")

    return table


def render_status(snapshot: Mapping[str, Any], *, title: str = "Task Queue") -> Panel:
    """
    Panel with the queue table, plus a dead-letter table when non-empty.
    """
    parts = [build_queue_table(snapshot)]

    dead = snapshot.get("deadLetter") or []
    if dead:
        dead_table = Table(show_header=True, header_style="bold red", title="Dead letter")
        dead_table.add_column("Type", style="bold", width=16)
        dead_table.add_column("Parameters")
        for task in dead:
            dead_table.add_row(str(task.get("type")), _params(task))
        parts.append(dead_table)

    active = snapshot.get("active")
    subtitle = f"active: {active.get('type')}" if active else "idle"
    return Panel(Group(*parts), title=title, subtitle=subtitle, border_style="cyan")


def print_status(path: Path, console: Optional[Console] = None) -> Dict[str, Any]:
    """Load the state file at `path`, print it, and return the snapshot shown."""
    console = console or Console()
    snapshot = QueueStore.load(path).to_dict()
    console.print(render_status(snapshot, title=f"Task Queue ({path})"))
    return snapshot


__all__ = ["build_queue_table", "render_status", "print_status"]
