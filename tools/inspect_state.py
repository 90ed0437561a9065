#!/usr/bin/env python3
"""
tools/inspect_state.py

Print a persisted state file: as a rich table (default) or as the
normalised JSON the agent would write back (--json).

    python tools/inspect_state.py state.json
    python tools/inspect_state.py state.json --json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from agent.store import QueueStore  # type: ignore[import]
from monitoring.status_view import print_status  # type: ignore[import]


def main(argv: list | None = None) -> None:
    parser = argparse.ArgumentParser(description="Inspect a task agent state file")
    parser.add_argument("path", nargs="?", default="state.json", help="State file (default: state.json)")
    parser.add_argument("--json", action="store_true", help="Print normalised JSON instead of a table")
    args = parser.parse_args(argv)

    path = Path(args.path)
    if args.json:
        json.dump(QueueStore.load(path).to_dict(), sys.stdout, indent=2)
        print()
    else:
        print_status(path)


if __name__ == "__main__":
    main()
