# tests/conftest.py

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

# Ensure src/ is on sys.path for test imports like `import env`, `import spec`.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"

if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from agent.context import AgentContext  # noqa: E402
from agent.store import QueueStore  # noqa: E402
from bot_core.testing.fakes import FakeGameClient  # noqa: E402
from env.schema import AgentConfig, RunnerConfig  # noqa: E402
from monitoring.bus import EventBus  # noqa: E402

# Fast timings so runner tests finish in milliseconds.
FAST_RUNNER = RunnerConfig(idle_s=0.01, backoff_s=0.01, goto_timeout_s=1.0)


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    return tmp_path / "state.json"


@pytest.fixture
def make_context(state_path: Path) -> Callable[..., AgentContext]:
    """
    Factory for an AgentContext backed by a FakeGameClient and a temp state file.

    Keyword overrides go to AgentConfig; `client` and `bus` may be injected.
    """

    def _make(
        *,
        client: Optional[FakeGameClient] = None,
        bus: Optional[EventBus] = None,
        **overrides: Any,
    ) -> AgentContext:
        overrides.setdefault("runner", FAST_RUNNER)
        config = AgentConfig(state_file=state_path, **overrides)
        if client is None:
            client = FakeGameClient()
            client.alive = True
        store = QueueStore.load(config.state_file, bus=bus)
        return AgentContext(config=config, store=store, client=client, bus=bus)

    return _make
