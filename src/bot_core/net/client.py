# game client factory
# src/bot_core/net/client.py
"""
Client factory for bot_core.

Builds the GameClient the agent talks to, based on the resolved
AgentConfig (BOT_CLIENT / `client_mode`):

  - "mineflayer": MineflayerClient, the real game client (Node.js
    mineflayer + mineflayer-pathfinder driven through JSPyBridge)
  - "fake":       FakeGameClient, an in-memory client for offline runs
"""

from __future__ import annotations

from typing import Optional

from agent.errors import GameClientError
from env.loader import load_environment
from env.schema import AgentConfig
from spec.bot_core import GameClient


def create_game_client_for_env(config: Optional[AgentConfig] = None) -> GameClient:
    """
    Construct the GameClient selected by `config.client_mode`.

    When no config is passed the environment is loaded here.
    """
    config = config if config is not None else load_environment()
    mode = config.client_mode

    # Lazy imports: the mineflayer adapter starts a Node.js bridge on import.
    if mode == "mineflayer":
        from .mineflayer_client import MineflayerClient

        return MineflayerClient(config.connection)
    elif mode == "fake":
        from ..testing.fakes import FakeGameClient

        return FakeGameClient(username=config.connection.username)
    else:
        raise GameClientError("unknown_client_mode", {"client_mode": mode})
