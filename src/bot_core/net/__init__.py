# bot_core.net package
# src/bot_core/net/__init__.py
"""
Game client layer for bot_core.

This package provides:
- create_game_client_for_env: factory wired to the resolved AgentConfig
- mineflayer_client: the mineflayer adapter (imported lazily, it needs
  Node.js and the JSPyBridge `javascript` package)
"""

from __future__ import annotations

from .client import create_game_client_for_env

__all__ = [
    "create_game_client_for_env",
]
