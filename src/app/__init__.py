# src/app/__init__.py
"""
Application entrypoints for the task agent.

Exposes:
- AgentRuntime: wiring of config, store, client, runner and dispatcher,
  plus the connection lifecycle (exit or reconnect on disconnect)
- main: CLI entry (`python -m app.runtime [run|status]`)
"""

from __future__ import annotations

from .runtime import AgentRuntime, main

__all__ = [
    "AgentRuntime",
    "main",
]
