# src/bot_core/nav/__init__.py
"""
Navigation helpers for bot_core.

Provides:
- GoalNear: proximity goal handed to the game client's movement planner
- wait_for_goal: single-shot wait on arrival / noPath / stuck / timeout
"""

from __future__ import annotations

from .goals import FATAL_RESET_REASONS, GoalNear, wait_for_goal

__all__ = [
    "GoalNear",
    "wait_for_goal",
    "FATAL_RESET_REASONS",
]
