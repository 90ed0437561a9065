# bot_core package
# src/bot_core/__init__.py
"""
bot_core package: the agent's body.

Exports:
    - TaskExecutor: runs task descriptors against a GameClient
    - pick_attack_target: combat target selection
    - GoalNear / wait_for_goal: movement goals
    - TaskTracer: per-run task tracing
"""

from __future__ import annotations

from .actions import TaskExecutor
from .nav import GoalNear, wait_for_goal
from .targeting import pick_attack_target
from .tracing import TaskTracer

__all__ = [
    "TaskExecutor",
    "GoalNear",
    "wait_for_goal",
    "pick_attack_target",
    "TaskTracer",
]
