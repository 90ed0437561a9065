# src/spec/__init__.py

from __future__ import annotations

"""
Public spec surface for the task agent.

This module re-exports *interfaces and data types* used across the codebase:
  - task descriptors and their JSON codec
  - Vec3 geometry
  - the GameClient protocol consumed from the game-client adapter

Deliberately does NOT export concrete implementations to avoid circular
imports; runtime wiring lives in src/agent/ and src/app/.
"""

# Geometry + task descriptors
from .types import (
    Vec3,
    TaskDescriptor,
    TaskFormatError,
    WaitTask,
    GotoTask,
    FollowTask,
    RightClickItemTask,
    RightClickBlockTask,
    AttackLoopTask,
    AfkTask,
    UnknownTask,
    task_from_dict,
    task_to_dict,
    describe_task,
)

# Game client capability surface
from .bot_core import (
    GameClient,
    CLIENT_EVENTS,
    line_of_sight,
)

__all__ = [
    # Geometry
    "Vec3",
    # Tasks
    "TaskDescriptor",
    "TaskFormatError",
    "WaitTask",
    "GotoTask",
    "FollowTask",
    "RightClickItemTask",
    "RightClickBlockTask",
    "AttackLoopTask",
    "AfkTask",
    "UnknownTask",
    "task_from_dict",
    "task_to_dict",
    "describe_task",
    # Game client
    "GameClient",
    "CLIENT_EVENTS",
    "line_of_sight",
]
