# raw world snapshot types
# src/bot_core/snapshot.py
"""
Snapshot structures for bot_core.

A RawWorldSnapshot is the read-only view of the world that task handlers
and the target selector work from. GameClient adapters build one per call
to `observe()`; nothing in the agent mutates it.

Design goals:
- Keep Raw* structures close to what the game-client library exposes.
- Positions are Vec3; yaw/pitch are radians in the client convention
  (yaw 0 looks toward -Z, pitch > 0 looks up).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from spec.types import Vec3


@dataclass
class RawEntity:
    """
    Raw entity data as reported by the game client.

    `handle` is the adapter's own object for the entity, passed back to
    it on attack().
    """

    entity_id: int
    kind: str  # "player", "mob", "object", ...
    position: Vec3
    name: Optional[str] = None
    height: float = 0.0
    handle: Any = field(default=None, repr=False, compare=False)


@dataclass
class RawBlock:
    """A single block looked up by position."""

    position: Vec3
    name: str = "unknown"
    handle: Any = field(default=None, repr=False, compare=False)


@dataclass
class RawWorldSnapshot:
    """
    Agent pose plus the entities and players currently known to the client.

    `players` maps player names to their entity, or None when the player is
    on the server but out of tracking range.
    """

    self_id: int
    position: Vec3
    yaw: float
    pitch: float
    height: float = 1.62
    entities: List[RawEntity] = field(default_factory=list)
    players: Dict[str, Optional[RawEntity]] = field(default_factory=dict)

    @property
    def eye_position(self) -> Vec3:
        return self.position.offset(0.0, self.height, 0.0)

    def player_entity(self, name: str) -> Optional[RawEntity]:
        """Return the tracked entity for `name`, or None if not visible."""
        return self.players.get(name)


__all__ = ["RawEntity", "RawBlock", "RawWorldSnapshot"]
