# src/bot_core/targeting.py
"""
Attack target selection.

Pure functions over a RawWorldSnapshot. A candidate must be:
  - of an eligible kind, and not the agent itself
  - within attack range of the agent's eye (strictly beyond range is out)
  - visible, when a line-of-sight check is available
  - roughly in front: cos(angle to look direction) >= fov threshold

Survivors are scored 2 * cos + (range - distance), which prefers targets
that are both centred and close. Ties keep the first candidate in
snapshot order.
"""

from __future__ import annotations

import math
from typing import Callable, Optional

from env.schema import CombatConfig
from spec.types import Vec3

from .snapshot import RawEntity, RawWorldSnapshot

LineOfSightFn = Callable[[RawEntity], bool]

# Guards the direction normalisation for an entity sitting on the eye.
_MIN_LENGTH = 1e-4


def look_direction(yaw: float, pitch: float) -> Vec3:
    """
    Unit look vector for client yaw/pitch (radians).

    yaw 0 looks toward -Z, yaw pi/2 toward -X; positive pitch looks up.
    """
    return Vec3(
        -math.sin(yaw) * math.cos(pitch),
        math.sin(pitch),
        -math.cos(yaw) * math.cos(pitch),
    )


def pick_attack_target(
    snapshot: RawWorldSnapshot,
    combat: CombatConfig,
    can_see: Optional[LineOfSightFn] = None,
) -> Optional[RawEntity]:
    """Return the best attackable entity, or None."""
    direction = look_direction(snapshot.yaw, snapshot.pitch)
    eye = snapshot.eye_position

    best: Optional[RawEntity] = None
    best_score = -math.inf

    for entity in snapshot.entities:
        if entity.kind not in combat.kinds:
            continue
        if entity.entity_id == snapshot.self_id:
            continue

        dist = eye.distance_to(entity.position)
        if dist > combat.range:
            continue

        if can_see is not None and not can_see(entity):
            continue

        to_target = entity.position.minus(eye)
        cos_angle = direction.dot(to_target.scaled(1.0 / max(_MIN_LENGTH, to_target.norm())))
        if cos_angle < combat.fov_cos:
            continue

        score = 2.0 * cos_angle + (combat.range - dist)
        if score > best_score:
            best_score = score
            best = entity

    return best


__all__ = ["look_direction", "pick_attack_target", "LineOfSightFn"]
