from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

ROBOT_COUNT = 4
TICK_MS = 80

BASE_SPEED = 0.026                 # normalized units per second
BASE_SPEED_JITTER = 0.012
RESPONSE_SPEED_FACTOR = 1.16
RESPONSE_SPEED_MIN = 0.03


class RobotMode(str, Enum):
    PATROL = "patrol"
    RESPONDING = "responding"


@dataclass(frozen=True)
class Robot:
    """
    One patrol robot. Replaced (never mutated) every tick.
    Positions and targets are in map-normalized space.
    """
    id: str
    label: str
    zone_id: str
    x: float
    y: float
    target_x: float
    target_y: float
    heading_rad: float
    speed: float
    base_speed: float
    mode: RobotMode = RobotMode.PATROL
    assigned_event_id: Optional[str] = None
    stuck_ticks: int = 0

    # Event given up on by the last stuck rescue, ignored while cooldown > 0
    abandoned_event_id: Optional[str] = None
    abandon_cooldown: int = 0

    @property
    def responding_speed(self) -> float:
        return max(self.base_speed * RESPONSE_SPEED_FACTOR, RESPONSE_SPEED_MIN)

    def distance_to_target(self) -> float:
        return math.hypot(self.target_x - self.x, self.target_y - self.y)

    def heading_to(self, x: float, y: float) -> float:
        return math.atan2(y - self.y, x - self.x)

    def evolve(self, **changes) -> "Robot":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "zone_id": self.zone_id,
            "x": self.x,
            "y": self.y,
            "target_x": self.target_x,
            "target_y": self.target_y,
            "heading_rad": self.heading_rad,
            "speed": self.speed,
            "base_speed": self.base_speed,
            "mode": RobotMode(self.mode).value,
            "assigned_event_id": self.assigned_event_id,
            "stuck_ticks": self.stuck_ticks,
            "abandoned_event_id": self.abandoned_event_id,
            "abandon_cooldown": self.abandon_cooldown,
        }
