"""
Local steering around obstacles.

No planner: each tick a robot tries a fixed fan of headings around the
direct bearing to its target and takes the first one whose next position
keeps every clearance probe out of holes (and their padded bounds).
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional

from floorplan.walkable import project_to_walkable
from floorplan.world import WorldConfig
from floorplan.zones import Point, clamp, point_in_polygon

from .robot import Robot

ROBOT_CLEARANCE = 0.007
ROBOT_HOLE_PADDING_NORM = 0.014
ROBOT_ZONE_EDGE_PADDING_NORM = 0.004

EVENT_REACTION_DISTANCE_NORM = 0.22
SEVERITY_WEIGHT = 0.03

STEER_ANGLES_RAD = (0.0, 0.32, -0.32, 0.64, -0.64, 0.96, -0.96, 1.26, -1.26)

_DIAG = ROBOT_CLEARANCE * 0.72
CLEARANCE_PROBES = (
    (0.0, 0.0),
    (ROBOT_CLEARANCE, 0.0),
    (-ROBOT_CLEARANCE, 0.0),
    (0.0, ROBOT_CLEARANCE),
    (0.0, -ROBOT_CLEARANCE),
    (_DIAG, _DIAG),
    (_DIAG, -_DIAG),
    (-_DIAG, _DIAG),
    (-_DIAG, -_DIAG),
)


@dataclass(frozen=True)
class ReactiveTarget:
    """A live event as the robots see it: projected onto walkable floor."""
    id: str
    zone_id: str
    severity: int
    x: float
    y: float


def project_robot_target(world: WorldConfig, x: float, y: float, zone_id: Optional[str]) -> Point:
    zone = world.zone(zone_id)
    if zone is None:
        return (clamp(x), clamp(y))
    return project_to_walkable(zone, x, y, ROBOT_HOLE_PADDING_NORM, ROBOT_ZONE_EDGE_PADDING_NORM)


def is_blocked(world: WorldConfig, x: float, y: float) -> bool:
    """Too close to the map edge, or any clearance probe hits a hole."""
    if x < ROBOT_CLEARANCE or x > 1 - ROBOT_CLEARANCE or y < ROBOT_CLEARANCE or y > 1 - ROBOT_CLEARANCE:
        return True
    for ox, oy in CLEARANCE_PROBES:
        px = clamp(x + ox)
        py = clamp(y + oy)
        if any(point_in_polygon(px, py, hole) for hole in world.hole_polygons):
            return True
        if any(b.contains(px, py, ROBOT_HOLE_PADDING_NORM) for b in world.hole_bounds):
            return True
    return False


def resolve_steer_step(world: WorldConfig, robot: Robot, step: float) -> Optional[tuple[float, float, float]]:
    """
    Returns (x, y, heading) for the first unblocked heading, or None if the
    whole fan is blocked.
    """
    base = robot.heading_to(robot.target_x, robot.target_y)
    for offset in STEER_ANGLES_RAD:
        heading = base + offset
        x = robot.x + math.cos(heading) * step
        y = robot.y + math.sin(heading) * step
        if not is_blocked(world, x, y):
            return (x, y, heading)
    return None


def find_closest_reactive_event(robot: Robot, targets: Iterable[ReactiveTarget]) -> Optional[ReactiveTarget]:
    """Closest event within reach, biased towards higher severity."""
    best = None
    best_score = math.inf
    for target in targets:
        distance = math.hypot(target.x - robot.x, target.y - robot.y)
        if distance > EVENT_REACTION_DISTANCE_NORM:
            continue
        score = distance - target.severity * SEVERITY_WEIGHT
        if score < best_score:
            best = target
            best_score = score
    return best


def within_reach(robot: Robot, target: ReactiveTarget) -> bool:
    return math.hypot(target.x - robot.x, target.y - robot.y) <= EVENT_REACTION_DISTANCE_NORM
