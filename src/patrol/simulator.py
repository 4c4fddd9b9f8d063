"""
Tick-based patrol simulator.

Each tick every robot:
1. picks (or keeps) a live event to respond to,
2. checks arrival at its target,
3. steers one step around obstacles (detour / teleport when boxed in),
4. updates its stuck counter and is rescued when it stops making progress.

All randomness comes from the injected random.Random, so a fixed seed
replays the same run.
"""
from __future__ import annotations

import logging
import math
import random
from typing import Iterable, Optional, Sequence

from floorplan.world import WorldConfig
from floorplan.zones import Point, ZoneGeometry, clamp
from incidents.models import Event

from .robot import BASE_SPEED, BASE_SPEED_JITTER, ROBOT_COUNT, TICK_MS, Robot, RobotMode
from .steering import (
    ReactiveTarget,
    find_closest_reactive_event,
    is_blocked,
    project_robot_target,
    resolve_steer_step,
    within_reach,
)

logger = logging.getLogger(__name__)

REACTIVE_MIN_SEVERITY = 2
ARRIVAL_EPSILON = 0.003
DETOUR_ANGLE_RAD = 0.92
DETOUR_DISTANCE = 0.08
STUCK_MOVE_THRESHOLD = 0.0006
STUCK_TICKS = 18
ZONE_CHANGE_PROBABILITY = 0.3
RESCUE_COOLDOWN_TICKS = 50
DEFAULT_LIVE_WINDOW_MS = 300_000


class PatrolSimulator:
    """
    Owns the robot population for one world.

    Args:
        world: Immutable zone geometry
        robot_count: Robots spawned by spawn_robots()
        rng: Random source (seed it for reproducible runs)
        tick_ms: Simulated time per tick
        live_window_ms: Events older than this are not reacted to
    """

    def __init__(
        self,
        world: WorldConfig,
        *,
        robot_count: int = ROBOT_COUNT,
        rng: Optional[random.Random] = None,
        tick_ms: int = TICK_MS,
        live_window_ms: int = DEFAULT_LIVE_WINDOW_MS,
    ):
        self.world = world
        self.robot_count = max(0, robot_count)
        self.rng = rng or random.Random()
        self.tick_ms = tick_ms
        self.live_window_ms = live_window_ms
        self.tick_count = 0
        self._robots: tuple[Robot, ...] = ()

    @property
    def robots(self) -> tuple[Robot, ...]:
        return self._robots

    def set_robots(self, robots: Iterable[Robot]) -> None:
        self._robots = tuple(robots)

    # ---- targets ----------------------------------------------------------

    def _zone_or_random(self, zone_id: Optional[str]) -> ZoneGeometry:
        return self.world.zone(zone_id) or self.rng.choice(self.world.zones)

    def _patrol_point(self, zone: ZoneGeometry) -> Point:
        sx, sy = zone.sample_point(self.rng)
        return project_robot_target(self.world, sx, sy, zone.zone_id)

    def spawn_robots(self) -> tuple[Robot, ...]:
        robots = []
        for idx in range(self.robot_count):
            zone = self.rng.choice(self.world.zones)
            ox, oy = self._patrol_point(zone)
            tx, ty = self._patrol_point(zone)
            base_speed = BASE_SPEED + self.rng.random() * BASE_SPEED_JITTER
            robots.append(
                Robot(
                    id=f"robot-{idx + 1}",
                    label=f"R{idx + 1}",
                    zone_id=zone.zone_id,
                    x=ox,
                    y=oy,
                    target_x=tx,
                    target_y=ty,
                    heading_rad=math.atan2(ty - oy, tx - ox),
                    speed=base_speed,
                    base_speed=base_speed,
                )
            )
        self._robots = tuple(robots)
        logger.info("Spawned %d robots", len(robots))
        return self._robots

    def rebind_world(self, world: WorldConfig) -> None:
        """
        Swap in a new world. Robots whose zone disappeared are moved to a
        random zone; the others keep their state.
        """
        self.world = world
        rebound = []
        for robot in self._robots:
            if world.has_zone(robot.zone_id):
                rebound.append(robot)
                continue
            zone = self.rng.choice(world.zones)
            x, y = self._patrol_point(zone)
            tx, ty = self._patrol_point(zone)
            rebound.append(
                robot.evolve(
                    zone_id=zone.zone_id, x=x, y=y, target_x=tx, target_y=ty,
                    speed=robot.base_speed, mode=RobotMode.PATROL, assigned_event_id=None,
                    stuck_ticks=0,
                )
            )
        self._robots = tuple(rebound)

    def reactive_targets(self, events: Iterable[Event], now_ms: int) -> list[ReactiveTarget]:
        targets = []
        for event in events:
            if event.severity < REACTIVE_MIN_SEVERITY:
                continue
            if not event.is_live(now_ms, self.live_window_ms):
                continue
            x, y = project_robot_target(self.world, event.x, event.y, event.zone_id)
            targets.append(ReactiveTarget(event.id, event.zone_id, event.severity, x, y))
        return targets

    # ---- tick -------------------------------------------------------------

    def tick(self, events: Sequence[Event], now_ms: int) -> tuple[Robot, ...]:
        """Advance every robot by one tick against a snapshot of the events."""
        targets = self.reactive_targets(events, now_ms)
        self._robots = tuple(self._step_robot(robot, targets) for robot in self._robots)
        self.tick_count += 1
        return self._robots

    def _choose_response(self, robot: Robot, targets: Sequence[ReactiveTarget]) -> Optional[ReactiveTarget]:
        if robot.abandon_cooldown > 0 and robot.abandoned_event_id is not None:
            targets = [t for t in targets if t.id != robot.abandoned_event_id]

        if robot.assigned_event_id is not None:
            for target in targets:
                if target.id == robot.assigned_event_id and within_reach(robot, target):
                    return target
        return find_closest_reactive_event(robot, targets)

    def _back_to_patrol(self, robot: Robot, zone: ZoneGeometry) -> Robot:
        tx, ty = self._patrol_point(zone)
        return robot.evolve(
            zone_id=zone.zone_id,
            target_x=tx,
            target_y=ty,
            speed=robot.base_speed,
            mode=RobotMode.PATROL,
            assigned_event_id=None,
            stuck_ticks=0,
        )

    def _step_robot(self, robot: Robot, targets: Sequence[ReactiveTarget]) -> Robot:
        start_x, start_y = robot.x, robot.y
        current_zone = self._zone_or_random(robot.zone_id)

        if robot.abandon_cooldown > 0:
            cooldown = robot.abandon_cooldown - 1
            robot = robot.evolve(
                abandon_cooldown=cooldown,
                abandoned_event_id=robot.abandoned_event_id if cooldown > 0 else None,
            )

        response = self._choose_response(robot, targets)
        if response is not None:
            tx, ty = project_robot_target(self.world, response.x, response.y, response.zone_id)
            robot = robot.evolve(
                zone_id=response.zone_id if self.world.has_zone(response.zone_id) else robot.zone_id,
                target_x=tx,
                target_y=ty,
                speed=robot.responding_speed,
                mode=RobotMode.RESPONDING,
                assigned_event_id=response.id,
            )
        elif robot.mode == RobotMode.RESPONDING:
            robot = self._back_to_patrol(robot, self._zone_or_random(robot.zone_id))

        step = robot.speed * (self.tick_ms / 1000.0)
        if robot.distance_to_target() <= max(step, ARRIVAL_EPSILON):
            return self._arrive(robot, current_zone)

        robot = self._move(robot, step, current_zone)

        moved = math.hypot(robot.x - start_x, robot.y - start_y)
        stuck_ticks = robot.stuck_ticks + 1 if moved < STUCK_MOVE_THRESHOLD else 0
        if stuck_ticks >= STUCK_TICKS:
            return self._rescue(robot)
        return robot.evolve(stuck_ticks=stuck_ticks)

    def _arrive(self, robot: Robot, current_zone: ZoneGeometry) -> Robot:
        x, y = robot.target_x, robot.target_y
        if robot.mode == RobotMode.RESPONDING:
            zone = self._zone_or_random(robot.zone_id)
            tx, ty = self._patrol_point(zone)
            return robot.evolve(
                x=x, y=y, zone_id=zone.zone_id, target_x=tx, target_y=ty,
                speed=robot.base_speed, mode=RobotMode.PATROL, assigned_event_id=None,
                heading_rad=math.atan2(ty - y, tx - x), stuck_ticks=0,
            )

        if self.rng.random() < ZONE_CHANGE_PROBABILITY:
            zone = self.rng.choice(self.world.zones)
        else:
            zone = current_zone
        tx, ty = self._patrol_point(zone)
        return robot.evolve(
            x=x, y=y, zone_id=zone.zone_id, target_x=tx, target_y=ty,
            heading_rad=math.atan2(ty - y, tx - x), stuck_ticks=0,
        )

    def _move(self, robot: Robot, step: float, current_zone: ZoneGeometry) -> Robot:
        steered = resolve_steer_step(self.world, robot, step)
        if steered is not None:
            x, y, heading = steered
            return robot.evolve(x=x, y=y, heading_rad=heading)

        # Whole fan blocked: aim at a side detour, position unchanged.
        side = DETOUR_ANGLE_RAD if self.rng.random() < 0.5 else -DETOUR_ANGLE_RAD
        detour_heading = robot.heading_rad + side
        dx = clamp(robot.x + math.cos(detour_heading) * DETOUR_DISTANCE)
        dy = clamp(robot.y + math.sin(detour_heading) * DETOUR_DISTANCE)
        px, py = project_robot_target(self.world, dx, dy, robot.zone_id)
        if not is_blocked(self.world, px, py):
            return robot.evolve(target_x=px, target_y=py, heading_rad=detour_heading)

        # No detour either: relocate to open floor in the zone.
        zone = self.world.zone(robot.zone_id) or current_zone
        fx, fy = self._patrol_point(zone)
        logger.debug("Robot %s boxed in at (%.3f, %.3f); relocating", robot.id, robot.x, robot.y)
        return robot.evolve(
            x=fx, y=fy, target_x=fx, target_y=fy, speed=robot.base_speed,
            mode=RobotMode.PATROL, assigned_event_id=None, heading_rad=detour_heading,
        )

    def _rescue(self, robot: Robot) -> Robot:
        zone = self._zone_or_random(robot.zone_id)
        logger.debug("Robot %s stuck for %d ticks; abandoning %s", robot.id, STUCK_TICKS, robot.assigned_event_id)
        rescued = self._back_to_patrol(robot, zone)
        if robot.assigned_event_id is not None:
            rescued = rescued.evolve(
                abandoned_event_id=robot.assigned_event_id,
                abandon_cooldown=RESCUE_COOLDOWN_TICKS,
            )
        return rescued
