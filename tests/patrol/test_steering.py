import pytest

from floorplan.walkable import zone_walkable
from patrol.robot import Robot
from patrol.steering import (
    ROBOT_HOLE_PADDING_NORM,
    ROBOT_ZONE_EDGE_PADDING_NORM,
    ReactiveTarget,
    find_closest_reactive_event,
    is_blocked,
    project_robot_target,
    resolve_steer_step,
    within_reach,
)


def robot_at(x, y, target=(0.5, 0.5), **extra):
    return Robot(
        id="r1", label="R1", zone_id="zone-b", x=x, y=y,
        target_x=target[0], target_y=target[1], heading_rad=0.0,
        speed=0.03, base_speed=0.03, **extra,
    )


@pytest.mark.parametrize(
    "point, blocked",
    [
        ((0.5, 0.5), False),
        ((0.75, 0.5), True),
        # clearance probe reaches the padded hole bounds
        ((0.68, 0.5), True),
        ((0.66, 0.5), False),
        ((0.003, 0.5), True),
        ((0.5, 0.998), True),
    ],
)
def test_is_blocked(world, point, blocked):
    assert is_blocked(world, *point) is blocked


def test_steer_straight_when_clear(world):
    robot = robot_at(0.5, 0.5, target=(0.6, 0.5))
    x, y, heading = resolve_steer_step(world, robot, 0.01)
    assert (x, y) == pytest.approx((0.51, 0.5))
    assert heading == pytest.approx(0.0)


def test_steer_fans_out_around_obstacle(world):
    # straight ahead clips the padded hole, a side heading does not
    robot = robot_at(0.67, 0.5, target=(0.75, 0.5))
    x, y, heading = resolve_steer_step(world, robot, 0.01)
    assert heading != 0.0
    assert not is_blocked(world, x, y)


def test_steer_fully_blocked(world):
    robot = robot_at(0.678, 0.5, target=(0.75, 0.5))
    assert resolve_steer_step(world, robot, 0.01) is None


def test_project_robot_target(world):
    x, y = project_robot_target(world, 0.75, 0.5, "zone-b")
    assert zone_walkable(world.zone("zone-b"), x, y, ROBOT_HOLE_PADDING_NORM, ROBOT_ZONE_EDGE_PADDING_NORM)

    # unknown zone: clamped only
    assert project_robot_target(world, 1.5, -1.0, "dock-7") == (1.0, 0.0)


def test_find_closest_reactive_event_prefers_severity(world):
    robot = robot_at(0.5, 0.5)
    near_low = ReactiveTarget("near", "zone-b", 2, 0.55, 0.5)
    far_high = ReactiveTarget("far", "zone-b", 3, 0.56, 0.5)
    out_of_reach = ReactiveTarget("away", "zone-b", 3, 0.9, 0.9)

    # 0.05 - 0.06 vs 0.06 - 0.09
    assert find_closest_reactive_event(robot, [near_low, far_high, out_of_reach]).id == "far"
    assert find_closest_reactive_event(robot, [out_of_reach]) is None
    assert find_closest_reactive_event(robot, []) is None


def test_within_reach():
    robot = robot_at(0.5, 0.5)
    assert within_reach(robot, ReactiveTarget("e", "zone-b", 2, 0.7, 0.5))
    assert not within_reach(robot, ReactiveTarget("e", "zone-b", 2, 0.75, 0.5))
