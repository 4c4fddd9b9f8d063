"""
Walkability resolution.

A point is walkable for a zone when it is inside the outer polygon (minus an
edge margin taken from the zone's bounding box) and outside every hole and
its padded bounding box. Two searches relocate unwalkable points:

- spiral_snap: expanding square rings around the point, used when snapping
  normalized events onto the floor.
- project_to_walkable: a bounded grid over the zone, used for on-demand
  projection of robot targets and UI markers.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Optional

from .world import WorldConfig
from .zones import Point, ZoneGeometry, clamp, point_in_polygon

HOLE_PADDING_NORM = 0.024
ZONE_EDGE_PADDING_NORM = 0.012

MARKER_HOLE_PADDING_NORM = 0.03
MARKER_ZONE_EDGE_PADDING_NORM = 0.016

SPIRAL_STEP = 0.003
SPIRAL_MAX_RINGS = 60
ZONE_SAMPLE_STEPS = 24


def zone_walkable(
    zone: ZoneGeometry,
    x: float,
    y: float,
    hole_padding: float = HOLE_PADDING_NORM,
    edge_padding: float = ZONE_EDGE_PADDING_NORM,
) -> bool:
    if not zone.point_in_outer(x, y):
        return False
    if edge_padding > 0 and not zone.outer_bounds.contains(x, y, -edge_padding):
        return False
    return not zone.point_in_hole(x, y, hole_padding)


def spiral_snap(
    x0: float,
    y0: float,
    is_walkable: Callable[[float, float], bool],
    step: float = SPIRAL_STEP,
    max_rings: int = SPIRAL_MAX_RINGS,
) -> Optional[Point]:
    """
    Search square rings of radius ring*step around (x0, y0).

    Returns the closest walkable sample of the FIRST ring that has any
    walkable sample, or None after max_rings. Not an exact nearest-point
    search; work is bounded by max_rings.
    """
    for ring in range(1, max_rings + 1):
        reach = ring * step
        best: Optional[Point] = None
        best_d2 = math.inf

        def test(x: float, y: float) -> None:
            nonlocal best, best_d2
            cx = clamp(x)
            cy = clamp(y)
            if not is_walkable(cx, cy):
                return
            d2 = (cx - x0) ** 2 + (cy - y0) ** 2
            if d2 < best_d2:
                best = (cx, cy)
                best_d2 = d2

        # top and bottom strips
        for i in range(-ring, ring + 1):
            x = x0 + i * step
            test(x, y0 - reach)
            test(x, y0 + reach)

        # left and right strips (corners already covered)
        for j in range(-ring + 1, ring):
            y = y0 + j * step
            test(x0 - reach, y)
            test(x0 + reach, y)

        if best is not None:
            return best

    return None


def project_to_walkable(
    zone: ZoneGeometry,
    x0: float,
    y0: float,
    hole_padding: float,
    edge_padding: float,
    steps: int = ZONE_SAMPLE_STEPS,
) -> Point:
    """
    Bounded-grid projection into a zone's walkable area.

    Tries the centroid, then a steps x steps grid of cell centers over the
    zone bounds, keeping the closest walkable sample. If nothing is walkable
    and an edge margin was applied, retries once without it. Falls back to
    the clamped input point.
    """
    x = clamp(x0)
    y = clamp(y0)
    if zone_walkable(zone, x, y, hole_padding, edge_padding):
        return (x, y)

    best: Optional[Point] = None
    best_d2 = math.inf

    def try_candidate(cx: float, cy: float) -> None:
        nonlocal best, best_d2
        nx = clamp(cx)
        ny = clamp(cy)
        if not zone_walkable(zone, nx, ny, hole_padding, edge_padding):
            return
        d2 = (nx - x) ** 2 + (ny - y) ** 2
        if d2 < best_d2:
            best = (nx, ny)
            best_d2 = d2

    try_candidate(*zone.centroid)

    b = zone.outer_bounds
    for yi in range(steps):
        py = b.min_y + ((yi + 0.5) / steps) * b.height
        for xi in range(steps):
            px = b.min_x + ((xi + 0.5) / steps) * b.width
            try_candidate(px, py)

    if best is None:
        if edge_padding > 0:
            return project_to_walkable(zone, x, y, hole_padding, 0.0, steps)
        return (x, y)
    return best


def blocked_by_any_hole(world: WorldConfig, x: float, y: float, padding: float = HOLE_PADDING_NORM) -> bool:
    if any(point_in_polygon(x, y, hole) for hole in world.hole_polygons):
        return True
    return any(b.contains(x, y, padding) for b in world.hole_bounds)


@dataclass(frozen=True)
class FloorPoint:
    x: float
    y: float
    moved: bool = False  # True when relocated; explicit world meters no longer apply

    def with_meters(self, world: WorldConfig) -> tuple[float, float]:
        return world.transform.map_norm_to_meters(self.x, self.y)


def snap_to_floor(world: WorldConfig, x0: float, y0: float, zone_id: str) -> FloorPoint:
    """
    Snap a resolved event point onto walkable floor for its zone.

    - walkable, or exactly the zone centroid: kept as is (clamped)
    - outside the zone's outer polygon: zone centroid (likely a bad
      resolution, the centroid is a safe representative)
    - blocked by a hole or edge margin: spiral snap, else centroid
    - unknown zone: only kept off known holes; kept as is if no escape
    """
    x = clamp(x0)
    y = clamp(y0)

    zone = world.zone(zone_id)
    if zone is not None:
        if zone_walkable(zone, x, y) or (x, y) == zone.centroid:
            return FloorPoint(x, y)
        if not zone.point_in_outer(x, y):
            return FloorPoint(*zone.centroid, moved=True)
        snapped = spiral_snap(x, y, lambda px, py: zone_walkable(zone, px, py))
        if snapped is not None:
            return FloorPoint(*snapped, moved=True)
        return FloorPoint(*zone.centroid, moved=True)

    def off_holes(px: float, py: float) -> bool:
        return not blocked_by_any_hole(world, px, py)

    if off_holes(x, y):
        return FloorPoint(x, y)
    snapped = spiral_snap(x, y, off_holes)
    if snapped is None:
        return FloorPoint(x, y)
    return FloorPoint(*snapped, moved=True)


def resolve_marker_point(world: WorldConfig, x0: float, y0: float, zone_id: Optional[str]) -> Point:
    """
    Project an event position to where its marker is drawn. Uses wider
    paddings than the robots so markers never overlap fixtures. For an
    unknown zone, the closest projection over all zones wins.
    """
    x = clamp(x0)
    y = clamp(y0)
    zone = world.zone(zone_id)
    if zone is not None:
        return project_to_walkable(zone, x, y, MARKER_HOLE_PADDING_NORM, MARKER_ZONE_EDGE_PADDING_NORM)

    best: Point = (x, y)
    best_d2 = math.inf
    for candidate_zone in world.zones:
        cx, cy = project_to_walkable(
            candidate_zone, x, y, MARKER_HOLE_PADDING_NORM, MARKER_ZONE_EDGE_PADDING_NORM
        )
        d2 = (cx - x) ** 2 + (cy - y) ** 2
        if d2 < best_d2:
            best = (cx, cy)
            best_d2 = d2
    return best
