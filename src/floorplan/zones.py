"""
Zone geometry for the store floor plan.

Zones are loaded once from the zone map (pixel space) and normalized to 0..1
map space. Each zone has one outer boundary and zero or more holes (shelves,
islands, counters) that robots and markers must stay out of.
"""
from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

logger = logging.getLogger(__name__)

Point = tuple[float, float]
Polygon = tuple[Point, ...]

DEFAULT_CENTROID: Point = (0.5, 0.5)
SAMPLE_ATTEMPTS = 40


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned bounding box in normalized space."""
    min_x: float
    max_x: float
    min_y: float
    max_y: float

    def contains(self, x: float, y: float, padding: float = 0.0) -> bool:
        """
        True if (x, y) is inside the box grown by `padding`.
        A negative padding shrinks the box (used for edge margins).
        """
        return (
            self.min_x - padding <= x <= self.max_x + padding
            and self.min_y - padding <= y <= self.max_y + padding
        )

    @property
    def width(self) -> float:
        return max(0.0, self.max_x - self.min_x)

    @property
    def height(self) -> float:
        return max(0.0, self.max_y - self.min_y)


def polygon_bounds(points: Sequence[Point]) -> Bounds:
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return Bounds(min_x=min(xs), max_x=max(xs), min_y=min(ys), max_y=max(ys))


def point_in_polygon(x: float, y: float, polygon: Sequence[Point]) -> bool:
    """Even-odd ray casting test."""
    inside = False
    n = len(polygon)
    if n < 3:
        return False
    j = n - 1
    for i in range(n):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        if (yi > y) != (yj > y):
            x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < x_cross:
                inside = not inside
        j = i
    return inside


@dataclass(frozen=True)
class ZoneGeometry:
    zone_id: str
    name: str
    outer: Polygon
    holes: tuple[Polygon, ...]
    outer_bounds: Bounds
    hole_bounds: tuple[Bounds, ...]
    centroid: Point

    def point_in_outer(self, x: float, y: float) -> bool:
        return point_in_polygon(x, y, self.outer)

    def point_in_hole(self, x: float, y: float, padding: float = 0.0) -> bool:
        """
        True if the point is inside any hole polygon OR inside any hole's
        bounding box grown by `padding`.

        The padded-box check is intentionally coarser than the polygon: hole
        polygons are small compared to rendering tolerance, and navigation
        relies on this being conservative.
        """
        if any(point_in_polygon(x, y, hole) for hole in self.holes):
            return True
        return any(b.contains(x, y, padding) for b in self.hole_bounds)

    def sample_point(self, rng: random.Random) -> Point:
        """Random point inside the outer polygon and outside hole polygons."""
        b = self.outer_bounds
        for _ in range(SAMPLE_ATTEMPTS):
            x = b.min_x + rng.random() * b.width
            y = b.min_y + rng.random() * b.height
            if not self.point_in_outer(x, y):
                continue
            if any(point_in_polygon(x, y, hole) for hole in self.holes):
                continue
            return (x, y)
        return self.centroid


def finite_number(value: Any) -> Optional[float]:
    """Finite float or None; booleans and ints too large for a float are rejected."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _normalize_polygon(raw: Any, width: float, height: float) -> list[Point]:
    if not isinstance(raw, (list, tuple)):
        return []
    points: list[Point] = []
    for pair in raw:
        if not isinstance(pair, (list, tuple)) or len(pair) < 2:
            continue
        px = finite_number(pair[0])
        py = finite_number(pair[1])
        if px is None or py is None:
            continue
        points.append((px / width, py / height))
    return points


def _normalize_centroid(raw: Any, width: float, height: float) -> Point:
    if not isinstance(raw, (list, tuple)) or len(raw) < 2:
        return DEFAULT_CENTROID
    cx = finite_number(raw[0])
    cy = finite_number(raw[1])
    x = clamp(cx / width) if cx is not None else DEFAULT_CENTROID[0]
    y = clamp(cy / height) if cy is not None else DEFAULT_CENTROID[1]
    return (x, y)


def load_zones(raw_zone_defs: Iterable[Any], map_width: float, map_height: float) -> list[ZoneGeometry]:
    """
    Build normalized zone geometry from pixel-space zone definitions.

    Args:
        raw_zone_defs: Iterable of zone dicts (`zone_id`, `name`, `polygon`,
            optional `holes` and `centroid`, all in map pixels)
        map_width: Floor-plan image width in pixels
        map_height: Floor-plan image height in pixels

    Returns:
        List of ZoneGeometry. Malformed vertices and holes are dropped;
        zones without a usable outer polygon are skipped.
    """
    if map_width <= 0 or map_height <= 0:
        raise ValueError(f"Map size must be positive, got {map_width}x{map_height}")

    zones: list[ZoneGeometry] = []
    for raw in raw_zone_defs or []:
        if not isinstance(raw, dict):
            logger.warning("Skipping zone entry that is not an object: %r", raw)
            continue

        zone_id = raw.get("zone_id")
        if not isinstance(zone_id, str) or not zone_id.strip():
            logger.warning("Skipping zone without zone_id")
            continue
        zone_id = zone_id.strip()

        outer = _normalize_polygon(raw.get("polygon"), map_width, map_height)
        if len(outer) < 3:
            logger.warning("Skipping zone %s: outer polygon has %d usable vertices", zone_id, len(outer))
            continue

        holes: list[Polygon] = []
        for raw_hole in raw.get("holes") or []:
            hole = _normalize_polygon(raw_hole, map_width, map_height)
            if len(hole) < 3:
                logger.warning("Dropping malformed hole in zone %s", zone_id)
                continue
            holes.append(tuple(hole))

        zones.append(
            ZoneGeometry(
                zone_id=zone_id,
                name=str(raw.get("name") or zone_id),
                outer=tuple(outer),
                holes=tuple(holes),
                outer_bounds=polygon_bounds(outer),
                hole_bounds=tuple(polygon_bounds(h) for h in holes),
                centroid=_normalize_centroid(raw.get("centroid"), map_width, map_height),
            )
        )

    return zones


def nearest_zone_by_centroid(zones: Sequence[ZoneGeometry], x: float, y: float) -> Optional[ZoneGeometry]:
    best: Optional[ZoneGeometry] = None
    best_d2 = math.inf
    for zone in zones:
        dx = x - zone.centroid[0]
        dy = y - zone.centroid[1]
        d2 = dx * dx + dy * dy
        if d2 < best_d2:
            best = zone
            best_d2 = d2
    return best
