from __future__ import annotations

from dataclasses import dataclass

from .zones import Point, clamp

MIN_WORLD_SIZE_M = 0.001


@dataclass(frozen=True)
class CoordinateTransform:
    """
    Maps between map-normalized space (proportional to the floor-plan image)
    and world-normalized space (proportional to the physical footprint).

    The floor plan is fitted inside the world footprint: one axis fills the
    world exactly, the other is scaled down and centered (letterboxed).

        world_norm = offset + scale * map_norm
    """
    map_width: float
    map_height: float
    world_width_m: float
    world_depth_m: float
    offset_x_m: float = 0.0
    offset_z_m: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0

    @classmethod
    def from_dimensions(
        cls,
        map_width: float,
        map_height: float,
        world_width_m: float,
        world_depth_m: float,
        offset_x_m: float = 0.0,
        offset_z_m: float = 0.0,
    ) -> "CoordinateTransform":
        if map_width <= 0 or map_height <= 0:
            raise ValueError(f"Map size must be positive, got {map_width}x{map_height}")
        world_width_m = max(MIN_WORLD_SIZE_M, world_width_m)
        world_depth_m = max(MIN_WORLD_SIZE_M, world_depth_m)

        map_aspect = map_width / map_height
        world_aspect = world_width_m / world_depth_m

        if map_aspect >= world_aspect:
            # Map is relatively wider: width fills, height is letterboxed.
            scale_x, scale_y = 1.0, world_aspect / map_aspect
        else:
            scale_x, scale_y = map_aspect / world_aspect, 1.0

        return cls(
            map_width=map_width,
            map_height=map_height,
            world_width_m=world_width_m,
            world_depth_m=world_depth_m,
            offset_x_m=offset_x_m,
            offset_z_m=offset_z_m,
            scale_x=scale_x,
            scale_y=scale_y,
            offset_x=(1.0 - scale_x) / 2.0,
            offset_y=(1.0 - scale_y) / 2.0,
        )

    def map_norm_to_world_norm(self, x: float, y: float) -> Point:
        return (self.offset_x + self.scale_x * x, self.offset_y + self.scale_y * y)

    def world_norm_to_map_norm(self, x: float, y: float) -> Point:
        return ((x - self.offset_x) / self.scale_x, (y - self.offset_y) / self.scale_y)

    def meters_to_world_norm(self, x_m: float, z_m: float) -> Point:
        """Meters -> world-normalized, clamped to the footprint."""
        return (
            clamp((x_m - self.offset_x_m) / self.world_width_m),
            clamp((z_m - self.offset_z_m) / self.world_depth_m),
        )

    def world_norm_to_meters(self, x: float, y: float) -> Point:
        return (self.offset_x_m + x * self.world_width_m, self.offset_z_m + y * self.world_depth_m)

    def map_norm_to_meters(self, x: float, y: float) -> Point:
        wx, wy = self.map_norm_to_world_norm(x, y)
        return self.world_norm_to_meters(wx, wy)
