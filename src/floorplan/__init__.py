# Floor plan geometry
from .homography import CameraHomography, apply_homography, compute_homography, load_camera_calibration
from .transform import CoordinateTransform
from .walkable import (
    FloorPoint,
    project_to_walkable,
    resolve_marker_point,
    snap_to_floor,
    spiral_snap,
    zone_walkable,
)
from .world import WorldConfig, WorldConfigError, build_world_config, load_world_config
from .zones import Bounds, ZoneGeometry, load_zones, nearest_zone_by_centroid, point_in_polygon

__all__ = [
    # Zones
    "Bounds",
    "ZoneGeometry",
    "load_zones",
    "nearest_zone_by_centroid",
    "point_in_polygon",
    # Transforms
    "CoordinateTransform",
    "CameraHomography",
    "compute_homography",
    "apply_homography",
    "load_camera_calibration",
    # Walkability
    "FloorPoint",
    "zone_walkable",
    "spiral_snap",
    "project_to_walkable",
    "snap_to_floor",
    "resolve_marker_point",
    # World
    "WorldConfig",
    "WorldConfigError",
    "build_world_config",
    "load_world_config",
]
