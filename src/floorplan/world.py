"""
World configuration: the immutable bundle of zone geometry, coordinate
transform and camera calibration that the normalizer, the simulator and the
API share by reference.

Built once at startup. Any failure here is a real defect (missing or broken
zone map) and must abort initialization instead of running with an empty
geometry model.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from .homography import CameraHomography, load_camera_calibration, normalize_camera_key
from .transform import CoordinateTransform
from .zones import Bounds, Polygon, ZoneGeometry, finite_number, load_zones, nearest_zone_by_centroid

logger = logging.getLogger(__name__)

DEFAULT_WORLD_WIDTH_M = 9.0
DEFAULT_WORLD_DEPTH_M = 4.8
DEFAULT_STORE_ID = "s001"


class WorldConfigError(RuntimeError):
    """Static zone map / calibration could not be loaded."""


@dataclass(frozen=True)
class WorldConfig:
    store_id: str
    map_width: float
    map_height: float
    zones: tuple[ZoneGeometry, ...]
    transform: CoordinateTransform
    cameras: Mapping[str, CameraHomography] = field(default_factory=dict)
    zones_by_id: Mapping[str, ZoneGeometry] = field(init=False)
    hole_polygons: tuple[Polygon, ...] = field(init=False)
    hole_bounds: tuple[Bounds, ...] = field(init=False)

    def __post_init__(self) -> None:
        # frozen=True: derived lookups are set through object.__setattr__
        object.__setattr__(self, "zones_by_id", MappingProxyType({z.zone_id: z for z in self.zones}))
        object.__setattr__(self, "cameras", MappingProxyType(dict(self.cameras)))
        object.__setattr__(self, "hole_polygons", tuple(h for z in self.zones for h in z.holes))
        object.__setattr__(self, "hole_bounds", tuple(b for z in self.zones for b in z.hole_bounds))

    def zone(self, zone_id: Optional[str]) -> Optional[ZoneGeometry]:
        if zone_id is None:
            return None
        return self.zones_by_id.get(zone_id)

    def has_zone(self, zone_id: str) -> bool:
        return zone_id in self.zones_by_id

    def zone_containing(self, x: float, y: float) -> Optional[ZoneGeometry]:
        """First zone whose outer polygon contains the point (holes ignored)."""
        for zone in self.zones:
            if zone.point_in_outer(x, y):
                return zone
        return None

    def nearest_zone(self, x: float, y: float) -> ZoneGeometry:
        zone = nearest_zone_by_centroid(self.zones, x, y)
        if zone is None:
            raise WorldConfigError("World has no zones")
        return zone

    def camera(self, camera_id: Optional[str]) -> Optional[CameraHomography]:
        if not camera_id:
            return None
        return self.cameras.get(normalize_camera_key(camera_id))


def build_world_config(zone_map: Mapping[str, Any], calibration: Optional[Mapping[str, Any]] = None) -> WorldConfig:
    """
    Build a WorldConfig from an already-parsed zone map and optional
    camera calibration payload.

    Raises:
        WorldConfigError: map size is missing/invalid or no usable zone exists
    """
    if not isinstance(zone_map, Mapping):
        raise WorldConfigError("Zone map must be a JSON object")

    map_info = zone_map.get("map")
    if not isinstance(map_info, Mapping):
        raise WorldConfigError("Zone map is missing the 'map' section")

    map_width = finite_number(map_info.get("width"))
    map_height = finite_number(map_info.get("height"))
    if not map_width or not map_height or map_width <= 0 or map_height <= 0:
        raise WorldConfigError(f"Invalid map size: {map_info.get('width')}x{map_info.get('height')}")

    world = map_info.get("world") if isinstance(map_info.get("world"), Mapping) else {}
    width_m = finite_number(world.get("width_m"))
    depth_m = finite_number(world.get("depth_m"))
    transform = CoordinateTransform.from_dimensions(
        map_width,
        map_height,
        width_m if width_m is not None else DEFAULT_WORLD_WIDTH_M,
        depth_m if depth_m is not None else DEFAULT_WORLD_DEPTH_M,
        offset_x_m=finite_number(world.get("offset_x_m")) or 0.0,
        offset_z_m=finite_number(world.get("offset_z_m")) or 0.0,
    )

    zones = load_zones(zone_map.get("zones") or [], map_width, map_height)
    if not zones:
        raise WorldConfigError("Zone map contains no usable zones")

    cameras: dict[str, CameraHomography] = {}
    if calibration is not None:
        if not isinstance(calibration, Mapping):
            raise WorldConfigError("Camera calibration must be a JSON object")
        cameras = load_camera_calibration(calibration.get("cameras") or [])

    store_id = zone_map.get("store_id")
    config = WorldConfig(
        store_id=store_id.strip() if isinstance(store_id, str) and store_id.strip() else DEFAULT_STORE_ID,
        map_width=map_width,
        map_height=map_height,
        zones=tuple(zones),
        transform=transform,
        cameras=cameras,
    )
    logger.info(
        "World config ready: store=%s map=%sx%s zones=%d cameras=%d",
        config.store_id, map_width, map_height, len(config.zones), len(config.cameras),
    )
    return config


def _read_json(path: Path) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        raise WorldConfigError(f"Failed to read {path}: {e}") from e


def load_world_config(
    zone_map_path: Union[str, Path],
    calibration_path: Union[str, Path, None] = None,
) -> WorldConfig:
    """Load zone map + calibration JSON files synchronously."""
    zone_map = _read_json(Path(zone_map_path))
    calibration = _read_json(Path(calibration_path)) if calibration_path else None
    return build_world_config(zone_map, calibration)
