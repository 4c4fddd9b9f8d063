"""
Raw detection record -> canonical Event.

The normalizer resolves one floor position per record through an ordered
cascade (normalized x/y, world coordinates, calibrated camera bbox,
frame-relative bbox, a coordinate pair, the zone centroid), picks a zone,
and snaps the position onto walkable floor.

adapt_raw_event() is total: anything it cannot make sense of returns None.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from floorplan.homography import apply_homography
from floorplan.walkable import snap_to_floor
from floorplan.world import WorldConfig
from floorplan.zones import clamp

from . import fields
from .classify import (
    classify_confidence,
    classify_incident_status,
    classify_severity,
    classify_source,
    classify_type,
)
from .fields import pick_value
from .models import Event, EventSource, EventType
from .parsers import (
    normalize_coordinate,
    normalize_with_frame,
    parse_bbox,
    parse_epoch_ms,
    parse_id,
    parse_number,
    parse_text,
)

logger = logging.getLogger(__name__)

DEFAULT_STORE_ID = "s001"
UNKNOWN_CAMERA = "cam-unknown"
GENERIC_ZONE_IDS = frozenset({"store", "site", "shop", "global", "all"})


@dataclass(frozen=True)
class ResolvedPoint:
    x: float
    y: float
    world_x_m: Optional[float] = None
    world_z_m: Optional[float] = None


def _explicit_meters(record: Mapping[str, Any]) -> tuple[Optional[float], Optional[float]]:
    x_m = parse_number(pick_value(record, fields.WORLD_X_M))
    z_m = parse_number(pick_value(record, fields.WORLD_Z_M))
    if x_m is None or z_m is None:
        return (None, None)
    return (x_m, z_m)


def _world_point(record: Mapping[str, Any], world: WorldConfig) -> Optional[ResolvedPoint]:
    """
    World coordinates. Some sources send them already normalized to 0..1;
    when both axes fall in that range they are treated as world-normalized.
    Anything else is meters.
    """
    t = world.transform
    wx = parse_number(pick_value(record, fields.WORLD_X))
    wz = parse_number(pick_value(record, fields.WORLD_Z))

    if wx is not None and wz is not None:
        if 0.0 <= wx <= 1.0 and 0.0 <= wz <= 1.0:
            x_m, z_m = t.world_norm_to_meters(wx, wz)
            mx, my = t.world_norm_to_map_norm(wx, wz)
            return ResolvedPoint(mx, my, x_m, z_m)
        nx, ny = t.meters_to_world_norm(wx, wz)
        mx, my = t.world_norm_to_map_norm(nx, ny)
        return ResolvedPoint(mx, my, wx, wz)

    x_m, z_m = _explicit_meters(record)
    if x_m is None or z_m is None:
        return None
    nx, ny = t.meters_to_world_norm(x_m, z_m)
    mx, my = t.world_norm_to_map_norm(nx, ny)
    return ResolvedPoint(mx, my, x_m, z_m)


def _frame_size(record: Mapping[str, Any]) -> tuple[Optional[float], Optional[float]]:
    width = parse_number(pick_value(record, fields.FRAME_WIDTH))
    height = parse_number(pick_value(record, fields.FRAME_HEIGHT))
    return (width if width and width > 0 else None, height if height and height > 0 else None)


def _calibrated_bbox_point(
    record: Mapping[str, Any],
    world: WorldConfig,
    camera_id: Optional[str],
) -> Optional[ResolvedPoint]:
    camera = world.camera(camera_id)
    if camera is None:
        return None
    bbox = parse_bbox(pick_value(record, fields.BBOX))
    if bbox is None:
        return None

    cx, cy = bbox.bottom_center
    frame_w, frame_h = _frame_size(record)
    has_input_frame = frame_w is not None and frame_h is not None
    normalized_input = 0.0 <= cx <= 1.0 and 0.0 <= cy <= 1.0

    # Bring the point into the pixel space the calibration was taken in.
    x, y = cx, cy
    if camera.has_frame:
        if normalized_input:
            x, y = cx * camera.frame_width, cy * camera.frame_height
        elif has_input_frame:
            x = (cx / frame_w) * camera.frame_width
            y = (cy / frame_h) * camera.frame_height
    elif has_input_frame and normalized_input:
        x, y = cx * frame_w, cy * frame_h

    mapped = apply_homography(camera.matrix, x, y)
    if mapped is None:
        return None
    return ResolvedPoint(clamp(mapped[0]), clamp(mapped[1]))


def _frame_bbox_point(record: Mapping[str, Any], world: WorldConfig) -> Optional[ResolvedPoint]:
    bbox = parse_bbox(pick_value(record, fields.BBOX))
    if bbox is None:
        return None
    frame_w, frame_h = _frame_size(record)
    cx, cy = bbox.bottom_center
    x = normalize_with_frame(cx, frame_w or world.map_width)
    y = normalize_with_frame(cy, frame_h or world.map_height)
    if x is None or y is None:
        return None
    return ResolvedPoint(x, y)


def resolve_point(
    record: Mapping[str, Any],
    world: WorldConfig,
    camera_id: Optional[str] = None,
) -> Optional[ResolvedPoint]:
    """First successful step of the coordinate cascade, or None."""
    x = normalize_coordinate(pick_value(record, fields.X_NORM))
    y = normalize_coordinate(pick_value(record, fields.Y_NORM))
    if x is not None and y is not None:
        x_m, z_m = _explicit_meters(record)
        return ResolvedPoint(x, y, x_m, z_m)

    point = _world_point(record, world)
    if point is not None:
        return point

    point = _calibrated_bbox_point(record, world, camera_id)
    if point is not None:
        return point

    point = _frame_bbox_point(record, world)
    if point is not None:
        return point

    pair = pick_value(record, fields.POSITION_PAIR)
    if isinstance(pair, (list, tuple)) and len(pair) >= 2:
        px = normalize_coordinate(pair[0])
        py = normalize_coordinate(pair[1])
        if px is not None and py is not None:
            return ResolvedPoint(px, py)

    zone = world.zone(parse_id(pick_value(record, fields.ZONE_ID)))
    if zone is not None:
        return ResolvedPoint(*zone.centroid)

    return None


def resolve_zone_id(record: Mapping[str, Any], world: WorldConfig, x: float, y: float) -> str:
    """
    Explicit zone ids are trusted unless they are a generic placeholder.
    Otherwise the zone whose outer boundary holds the point wins (even if the
    point sits in a hole), else the nearest zone centroid.
    """
    explicit = parse_id(pick_value(record, fields.ZONE_ID))
    if explicit:
        if world.has_zone(explicit) or explicit.lower() not in GENERIC_ZONE_IDS:
            return explicit

    zone = world.zone_containing(x, y)
    if zone is not None:
        return zone.zone_id
    return world.nearest_zone(x, y).zone_id


def extract_note(record: Mapping[str, Any]) -> Optional[str]:
    direct = parse_text(pick_value(record, fields.NOTE))
    cause = parse_text(pick_value(record, fields.NOTE_CAUSE))
    action = parse_text(pick_value(record, fields.NOTE_ACTION))

    chunks = []
    if direct:
        chunks.append(direct)
    if cause:
        chunks.append(f"cause:{cause}")
    if action:
        chunks.append(f"action:{action}")
    return " | ".join(chunks) or None


def resolve_type(record: Mapping[str, Any]) -> EventType:
    primary = classify_type(pick_value(record, fields.TYPE))
    if primary != EventType.UNKNOWN:
        return primary
    return classify_type(pick_value(record, fields.TYPE_FROM_STATUS))


def adapt_raw_event(
    record: Any,
    world: WorldConfig,
    *,
    fallback_store_id: Optional[str] = None,
    default_source: Optional[str] = None,
    current_ms: Optional[int] = None,
) -> Optional[Event]:
    """
    Normalize one raw record.

    Args:
        record: Arbitrary decoded JSON value
        world: Zone geometry, transform and camera calibration
        fallback_store_id: Used when the record names no store
        default_source: Source used when the record names none
        current_ms: Clock override for the timestamp plausibility check

    Returns:
        Event, or None if the record has no identity, no valid timestamp or
        no resolvable position.
    """
    if not isinstance(record, Mapping):
        return None

    camera_id = parse_id(pick_value(record, fields.CAMERA_ID))
    track_id = parse_id(pick_value(record, fields.TRACK_ID))
    event_id = parse_id(pick_value(record, fields.ID))
    if event_id is None and track_id is not None:
        event_id = f"{camera_id or UNKNOWN_CAMERA}:track-{track_id}"
    if event_id is None:
        return None

    detected_at = parse_epoch_ms(pick_value(record, fields.DETECTED_AT), current_ms)
    if detected_at is None:
        return None
    ingested_at = parse_epoch_ms(pick_value(record, fields.INGESTED_AT), current_ms)
    if ingested_at is None:
        ingested_at = detected_at

    latency = parse_number(pick_value(record, fields.LATENCY_MS))
    latency_ms = max(0, round(latency if latency is not None else ingested_at - detected_at))

    event_type = resolve_type(record)
    severity = classify_severity(pick_value(record, fields.SEVERITY), event_type)
    confidence = classify_confidence(pick_value(record, fields.CONFIDENCE), severity)

    point = resolve_point(record, world, camera_id)
    if point is None:
        return None
    zone_id = resolve_zone_id(record, world, point.x, point.y)
    floor = snap_to_floor(world, point.x, point.y, zone_id)

    if floor.moved or point.world_x_m is None or point.world_z_m is None:
        world_x_m, world_z_m = floor.with_meters(world)
    else:
        world_x_m, world_z_m = point.world_x_m, point.world_z_m

    try:
        fallback = EventSource(default_source) if default_source else EventSource.UNKNOWN
    except ValueError:
        fallback = EventSource.UNKNOWN

    object_label = pick_value(record, fields.OBJECT_LABEL)
    raw_status = pick_value(record, fields.RAW_STATUS)

    try:
        return Event(
            id=event_id,
            store_id=parse_id(pick_value(record, fields.STORE_ID)) or fallback_store_id or DEFAULT_STORE_ID,
            detected_at=detected_at,
            ingested_at=ingested_at,
            latency_ms=latency_ms,
            type=event_type,
            severity=severity,
            confidence=confidence,
            zone_id=zone_id,
            camera_id=camera_id,
            track_id=track_id,
            object_label=object_label if isinstance(object_label, str) else None,
            raw_status=raw_status if isinstance(raw_status, str) else None,
            source=classify_source(pick_value(record, fields.SOURCE), fallback),
            model_version=parse_id(pick_value(record, fields.MODEL_VERSION)),
            incident_status=classify_incident_status(pick_value(record, fields.INCIDENT_STATUS)),
            x=floor.x,
            y=floor.y,
            world_x_m=world_x_m,
            world_z_m=world_z_m,
            note=extract_note(record),
        )
    except ValidationError as e:
        logger.debug("Dropping record %s: %s", event_id, e)
        return None
