"""
Key-path tables for loosely-structured detection records.

Each logical field is an ordered tuple of dotted paths; the first path that
resolves to a non-null value wins. Upstream producers (cameras, demo
generators, vendor APIs) disagree on naming, so new aliases are added here
rather than in the normalizer.
"""
from __future__ import annotations

from typing import Any, Mapping, Sequence

ID = ("id", "event_id", "eventId", "uuid", "alarm_id", "alarmId", "alert_id", "alertId")
CAMERA_ID = ("camera_id", "cameraId", "camera.id", "device_id", "deviceId", "device.id")
TRACK_ID = ("track_id", "trackId", "tracking_id", "trackingId", "object_id", "objectId")

DETECTED_AT = ("detected_at", "detectedAt", "ts", "timestamp", "created_at", "createdAt", "time")
INGESTED_AT = ("ingested_at", "ingestedAt", "received_at", "receivedAt", "updated_at", "updatedAt")
LATENCY_MS = ("latency_ms", "latencyMs", "latency", "delay_ms")

RAW_STATUS = ("raw_status", "status", "state", "event_status", "result.status", "payload.status")
OBJECT_LABEL = ("object_label", "label", "object.label", "class", "class_name", "object.class", "event_label")

TYPE = ("type", "event_type", "eventType", "category", "event_name", "label")
TYPE_FROM_STATUS = ("status", "state", "event_status", "eventState")
SEVERITY = ("severity", "priority", "level", "risk", "risk_level", "riskLevel", "status", "state")
CONFIDENCE = ("confidence", "score", "probability", "confidence_score", "confidenceScore")

STORE_ID = ("store_id", "storeId", "store.id", "site_id", "siteId", "shop_id", "shopId")
SOURCE = ("source", "provider", "channel", "origin", "ingest_source")
INCIDENT_STATUS = ("incident_status", "incidentStatus", "status", "state", "resolution", "result.status")
MODEL_VERSION = ("model_version", "modelVersion", "model.version")

NOTE = ("note", "message", "description", "reason", "summary", "vlm_analysis.summary")
NOTE_CAUSE = ("vlm_analysis.cause", "analysis.cause")
NOTE_ACTION = ("vlm_analysis.action", "analysis.action", "action", "recommended_action")

ZONE_ID = (
    "zone_id", "zoneId", "zone.id", "zone.zone_id",
    "location.zone_id", "location.zoneId", "area_id", "areaId",
)

X_NORM = (
    "x", "x_norm", "xNorm",
    "position.x", "position.x_norm", "position.xNorm",
    "location.x", "location.x_norm", "location.xNorm",
    "coord.x", "coordinates.x", "point.x", "geo.x",
)
Y_NORM = (
    "y", "y_norm", "yNorm",
    "position.y", "position.y_norm", "position.yNorm",
    "location.y", "location.y_norm", "location.yNorm",
    "coord.y", "coordinates.y", "point.y", "geo.y",
)

WORLD_X = (
    "world.x", "worldX", "world_x",
    "position.world.x", "position_world.x",
    "location.world.x", "location.world_x", "location.x_m", "x_m",
)
WORLD_Z = (
    "world.z", "worldZ", "world_z",
    "position.world.z", "position_world.z",
    "location.world.z", "location.world_z", "location.z_m", "z_m",
)

# unambiguous meters, as written by Event.to_raw()
WORLD_X_M = ("world_x_m", "worldXM")
WORLD_Z_M = ("world_z_m", "worldZM")

BBOX = (
    "location.bbox", "location.bounding_box", "location.box",
    "bbox", "bounding_box", "box", "position.bbox", "detection.bbox",
)
FRAME_WIDTH = (
    "frame.width", "frameWidth", "image.width", "imageWidth", "resolution.width",
    "data.frame.width", "payload.frame.width", "camera.frame_width",
    "location.frame.width", "location.frame_width", "meta.frame_width", "meta.width",
)
FRAME_HEIGHT = (
    "frame.height", "frameHeight", "image.height", "imageHeight", "resolution.height",
    "data.frame.height", "payload.frame.height", "camera.frame_height",
    "location.frame.height", "location.frame_height", "meta.frame_height", "meta.height",
)
POSITION_PAIR = ("position", "location", "coord", "coordinates", "point")

# bbox mapping keys
BBOX_X1 = ("x1", "left", "xmin", "x_min")
BBOX_Y1 = ("y1", "top", "ymin", "y_min")
BBOX_X2 = ("x2", "right", "xmax", "x_max")
BBOX_Y2 = ("y2", "bottom", "ymax", "y_max")
BBOX_X = ("x", "left")
BBOX_Y = ("y", "top")
BBOX_W = ("w", "width")
BBOX_H = ("h", "height")


def read_path(record: Any, path: str) -> Any:
    cursor = record
    for chunk in path.split("."):
        if not isinstance(cursor, Mapping):
            return None
        cursor = cursor.get(chunk)
    return cursor


def pick_value(record: Mapping[str, Any], paths: Sequence[str]) -> Any:
    """First non-None value found along `paths`, else None."""
    for path in paths:
        value = read_path(record, path)
        if value is not None:
            return value
    return None
