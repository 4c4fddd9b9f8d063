"""
Canonical incident event model.

Every raw detection record that survives normalization becomes one Event.
Events are immutable; a newer record with the same id replaces the old one
as a whole.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EventType(str, Enum):
    CROWD = "crowd"
    FALL = "fall"
    FIGHT = "fight"
    LOITERING = "loitering"
    UNKNOWN = "unknown"


class EventSource(str, Enum):
    DEMO = "demo"
    CAMERA = "camera"
    API = "api"
    UNKNOWN = "unknown"


class IncidentStatus(str, Enum):
    NEW = "new"
    ACK = "ack"
    RESOLVED = "resolved"


class Event(BaseModel):
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    id: str
    store_id: str
    detected_at: int = Field(..., description="epoch ms")
    ingested_at: int = Field(..., description="epoch ms")
    latency_ms: int = Field(0, ge=0)
    type: EventType = EventType.UNKNOWN
    severity: int = Field(1, ge=1, le=3)
    confidence: float = Field(0.78, ge=0.0, le=1.0)
    zone_id: str
    camera_id: Optional[str] = None
    track_id: Optional[str] = None
    object_label: Optional[str] = None
    raw_status: Optional[str] = None
    source: EventSource = EventSource.UNKNOWN
    model_version: Optional[str] = None
    incident_status: IncidentStatus = IncidentStatus.NEW
    x: float = Field(..., ge=0.0, le=1.0)
    y: float = Field(..., ge=0.0, le=1.0)
    world_x_m: Optional[float] = None
    world_z_m: Optional[float] = None
    note: Optional[str] = None

    def sort_key(self) -> tuple[int, int, str]:
        """Feed order: newest detection first, then newest ingest, then id."""
        return (-self.detected_at, -self.ingested_at, self.id)

    def is_newer_than(self, other: "Event") -> bool:
        return (self.detected_at, self.ingested_at) > (other.detected_at, other.ingested_at)

    def is_live(self, now_ms: int, window_ms: int) -> bool:
        return self.incident_status != IncidentStatus.RESOLVED.value and now_ms - self.detected_at <= window_ms

    def to_raw(self) -> dict:
        """
        Plain record that feeds back through the normalizer unchanged
        (coordinates already normalized, world meters attached).
        """
        return self.model_dump(mode="json", exclude_none=True)
