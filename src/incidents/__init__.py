# Incident event normalization
from .adapter import adapt_raw_event
from .feed import normalize_event_feed
from .models import Event, EventSource, EventType, IncidentStatus
from .store import EventStore
from .sync import SyncBatch, SyncMode, apply_sync_batch, parse_sync_payload

__all__ = [
    "Event",
    "EventType",
    "EventSource",
    "IncidentStatus",
    "adapt_raw_event",
    "normalize_event_feed",
    "SyncBatch",
    "SyncMode",
    "parse_sync_payload",
    "apply_sync_batch",
    "EventStore",
]
