from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from floorplan.world import WorldConfig

from .adapter import adapt_raw_event
from .models import Event

logger = logging.getLogger(__name__)

MAX_EVENTS_LIMIT = 1000
DEFAULT_MAX_EVENTS = 600


def clamp_max_events(value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        number = 1
    return max(1, min(MAX_EVENTS_LIMIT, number))


def newest_by_id(events: Iterable[Event], seed: Optional[dict[str, Event]] = None) -> dict[str, Event]:
    """Keep one event per id: the strictly newer one by (detected_at, ingested_at)."""
    by_id: dict[str, Event] = dict(seed or {})
    for event in events:
        existing = by_id.get(event.id)
        if existing is None or event.is_newer_than(existing):
            by_id[event.id] = event
    return by_id


def sort_and_truncate(events: Iterable[Event], max_events: int) -> list[Event]:
    return sorted(events, key=Event.sort_key)[:clamp_max_events(max_events)]


def normalize_event_feed(
    records: Any,
    world: WorldConfig,
    *,
    max_events: int = DEFAULT_MAX_EVENTS,
    fallback_store_id: Optional[str] = None,
    default_source: Optional[str] = None,
    current_ms: Optional[int] = None,
) -> list[Event]:
    """
    Normalize a batch of raw records.

    Unparseable records are dropped; duplicates collapse to the newest
    record per id; the result is ordered newest first and truncated to
    max_events (clamped to 1..1000).
    """
    if not isinstance(records, (list, tuple)):
        return []

    normalized = []
    for record in records:
        event = adapt_raw_event(
            record,
            world,
            fallback_store_id=fallback_store_id,
            default_source=default_source,
            current_ms=current_ms,
        )
        if event is not None:
            normalized.append(event)

    dropped = len(records) - len(normalized)
    if dropped:
        logger.debug("Dropped %d of %d records during normalization", dropped, len(records))

    return sort_and_truncate(newest_by_id(normalized).values(), max_events)
