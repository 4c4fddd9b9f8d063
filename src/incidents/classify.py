"""
Synonym tables and classifiers for type, severity, confidence, source and
incident status.

Each table is checked in declaration order; the fallback is explicit at the
end of every classifier.
"""
from __future__ import annotations

from typing import Any, Optional

from .models import EventSource, EventType, IncidentStatus
from .parsers import digits_in, parse_number

TYPE_SYNONYMS: tuple[tuple[EventType, frozenset[str]], ...] = (
    (EventType.FALL, frozenset({"fall_down", "slip", "slipfall", "trip"})),
    (EventType.FIGHT, frozenset({"violence", "assault", "aggressive"})),
    (EventType.CROWD, frozenset({"queue", "congestion", "crowding"})),
    (EventType.LOITERING, frozenset({"loiter", "idle", "linger"})),
)

SEVERITY_WORDS: tuple[tuple[int, frozenset[str]], ...] = (
    (3, frozenset({"p1", "l3", "high", "critical", "severe", "urgent"})),
    (2, frozenset({"p2", "l2", "medium", "med", "moderate"})),
    (1, frozenset({"p3", "l1", "low", "minor"})),
)

STATUS_SYNONYMS: tuple[tuple[IncidentStatus, frozenset[str]], ...] = (
    (IncidentStatus.NEW, frozenset({"open", "opened", "detected", "created", "new_alert"})),
    (IncidentStatus.ACK, frozenset({"acknowledged", "acknowledge", "in_progress", "processing", "dispatched"})),
    (IncidentStatus.RESOLVED, frozenset({"closed", "done", "resolved_done", "complete", "completed"})),
)

DEFAULT_SEVERITY_BY_TYPE = {
    EventType.FALL: 3,
    EventType.FIGHT: 3,
    EventType.CROWD: 2,
}

DEFAULT_CONFIDENCE_BY_SEVERITY = {3: 0.92, 2: 0.84, 1: 0.78}

_TYPE_VALUES = {t.value for t in EventType}
_STATUS_VALUES = {s.value for s in IncidentStatus}
_SOURCE_VALUES = {s.value for s in EventSource}


def _lowered(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip().lower()


def classify_type(value: Any) -> EventType:
    text = _lowered(value)
    if text is None:
        return EventType.UNKNOWN
    if text in _TYPE_VALUES:
        return EventType(text)
    for event_type, words in TYPE_SYNONYMS:
        if text in words:
            return event_type
    return EventType.UNKNOWN


def classify_severity(value: Any, event_type: EventType) -> int:
    """
    Literal 1/2/3, severity words, digits in a string (1..3, rounded), a
    numeric value bucketed at 2 and 3, else the default for the type.
    """
    if isinstance(value, int) and not isinstance(value, bool) and value in (1, 2, 3):
        return value

    if isinstance(value, str):
        text = value.strip().lower()
        for level, words in SEVERITY_WORDS:
            if text in words:
                return level
        number = digits_in(text)
        if number is not None and 1 <= number <= 3:
            return int(round(number))

    elif not isinstance(value, bool):
        number = parse_number(value)
        if number is not None:
            if number >= 3:
                return 3
            if number >= 2:
                return 2
            return 1

    return DEFAULT_SEVERITY_BY_TYPE.get(EventType(event_type), 1)


def classify_confidence(value: Any, severity: int) -> float:
    number = parse_number(value)
    if number is not None:
        if 1 < number <= 100:
            return min(1.0, number / 100.0)
        return max(0.0, min(1.0, number))
    return DEFAULT_CONFIDENCE_BY_SEVERITY.get(severity, DEFAULT_CONFIDENCE_BY_SEVERITY[1])


def classify_source(value: Any, fallback: EventSource = EventSource.UNKNOWN) -> EventSource:
    text = _lowered(value)
    if text is None:
        return fallback
    if text in _SOURCE_VALUES:
        return EventSource(text)
    if "camera" in text:
        return EventSource.CAMERA
    if "demo" in text:
        return EventSource.DEMO
    if text:
        return EventSource.API
    return fallback


def classify_incident_status(value: Any) -> IncidentStatus:
    text = _lowered(value)
    if text is None:
        return IncidentStatus.NEW
    if text in _STATUS_VALUES:
        return IncidentStatus(text)
    for status, words in STATUS_SYNONYMS:
        if text in words:
            return status
    return IncidentStatus.NEW
