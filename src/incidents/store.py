"""
Owned, thread-safe event set.
Readers always see a complete snapshot; writers swap the whole tuple.
"""
from __future__ import annotations

import threading
from typing import Iterable, Optional

from .feed import DEFAULT_MAX_EVENTS, clamp_max_events, newest_by_id, sort_and_truncate
from .models import Event
from .sync import SyncBatch, apply_sync_batch


class EventStore:
    """
    Holds the current events, newest first, capped at max_events.

    The simulator reads one snapshot per tick; HTTP handlers apply sync
    batches from worker threads.
    """

    def __init__(self, max_events: int = DEFAULT_MAX_EVENTS):
        self.max_events = clamp_max_events(max_events)
        self._events: tuple[Event, ...] = ()
        self._lock = threading.Lock()

    def snapshot(self) -> tuple[Event, ...]:
        with self._lock:
            return self._events

    def __len__(self) -> int:
        return len(self.snapshot())

    def get(self, event_id: str) -> Optional[Event]:
        for event in self.snapshot():
            if event.id == event_id:
                return event
        return None

    def apply(self, batch: SyncBatch) -> tuple[Event, ...]:
        with self._lock:
            self._events = tuple(apply_sync_batch(self._events, batch, self.max_events))
            return self._events

    def upsert(self, events: Iterable[Event]) -> tuple[Event, ...]:
        with self._lock:
            merged = newest_by_id(events, seed={e.id: e for e in self._events})
            self._events = tuple(sort_and_truncate(merged.values(), self.max_events))
            return self._events

    def remove(self, event_ids: Iterable[str]) -> int:
        """Returns the number of events removed."""
        drop = set(event_ids)
        with self._lock:
            before = len(self._events)
            self._events = tuple(e for e in self._events if e.id not in drop)
            return before - len(self._events)

    def clear(self) -> int:
        """Returns the number of events dropped."""
        with self._lock:
            dropped = len(self._events)
            self._events = ()
            return dropped

    def live(self, now_ms: int, window_ms: int) -> list[Event]:
        """Unresolved events detected within the last window_ms."""
        return [e for e in self.snapshot() if e.is_live(now_ms, window_ms)]
