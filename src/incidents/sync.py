"""
Incoming sync payloads.

A payload is a JSON string, a bare list of records, or an envelope object
carrying a sync mode, a record array (or a single record) and lists of ids
to remove. parse_sync_payload() turns any of these into a SyncBatch that
apply_sync_batch() folds into the current event set.
"""
from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Sequence

from floorplan.world import WorldConfig

from .adapter import adapt_raw_event
from .feed import DEFAULT_MAX_EVENTS, newest_by_id, normalize_event_feed, sort_and_truncate
from .fields import pick_value
from .models import Event

logger = logging.getLogger(__name__)


class SyncMode(str, Enum):
    MERGE = "merge"
    REPLACE = "replace"


MODE_PATHS = (
    "sync_mode", "syncMode", "sync.mode", "sync.strategy",
    "payload.sync_mode", "payload.sync.mode", "meta.sync_mode", "meta.sync.mode",
    "payload.mode", "mode", "snapshot", "full_sync", "fullSync",
)
OP_PATHS = ("op", "operation", "event_op", "event_operation", "sync.op", "sync.operation")
REMOVE_OPS = frozenset({"delete", "deleted", "remove", "removed", "clear", "cleared"})

RECORD_ID_PATHS = (
    "id", "event_id", "eventId", "uuid", "alarm_id", "alarmId", "alert_id", "alertId",
    "payload.id", "payload.event_id", "payload.eventId",
)
REMOVE_ID_PATHS = (
    "deleted_ids", "removed_ids", "delete_ids", "remove_ids",
    "payload.deleted_ids", "payload.removed_ids", "payload.delete_ids", "payload.remove_ids",
    "sync.deleted_ids", "sync.removed_ids", "payload.sync.deleted_ids", "payload.sync.removed_ids",
    "deleted", "removed", "payload.deleted", "payload.removed",
    "sync.deleted", "sync.removed", "payload.sync.deleted", "payload.sync.removed",
)
ARRAY_PATHS = (
    "events", "data", "records", "results", "items", "alerts",
    "payload.events", "payload.records", "payload.items", "payload.alerts",
    "message.events", "message.items", "sync.events", "payload.sync.events",
)
SINGLE_PATHS = ("event", "alert", "payload.event", "payload.alert", "payload.data", "message.event")

SYNC_STORE_ID = "s001"
SYNC_SOURCE = "api"


@dataclass(frozen=True)
class SyncBatch:
    mode: SyncMode = SyncMode.MERGE
    upsert: tuple[Event, ...] = ()
    remove_ids: tuple[str, ...] = ()

    @property
    def has_mutation(self) -> bool:
        return self.mode == SyncMode.REPLACE or bool(self.upsert) or bool(self.remove_ids)


@dataclass
class _Options:
    world: WorldConfig
    max_events: int = DEFAULT_MAX_EVENTS
    fallback_store_id: Optional[str] = SYNC_STORE_ID
    default_source: Optional[str] = SYNC_SOURCE
    current_ms: Optional[int] = None


def _id_string(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, int):
        try:
            return str(value)
        except ValueError:
            return None
    if isinstance(value, float) and math.isfinite(value):
        return str(int(value)) if value.is_integer() else str(value)
    return None


def _dedupe(ids: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(ids))


def parse_sync_mode(value: Any) -> Optional[SyncMode]:
    if isinstance(value, bool):
        return SyncMode.REPLACE if value else SyncMode.MERGE
    if not isinstance(value, str):
        return None
    text = value.strip().lower()
    if not text:
        return None
    if "replace" in text or "snapshot" in text or "full" in text:
        return SyncMode.REPLACE
    if "merge" in text or "upsert" in text or "delta" in text:
        return SyncMode.MERGE
    return None


def record_id(record: Mapping[str, Any]) -> Optional[str]:
    return _id_string(pick_value(record, RECORD_ID_PATHS))


def is_remove_op(record: Mapping[str, Any]) -> bool:
    op = pick_value(record, OP_PATHS)
    return isinstance(op, str) and op.strip().lower() in REMOVE_OPS


def _id_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    ids = []
    for item in value:
        if isinstance(item, Mapping):
            item_id = record_id(item)
        else:
            item_id = _id_string(item)
        if item_id:
            ids.append(item_id)
    return ids


def collect_remove_ids(record: Mapping[str, Any]) -> tuple[str, ...]:
    ids: list[str] = []
    for path in REMOVE_ID_PATHS:
        ids.extend(_id_list(pick_value(record, (path,))))
    if is_remove_op(record):
        rid = record_id(record)
        if rid:
            ids.append(rid)
    return _dedupe(ids)


def _split_rows(rows: Sequence[Any], opts: _Options) -> tuple[tuple[Event, ...], tuple[str, ...]]:
    upsert_rows = []
    remove_ids = []
    for row in rows:
        if isinstance(row, Mapping) and is_remove_op(row):
            rid = record_id(row)
            if rid:
                remove_ids.append(rid)
            continue
        upsert_rows.append(row)

    upsert = normalize_event_feed(
        upsert_rows,
        opts.world,
        max_events=opts.max_events,
        fallback_store_id=opts.fallback_store_id,
        default_source=opts.default_source,
        current_ms=opts.current_ms,
    ) if upsert_rows else []
    return tuple(upsert), _dedupe(remove_ids)


def _maybe_json(payload: Any) -> Any:
    if not isinstance(payload, (str, bytes)):
        return payload
    text = payload.decode("utf-8", errors="replace") if isinstance(payload, bytes) else payload
    text = text.strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        # JSONDecodeError, or an integer literal past the int digit limit
        logger.debug("Sync payload is not valid JSON; ignored")
        return None


def parse_sync_payload(
    payload: Any,
    world: WorldConfig,
    *,
    max_events: int = DEFAULT_MAX_EVENTS,
    fallback_store_id: Optional[str] = SYNC_STORE_ID,
    default_source: Optional[str] = SYNC_SOURCE,
    current_ms: Optional[int] = None,
) -> SyncBatch:
    """
    Parse any supported sync payload shape into a SyncBatch.

    Nothing recognizable yields an empty merge batch (no mutation).
    """
    opts = _Options(world, max_events, fallback_store_id, default_source, current_ms)
    parsed = _maybe_json(payload)

    if isinstance(parsed, list):
        upsert, remove_ids = _split_rows(parsed, opts)
        return SyncBatch(SyncMode.MERGE, upsert, remove_ids)

    if not isinstance(parsed, Mapping):
        return SyncBatch()

    mode = parse_sync_mode(pick_value(parsed, MODE_PATHS)) or SyncMode.MERGE
    root_remove_ids = collect_remove_ids(parsed)

    rows = pick_value(parsed, ARRAY_PATHS)
    if isinstance(rows, list):
        upsert, remove_ids = _split_rows(rows, opts)
        return SyncBatch(mode, upsert, _dedupe(root_remove_ids + remove_ids))

    single = pick_value(parsed, SINGLE_PATHS)
    if single is None:
        single = parsed

    if isinstance(single, Mapping) and is_remove_op(single):
        rid = record_id(single)
        return SyncBatch(mode, (), _dedupe(root_remove_ids + ((rid,) if rid else ())))

    event = adapt_raw_event(
        single,
        world,
        fallback_store_id=fallback_store_id,
        default_source=default_source,
        current_ms=current_ms,
    )
    return SyncBatch(mode, (event,) if event is not None else (), root_remove_ids)


def apply_sync_batch(existing: Iterable[Event], batch: SyncBatch, max_events: int = DEFAULT_MAX_EVENTS) -> list[Event]:
    """
    Fold a batch into the current set.

    replace discards prior events; merge keeps the strictly newer record per
    id. Removals apply after the upsert.
    """
    if batch.mode == SyncMode.REPLACE:
        by_id = newest_by_id(batch.upsert)
    else:
        by_id = newest_by_id(batch.upsert, seed={e.id: e for e in existing})

    for rid in batch.remove_ids:
        by_id.pop(rid, None)

    return sort_and_truncate(by_id.values(), max_events)
