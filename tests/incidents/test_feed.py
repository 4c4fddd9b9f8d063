import pytest

from incidents.feed import MAX_EVENTS_LIMIT, clamp_max_events, normalize_event_feed

NOW_MS = 1767225600000
NOW_SEC = NOW_MS // 1000


def record(event_id, ts, **extra):
    return {"id": event_id, "ts": ts, "x": 0.5, "y": 0.5, **extra}


def test_duplicates_keep_newest(world):
    records = [
        record("e1", NOW_SEC - 100, note="old"),
        record("e1", NOW_SEC, note="new"),
        record("e1", NOW_SEC - 50, note="middle"),
    ]
    events = normalize_event_feed(records, world, current_ms=NOW_MS)
    assert len(events) == 1
    assert events[0].note == "new"
    assert events[0].detected_at == NOW_MS


def test_duplicate_tie_breaks_on_ingest_time(world):
    records = [
        record("e1", NOW_SEC, ingested_at=NOW_MS + 10, note="later"),
        record("e1", NOW_SEC, ingested_at=NOW_MS + 5, note="earlier"),
    ]
    events = normalize_event_feed(records, world, current_ms=NOW_MS)
    assert [e.note for e in events] == ["later"]


def test_exact_duplicate_keeps_first(world):
    records = [record("e1", NOW_SEC, note="first"), record("e1", NOW_SEC, note="second")]
    events = normalize_event_feed(records, world, current_ms=NOW_MS)
    assert events[0].note == "first"


def test_sorted_newest_first_then_id(world):
    records = [
        record("b", NOW_SEC - 10),
        record("c", NOW_SEC),
        record("a", NOW_SEC - 10),
        record("d", NOW_SEC - 10, ingested_at=NOW_MS),
    ]
    events = normalize_event_feed(records, world, current_ms=NOW_MS)
    assert [e.id for e in events] == ["c", "d", "a", "b"]


def test_bad_records_dropped(world):
    records = [record("ok", NOW_SEC), {"id": "no-ts", "x": 0.5, "y": 0.5}, None, 42]
    events = normalize_event_feed(records, world, current_ms=NOW_MS)
    assert [e.id for e in events] == ["ok"]


def test_truncates_to_max_events(world):
    records = [record(f"e{i}", NOW_SEC - i) for i in range(10)]
    events = normalize_event_feed(records, world, max_events=3, current_ms=NOW_MS)
    assert [e.id for e in events] == ["e0", "e1", "e2"]

    events = normalize_event_feed(records, world, max_events=0, current_ms=NOW_MS)
    assert [e.id for e in events] == ["e0"]


@pytest.mark.parametrize("value, expected", [(0, 1), (-5, 1), (50, 50), (5000, MAX_EVENTS_LIMIT), ("12", 12), (None, 1), (float("inf"), 1)])
def test_clamp_max_events(value, expected):
    assert clamp_max_events(value) == expected


@pytest.mark.parametrize("records", [None, {"events": []}, "[]", 3])
def test_non_list_input_is_empty(world, records):
    assert normalize_event_feed(records, world, current_ms=NOW_MS) == []


def test_fallbacks_are_applied(world):
    events = normalize_event_feed(
        [record("e1", NOW_SEC)], world, fallback_store_id="s777", default_source="camera", current_ms=NOW_MS
    )
    assert events[0].store_id == "s777"
    assert events[0].source == "camera"


def test_fall_down_scenario(world):
    events = normalize_event_feed(
        [{"id": "e1", "ts": "2024-01-01T00:00:00Z", "x": 0.5, "y": 0.5, "type": "fall_down", "severity": "high"}],
        world,
        current_ms=NOW_MS,
    )
    assert len(events) == 1
    assert events[0].type == "fall"
    assert events[0].severity == 3
    assert (events[0].x, events[0].y) == (0.5, 0.5)


def test_track_duplicates_keep_later_detection(world):
    base = {"camera_id": "cam1", "track_id": 7, "x": 0.5, "y": 0.5}
    records = [
        {**base, "detected_at": NOW_SEC - 100, "label": "first"},
        {**base, "detected_at": NOW_SEC, "label": "second"},
    ]
    events = normalize_event_feed(records, world, current_ms=NOW_MS)
    assert [(e.id, e.object_label) for e in events] == [("cam1:track-7", "second")]


def test_renormalizing_feed_output_is_stable(world):
    records = [
        record("a", NOW_SEC, type="fight"),
        {"id": "b", "ts": NOW_SEC - 3, "camera_id": "CAM-1", "bbox": [140, 100, 180, 240]},
        {"id": "c", "ts": NOW_SEC - 7, "world": {"x": 2.0, "z": 5.0}, "status": "ack"},
        {"camera_id": "cam-2", "track_id": 4, "ts": NOW_SEC - 9, "bbox": [10, 20, 30, 80], "frame": {"width": 100, "height": 100}},
    ]
    first = normalize_event_feed(records, world, current_ms=NOW_MS)
    second = normalize_event_feed([e.to_raw() for e in first], world, current_ms=NOW_MS)
    assert second == first


def test_known_zone_events_are_walkable_or_centroid(world):
    from floorplan.walkable import zone_walkable

    records = [
        record("in-hole", NOW_SEC, x=0.2, y=0.5),
        record("edge", NOW_SEC, x=0.951, y=0.5, zone_id="zone-b"),
        record("wrong-zone", NOW_SEC, x=0.2, y=0.8, zone_id="zone-b"),
        {"id": "centroid-only", "ts": NOW_SEC, "zone_id": "zone-a"},
    ]
    for event in normalize_event_feed(records, world, current_ms=NOW_MS):
        zone = world.zone(event.zone_id)
        assert 0.0 <= event.x <= 1.0 and 0.0 <= event.y <= 1.0
        assert zone_walkable(zone, event.x, event.y) or (event.x, event.y) == zone.centroid


def test_oversized_record_does_not_drop_the_batch(world):
    records = [
        record("ok", NOW_SEC),
        record("bad", 10**400),
        record("worse", NOW_SEC, latency_ms=10**400, severity=10**400),
    ]
    events = normalize_event_feed(records, world, current_ms=NOW_MS)
    assert sorted(e.id for e in events) == ["ok", "worse"]


def test_centroid_fallback_is_stable_when_renormalized(hollow_world):
    records = [record("e1", NOW_SEC, x=0.99, y=0.99, zone_id="z")]
    first = normalize_event_feed(records, hollow_world, current_ms=NOW_MS)
    assert (first[0].x, first[0].y) == (0.5, 0.5)

    second = normalize_event_feed([e.to_raw() for e in first], hollow_world, current_ms=NOW_MS)
    assert second == first
