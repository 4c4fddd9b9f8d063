import random

import pytest

from floorplan.zones import Bounds, load_zones, nearest_zone_by_centroid, point_in_polygon

SQUARE = ((0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0))


def test_point_in_polygon_square():
    assert point_in_polygon(0.5, 0.5, SQUARE)
    assert not point_in_polygon(1.5, 0.5, SQUARE)
    assert not point_in_polygon(0.5, 0.5, SQUARE[:2])


def test_bounds_negative_padding_shrinks():
    b = Bounds(min_x=0.1, max_x=0.5, min_y=0.1, max_y=0.5)
    assert b.contains(0.11, 0.3)
    assert not b.contains(0.11, 0.3, padding=-0.02)
    assert b.contains(0.52, 0.3, padding=0.03)
    assert b.width == pytest.approx(0.4)


def test_load_zones_normalizes_pixels_and_centroid():
    zones = load_zones(
        [{"zone_id": "z1", "polygon": [[0, 0], [200, 0], [200, 100], [0, 100]], "centroid": [100, 50]}],
        map_width=400,
        map_height=200,
    )
    assert len(zones) == 1
    z = zones[0]
    assert z.outer[1] == (0.5, 0.0)
    assert z.centroid == (0.25, 0.25)
    assert z.name == "z1"


def test_load_zones_skips_malformed_entries(caplog):
    raw = [
        "not-a-zone",
        {"polygon": [[0, 0], [1, 0], [1, 1]]},
        {"zone_id": "too-few", "polygon": [[0, 0], [10, "x"], [None, 1]]},
        {
            "zone_id": "ok",
            "polygon": [[0, 0], [10, 0], [10, 10], [0, 10]],
            "holes": [[[1, 1], [2, 2]], [[2, 2], [4, 2], [4, 4], [2, 4]]],
        },
    ]
    zones = load_zones(raw, 10, 10)

    assert [z.zone_id for z in zones] == ["ok"]
    assert len(zones[0].holes) == 1
    # missing centroid -> map center
    assert zones[0].centroid == (0.5, 0.5)
    assert "too-few" in caplog.text


def test_load_zones_clamps_centroid():
    zones = load_zones(
        [{"zone_id": "z", "polygon": [[0, 0], [10, 0], [10, 10]], "centroid": [50, -5]}], 10, 10
    )
    assert zones[0].centroid == (1.0, 0.0)


def test_load_zones_rejects_bad_map_size():
    with pytest.raises(ValueError):
        load_zones([], 0, 100)


def test_point_in_hole_uses_padded_bounds(world):
    zone = world.zone("zone-a")
    # inside the hole polygon
    assert zone.point_in_hole(0.2, 0.5)
    # just outside the polygon but within the padded box
    assert not zone.point_in_hole(0.26, 0.5)
    assert zone.point_in_hole(0.26, 0.5, padding=0.02)


def test_sample_point_stays_out_of_holes(world):
    rng = random.Random(7)
    zone = world.zone("zone-b")
    for _ in range(200):
        x, y = zone.sample_point(rng)
        assert zone.point_in_outer(x, y)
        assert not point_in_polygon(x, y, zone.holes[0])


def test_nearest_zone_by_centroid(world):
    assert nearest_zone_by_centroid(world.zones, 0.1, 0.25).zone_id == "zone-a"
    assert nearest_zone_by_centroid(world.zones, 0.9, 0.9).zone_id == "zone-b"
    assert nearest_zone_by_centroid([], 0.5, 0.5) is None
