import json

import pytest

from floorplan.world import build_world_config

# 2026-01-01T00:00:00Z
NOW_MS = 1767225600000
NOW_SEC = NOW_MS // 1000


def zone_map_dict():
    """
    100x100 px map over a 10x10 m floor, so map-normalized == world-normalized
    and 1.0 == 10 m.

    zone-a: x .05-.40, hole x .15-.25 / y .40-.60
    zone-b: x .42-.95, hole x .70-.80 / y .30-.70
    """
    return {
        "store_id": "s-test",
        "map": {"width": 100, "height": 100, "world": {"width_m": 10.0, "depth_m": 10.0}},
        "zones": [
            {
                "zone_id": "zone-a",
                "name": "Zone A",
                "polygon": [[5, 5], [40, 5], [40, 95], [5, 95]],
                "holes": [[[15, 40], [25, 40], [25, 60], [15, 60]]],
                "centroid": [10, 20],
            },
            {
                "zone_id": "zone-b",
                "name": "Zone B",
                "polygon": [[42, 5], [95, 5], [95, 95], [42, 95]],
                "holes": [[[70, 30], [80, 30], [80, 70], [70, 70]]],
                "centroid": [60, 85],
            },
        ],
    }


def calibration_dict():
    return {
        "cameras": [
            {
                "camera_id": "CAM-1",
                "enabled": True,
                "frame": {"width": 640, "height": 480},
                "image_points": [[0, 0], [640, 0], [640, 480], [0, 480]],
                "map_norm_points": [[0.42, 0.05], [0.95, 0.05], [0.95, 0.95], [0.42, 0.95]],
            }
        ]
    }


@pytest.fixture
def world():
    return build_world_config(zone_map_dict(), calibration_dict())


@pytest.fixture
def world_files(tmp_path):
    zone_map = tmp_path / "zone_map.json"
    calibration = tmp_path / "calibration.json"
    zone_map.write_text(json.dumps(zone_map_dict()), encoding="utf-8")
    calibration.write_text(json.dumps(calibration_dict()), encoding="utf-8")
    return zone_map, calibration


@pytest.fixture
def zone_map_raw():
    return zone_map_dict()


@pytest.fixture
def hollow_world():
    """One zone without an explicit centroid; the default (.5, .5) sits in a hole."""
    return build_world_config(
        {
            "map": {"width": 100, "height": 100, "world": {"width_m": 10.0, "depth_m": 10.0}},
            "zones": [
                {
                    "zone_id": "z",
                    "polygon": [[10, 10], [90, 10], [90, 90], [10, 90]],
                    "holes": [[[45, 45], [55, 45], [55, 55], [45, 55]]],
                }
            ],
        }
    )
