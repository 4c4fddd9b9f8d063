import numpy as np
import pytest

from floorplan.homography import apply_homography, compute_homography, load_camera_calibration
from floorplan.transform import CoordinateTransform


def test_wide_map_letterboxes_height():
    # map aspect 2.0, world aspect 1.0
    t = CoordinateTransform.from_dimensions(200, 100, 4.0, 4.0)
    assert t.scale_x == pytest.approx(1.0)
    assert t.scale_y == pytest.approx(0.5)
    assert t.offset_y == pytest.approx(0.25)
    assert t.map_norm_to_world_norm(0.0, 0.0) == pytest.approx((0.0, 0.25))


def test_tall_map_letterboxes_width():
    t = CoordinateTransform.from_dimensions(100, 200, 4.0, 4.0)
    assert t.scale_x == pytest.approx(0.5)
    assert t.scale_y == pytest.approx(1.0)
    assert t.offset_x == pytest.approx(0.25)


@pytest.mark.parametrize("point", [(0.0, 0.0), (0.3, 0.7), (1.0, 1.0), (0.123, 0.987)])
def test_world_norm_round_trip(point):
    t = CoordinateTransform.from_dimensions(1200, 640, 9.0, 6.0, offset_x_m=1.0, offset_z_m=-2.0)
    wx, wy = t.map_norm_to_world_norm(*point)
    assert t.world_norm_to_map_norm(wx, wy) == pytest.approx(point)


def test_meters_conversion_clamps_and_offsets():
    t = CoordinateTransform.from_dimensions(100, 100, 10.0, 10.0, offset_x_m=2.0, offset_z_m=0.0)
    assert t.meters_to_world_norm(7.0, 5.0) == pytest.approx((0.5, 0.5))
    assert t.meters_to_world_norm(-50.0, 50.0) == (0.0, 1.0)
    assert t.map_norm_to_meters(0.5, 0.25) == pytest.approx((7.0, 2.5))


def test_world_size_is_floored():
    t = CoordinateTransform.from_dimensions(100, 100, 0.0, -3.0)
    assert t.world_width_m == pytest.approx(0.001)
    assert t.world_depth_m == pytest.approx(0.001)


def test_homography_maps_correspondences():
    src = [(0, 0), (640, 0), (640, 480), (0, 480)]
    dst = [(0.1, 0.1), (0.9, 0.2), (0.8, 0.9), (0.2, 0.8)]
    h = compute_homography(src, dst)
    assert h is not None
    assert h.shape == (3, 3)
    assert not h.flags.writeable
    for s, d in zip(src, dst):
        assert apply_homography(h, *s) == pytest.approx(d, abs=1e-9)


def test_homography_singular_returns_none():
    collinear = [(0, 0), (1, 1), (2, 2), (3, 3)]
    assert compute_homography(collinear, [(0, 0), (1, 0), (1, 1), (0, 1)]) is None


def test_apply_homography_zero_divisor():
    h = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 0.0]])
    assert apply_homography(h, 1.0, 1.0) is None


def test_load_camera_calibration_filters_rows():
    good_points = {
        "image_points": [[0, 0], [10, 0], [10, 10], [0, 10]],
        "map_norm_points": [[0, 0], [1, 0], [1, 1], [0, 1]],
    }
    rows = [
        {"camera_id": " Cam-A ", "frame": {"width": 10, "height": 10}, **good_points},
        {"cameraId": "cam-b", "frame": {"width": 0, "height": 10}, **good_points},
        {"camera_id": "cam-off", "enabled": False, **good_points},
        {**good_points},
        {"camera_id": "cam-short", "image_points": [[0, 0]], "map_norm_points": [[0, 0]]},
        {
            "camera_id": "cam-singular",
            "image_points": [[0, 0], [1, 1], [2, 2], [3, 3]],
            "map_norm_points": [[0, 0], [1, 0], [1, 1], [0, 1]],
        },
    ]
    cameras = load_camera_calibration(rows)

    assert set(cameras) == {"cam-a", "cam-b"}
    assert cameras["cam-a"].has_frame
    assert cameras["cam-a"].frame_width == 10
    assert not cameras["cam-b"].has_frame
