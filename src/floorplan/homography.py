"""
Planar homography for per-camera pixel -> map-normalized projection.

Each calibrated camera provides four image points and the four matching
map-normalized points. The 3x3 transform is solved once at load time.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

import numpy as np

from .zones import Point, finite_number

logger = logging.getLogger(__name__)

# Reject near-singular systems instead of returning a wildly unstable matrix.
MAX_CONDITION_NUMBER = 1e12
MIN_DIVISOR = 1e-12


def compute_homography(src: Sequence[Point], dst: Sequence[Point]) -> Optional[np.ndarray]:
    """
    Solve the homography H (h33 = 1) mapping 4 src points onto 4 dst points.

    Returns:
        Read-only 3x3 matrix, or None if the system is singular.
    """
    if len(src) < 4 or len(dst) < 4:
        return None

    a = np.zeros((8, 8), dtype=float)
    b = np.zeros(8, dtype=float)
    for i in range(4):
        x, y = float(src[i][0]), float(src[i][1])
        u, v = float(dst[i][0]), float(dst[i][1])
        a[2 * i] = [x, y, 1.0, 0.0, 0.0, 0.0, -u * x, -u * y]
        a[2 * i + 1] = [0.0, 0.0, 0.0, x, y, 1.0, -v * x, -v * y]
        b[2 * i] = u
        b[2 * i + 1] = v

    if not np.all(np.isfinite(a)) or not np.all(np.isfinite(b)):
        return None
    if np.linalg.cond(a) > MAX_CONDITION_NUMBER:
        return None

    try:
        h = np.linalg.solve(a, b)
    except np.linalg.LinAlgError:
        return None

    if not np.all(np.isfinite(h)):
        return None

    matrix = np.append(h, 1.0).reshape(3, 3)
    matrix.setflags(write=False)
    return matrix


def apply_homography(matrix: np.ndarray, x: float, y: float) -> Optional[Point]:
    """Project one point. Returns None when the homogeneous divisor is ~0."""
    w = matrix[2, 0] * x + matrix[2, 1] * y + matrix[2, 2]
    if abs(w) < MIN_DIVISOR:
        return None
    px = (matrix[0, 0] * x + matrix[0, 1] * y + matrix[0, 2]) / w
    py = (matrix[1, 0] * x + matrix[1, 1] * y + matrix[1, 2]) / w
    if not (math.isfinite(px) and math.isfinite(py)):
        return None
    return (float(px), float(py))


def normalize_camera_key(camera_id: str) -> str:
    return camera_id.strip().lower()


@dataclass(frozen=True, eq=False)
class CameraHomography:
    camera_key: str
    matrix: np.ndarray
    frame_width: Optional[float] = None
    frame_height: Optional[float] = None

    @property
    def has_frame(self) -> bool:
        return self.frame_width is not None and self.frame_height is not None


def _points(value: Any) -> list[Point]:
    if not isinstance(value, (list, tuple)):
        return []
    points: list[Point] = []
    for item in value:
        if not isinstance(item, (list, tuple)) or len(item) < 2:
            continue
        px, py = finite_number(item[0]), finite_number(item[1])
        if px is None or py is None:
            continue
        points.append((px, py))
    return points


def load_camera_calibration(rows: Iterable[Any]) -> dict[str, CameraHomography]:
    """
    Build homographies keyed by lower-cased camera id.

    Rows that are disabled, incomplete or singular are skipped; those cameras
    fall back to frame-relative normalization in the event adapter.
    """
    cameras: dict[str, CameraHomography] = {}
    for row in rows or []:
        if not isinstance(row, dict):
            continue
        if row.get("enabled") is False:
            continue

        camera_id = row.get("camera_id", row.get("cameraId"))
        if not isinstance(camera_id, str) or not camera_id.strip():
            continue

        src = _points(row.get("image_points", row.get("imagePoints")))
        dst = _points(row.get("map_norm_points", row.get("mapNormPoints")))
        if len(src) < 4 or len(dst) < 4:
            logger.debug("Camera %s has fewer than 4 correspondences; skipped", camera_id)
            continue

        matrix = compute_homography(src[:4], dst[:4])
        if matrix is None:
            logger.debug("Camera %s calibration is singular; skipped", camera_id)
            continue

        frame = row.get("frame") if isinstance(row.get("frame"), dict) else {}
        frame_w = finite_number(frame.get("width"))
        frame_h = finite_number(frame.get("height"))
        has_frame = frame_w is not None and frame_h is not None and frame_w > 0 and frame_h > 0

        key = normalize_camera_key(camera_id)
        cameras[key] = CameraHomography(
            camera_key=key,
            matrix=matrix,
            frame_width=frame_w if has_frame else None,
            frame_height=frame_h if has_frame else None,
        )

    return cameras
