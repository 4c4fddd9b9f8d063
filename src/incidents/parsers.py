"""
Scalar parsers shared by the normalizer.

All helpers are total: malformed input yields None, never an exception.
"""
from __future__ import annotations

import math
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from . import fields
from .fields import pick_value

MIN_VALID_EPOCH_MS = int(datetime(2000, 1, 1, tzinfo=timezone.utc).timestamp() * 1000)
MAX_FUTURE_DRIFT_MS = 365 * 24 * 60 * 60 * 1000

_NON_NUMERIC = re.compile(r"[^0-9.]")


def now_ms() -> int:
    return int(time.time() * 1000)


def parse_number(value: Any) -> Optional[float]:
    """Finite float or None. Integers too large for a float are rejected."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def parse_text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def parse_id(value: Any) -> Optional[str]:
    """Non-empty string (trimmed) or finite number rounded to an integer."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return parse_text(value)
    number = parse_number(value)
    if number is None:
        return None
    if isinstance(value, int):
        return str(value)
    return str(int(round(number)))


def _guard_epoch(epoch_ms: float, current_ms: int) -> Optional[int]:
    if not math.isfinite(epoch_ms):
        return None
    rounded = int(round(epoch_ms))
    if rounded < MIN_VALID_EPOCH_MS:
        return None
    if rounded > current_ms + MAX_FUTURE_DRIFT_MS:
        return None
    return rounded


def _epoch_from_number(value: float, current_ms: int) -> Optional[int]:
    if value >= 1e12:
        return _guard_epoch(value, current_ms)
    if 1e9 <= value <= 1e11:
        # epoch seconds
        return _guard_epoch(value * 1000, current_ms)
    return _guard_epoch(value, current_ms)


def parse_epoch_ms(value: Any, current_ms: Optional[int] = None) -> Optional[int]:
    """
    Parse a timestamp into epoch milliseconds.

    Accepts epoch seconds (1e9..1e11), epoch milliseconds (>= 1e12), numeric
    strings, and ISO-8601 strings (trailing 'Z' allowed, naive = UTC).
    Values before 2000-01-01 UTC or more than 365 days in the future are
    rejected.
    """
    if current_ms is None:
        current_ms = now_ms()

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = parse_number(value)
        return _epoch_from_number(number, current_ms) if number is not None else None
    if not isinstance(value, str):
        return None

    trimmed = value.strip()
    if not trimmed:
        return None

    number = parse_number(trimmed)
    if number is not None:
        return _epoch_from_number(number, current_ms)

    iso = trimmed[:-1] + "+00:00" if trimmed.endswith(("Z", "z")) else trimmed
    try:
        parsed = datetime.fromisoformat(iso)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return _guard_epoch(parsed.timestamp() * 1000, current_ms)


def digits_in(text: str) -> Optional[float]:
    """Number left after stripping every non-digit/non-dot character."""
    stripped = _NON_NUMERIC.sub("", text)
    if not stripped:
        return None
    return parse_number(stripped)


def normalize_coordinate(value: Any) -> Optional[float]:
    """[0,1] passes through; (1,100] is treated as a percentage."""
    number = parse_number(value)
    if number is None:
        return None
    if 0.0 <= number <= 1.0:
        return number
    if 0.0 <= number <= 100.0:
        return min(1.0, number / 100.0)
    return None


def normalize_with_frame(value: float, frame_size: float) -> Optional[float]:
    if not math.isfinite(value):
        return None
    if 0.0 <= value <= 1.0:
        return value
    if 0.0 <= value <= 100.0:
        return min(1.0, value / 100.0)
    if frame_size > 0:
        return max(0.0, min(1.0, value / frame_size))
    return None


@dataclass(frozen=True)
class BBox:
    x1: float
    y1: float
    x2: float
    y2: float

    @classmethod
    def from_corners(cls, x1: float, y1: float, x2: float, y2: float) -> "BBox":
        return cls(min(x1, x2), min(y1, y2), max(x1, x2), max(y1, y2))

    @property
    def bottom_center(self) -> tuple[float, float]:
        """Ground contact proxy (feet/wheels) rather than the geometric center."""
        return ((self.x1 + self.x2) / 2.0, self.y2)


def parse_bbox(value: Any) -> Optional[BBox]:
    """
    Accepts [x1, y1, x2, y2], a mapping with corner keys, or a mapping with
    x/y/w/h keys. Corners are reordered so x1 <= x2 and y1 <= y2.
    """
    if isinstance(value, (list, tuple)):
        if len(value) < 4:
            return None
        corners = [parse_number(v) for v in value[:4]]
        if any(c is None for c in corners):
            return None
        return BBox.from_corners(*corners)

    if not isinstance(value, Mapping):
        return None

    x1 = parse_number(pick_value(value, fields.BBOX_X1))
    y1 = parse_number(pick_value(value, fields.BBOX_Y1))
    x2 = parse_number(pick_value(value, fields.BBOX_X2))
    y2 = parse_number(pick_value(value, fields.BBOX_Y2))
    if x1 is not None and y1 is not None and x2 is not None and y2 is not None:
        return BBox.from_corners(x1, y1, x2, y2)

    x = parse_number(pick_value(value, fields.BBOX_X))
    y = parse_number(pick_value(value, fields.BBOX_Y))
    w = parse_number(pick_value(value, fields.BBOX_W))
    h = parse_number(pick_value(value, fields.BBOX_H))
    if x is not None and y is not None and w is not None and h is not None:
        return BBox.from_corners(x, y, x + max(0.0, w), y + max(0.0, h))

    return None
