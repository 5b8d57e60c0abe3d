from __future__ import annotations

import math
from typing import Optional, Sequence

from .types import Point2f, Rect


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def clamp_int(v: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, v))


def dist(a: Point2f, b: Point2f) -> float:
    """Euclidean distance between 2D points."""
    return math.hypot(a[0] - b[0], a[1] - b[1])


def map_range(value: float, in_lo: float, in_hi: float, out_lo: float, out_hi: float) -> float:
    """
    Re-map `value` from one range to another. The result is not clamped.

    >>> map_range(0.25, 0, 1, 0, 200)
    50.0
    >>> map_range(0.25, 1, 0, 0, 200)
    150.0
    """
    if in_hi == in_lo:
        return out_lo
    return out_lo + (value - in_lo) * (out_hi - out_lo) / (in_hi - in_lo)


def mean_point(points: Sequence[Point2f]) -> Optional[Point2f]:
    if not points:
        return None
    n = len(points)
    return (sum(p[0] for p in points) / n, sum(p[1] for p in points) / n)


def selection_bounds(start: Point2f, end: Point2f) -> Rect:
    return Rect.from_corners(start, end)
