from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


Point2f = Tuple[float, float]
Box2 = Tuple[int, int, int, int]  # (x_min, y_min, x_max, y_max)


@dataclass(frozen=True)
class Landmark:
    """A single model landmark in normalized image coordinates."""

    idx: int
    x_norm: float
    y_norm: float
    z_norm: float = 0.0
    visibility: Optional[float] = None


@dataclass(frozen=True)
class TrackedBody:
    """One detected hand or pose."""

    kind: str  # "hand" / "pose"
    landmarks: List[Landmark]
    handedness_label: Optional[str] = None
    handedness_score: Optional[float] = None
    gesture_label: Optional[str] = None  # only set by the gesture recognizer
    gesture_score: Optional[float] = None

    def landmark(self, idx: int) -> Optional[Landmark]:
        if 0 <= idx < len(self.landmarks):
            return self.landmarks[idx]
        return None


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in canvas pixels."""

    x: float
    y: float
    w: float
    h: float

    @classmethod
    def from_corners(cls, a: Point2f, b: Point2f) -> "Rect":
        return cls(
            x=min(a[0], b[0]),
            y=min(a[1], b[1]),
            w=abs(a[0] - b[0]),
            h=abs(a[1] - b[1]),
        )

    @property
    def area(self) -> float:
        return self.w * self.h

    @property
    def is_empty(self) -> bool:
        return self.w <= 0 or self.h <= 0

    def corners(self) -> Box2:
        x0 = int(round(self.x))
        y0 = int(round(self.y))
        return (x0, y0, x0 + int(round(self.w)), y0 + int(round(self.h)))


class GestureState(str, Enum):
    SELECTING = "selecting"
    RELEASED = "released"


@dataclass(frozen=True)
class GestureReading:
    """Classification of a single frame."""

    gesture: GestureState
    centroid: Optional[Point2f] = None
    guides: Dict[str, Point2f] = field(default_factory=dict)
    label: Optional[str] = None
