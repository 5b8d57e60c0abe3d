from .config import SketchConfig
from .sketch import Sketch
from .types import GestureReading, GestureState, Landmark, Rect, TrackedBody

__all__ = ["Sketch", "SketchConfig", "GestureReading", "GestureState", "Landmark", "Rect", "TrackedBody"]
