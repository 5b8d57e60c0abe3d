"""Selection lifecycle: released -> selecting -> developing -> released."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from .config import DEVELOPMENT_S, MIN_SNAPSHOT_SIZE_PX
from .types import GestureState, Point2f, Rect
from .utils import selection_bounds

logger = logging.getLogger(__name__)


class SelectionPhase(str, Enum):
    RELEASED = "released"
    SELECTING = "selecting"
    DEVELOPING = "developing"


class SelectionEvent(str, Enum):
    STARTED = "started"
    UPDATED = "updated"
    DEVELOPING = "developing"
    DISCARDED = "discarded"
    CAPTURED = "captured"


class SelectionMachine:
    """
    Turns the debounced gesture and the anchor point into a selection rectangle.

    A selection starts at the centroid when the gesture turns to selecting, follows
    the centroid while held and is frozen on release. Frozen rectangles larger than
    `min_snapshot_size` in either direction develop for `development_s` seconds
    before `capture_due` hands them out; smaller ones are discarded. New gestures
    are ignored while developing.
    """

    def __init__(self, min_snapshot_size: float = MIN_SNAPSHOT_SIZE_PX, development_s: float = DEVELOPMENT_S) -> None:
        self.min_snapshot_size = min_snapshot_size
        self.development_s = development_s
        self.reset()

    def reset(self) -> None:
        self.phase = SelectionPhase.RELEASED
        self.start: Optional[Point2f] = None
        self.end: Optional[Point2f] = None
        self.pending: Optional[Rect] = None
        self.development_started_at: Optional[float] = None

    @property
    def is_selecting(self) -> bool:
        return self.phase is SelectionPhase.SELECTING

    @property
    def is_developing(self) -> bool:
        return self.phase is SelectionPhase.DEVELOPING

    def meets_min_size(self, rect: Rect) -> bool:
        return rect.w > self.min_snapshot_size or rect.h > self.min_snapshot_size

    def current_rect(self) -> Optional[Rect]:
        if self.phase is SelectionPhase.DEVELOPING:
            return self.pending
        if self.phase is SelectionPhase.SELECTING and self.start is not None and self.end is not None:
            return selection_bounds(self.start, self.end)
        return None

    def update(self, gesture: GestureState, centroid: Optional[Point2f], now: float) -> Optional[SelectionEvent]:
        if self.phase is SelectionPhase.DEVELOPING:
            return None

        if gesture is GestureState.SELECTING:
            if centroid is None:
                return None
            if self.phase is SelectionPhase.RELEASED:
                self.phase = SelectionPhase.SELECTING
                self.start = centroid
                self.end = centroid
                logger.info("Selection started at (%.0f, %.0f)", centroid[0], centroid[1])
                return SelectionEvent.STARTED
            self.end = centroid
            return SelectionEvent.UPDATED

        if self.phase is not SelectionPhase.SELECTING:
            return None

        rect = selection_bounds(self.start, self.end)
        if self.meets_min_size(rect):
            self.phase = SelectionPhase.DEVELOPING
            self.pending = rect
            self.development_started_at = now
            logger.info("Developing %.0fx%.0f selection at (%.0f, %.0f)", rect.w, rect.h, rect.x, rect.y)
            return SelectionEvent.DEVELOPING

        logger.info("Selection discarded: %.0fx%.0f is below %.0f px", rect.w, rect.h, self.min_snapshot_size)
        self.reset()
        return SelectionEvent.DISCARDED

    def development_remaining(self, now: float) -> Optional[float]:
        if self.phase is not SelectionPhase.DEVELOPING or self.development_started_at is None:
            return None
        return max(0.0, self.development_s - (now - self.development_started_at))

    def capture_due(self, now: float) -> Optional[Rect]:
        """Pending rectangle once development is over; the machine is released again."""
        remaining = self.development_remaining(now)
        if remaining is None or remaining > 0.0:
            return None
        rect = self.pending
        self.reset()
        logger.info("Selection %s", SelectionEvent.CAPTURED.value)
        return rect
