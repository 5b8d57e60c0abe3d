from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import FRAME_THRESHOLD
from .types import GestureState

logger = logging.getLogger(__name__)


@dataclass
class GestureDebouncer:
    """
    Frame-counter debounce for the raw per-frame gesture.

    The confirmed state only flips after `frame_threshold` consecutive frames of
    the opposite classification. A threshold of 1 follows the raw gesture.
    """

    frame_threshold: int = FRAME_THRESHOLD
    state: GestureState = GestureState.RELEASED
    selecting_frame_count: int = 0
    released_frame_count: int = 0

    def update(self, raw: GestureState) -> GestureState:
        if raw is GestureState.SELECTING:
            self.selecting_frame_count += 1
            self.released_frame_count = 0
        else:
            self.released_frame_count += 1
            self.selecting_frame_count = 0

        if self.state is GestureState.RELEASED and self.selecting_frame_count >= self.frame_threshold:
            self.state = GestureState.SELECTING
            logger.debug("Gesture confirmed: selecting (%d frames)", self.selecting_frame_count)
        elif self.state is GestureState.SELECTING and self.released_frame_count >= self.frame_threshold:
            self.state = GestureState.RELEASED
            logger.debug("Gesture confirmed: released (%d frames)", self.released_frame_count)

        return self.state

    def reset(self) -> None:
        self.state = GestureState.RELEASED
        self.selecting_frame_count = 0
        self.released_frame_count = 0
