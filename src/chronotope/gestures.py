"""Per-frame gesture classifiers: landmarks in, `selecting` / `released` out."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .config import FIST_CLOSED_FINGERS, FIST_OPEN_FINGERS, SketchConfig
from .feed import FeedLayout, map_landmarks
from .smoothing import AveragePosition
from .types import GestureReading, GestureState, Point2f, TrackedBody
from .utils import dist, mean_point

logger = logging.getLogger(__name__)

SELECTING = GestureState.SELECTING
RELEASED = GestureState.RELEASED


# MediaPipe landmark indices
class LM:
    WRIST = 0
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_TIP = 20
    # pose model
    POSE_LEFT_THUMB = 21
    POSE_RIGHT_THUMB = 22


def _bodies_of(bodies: List[TrackedBody], kind: str) -> List[TrackedBody]:
    return [b for b in bodies if b.kind == kind]


class GestureClassifier:
    name = ""
    model = "hand"  # detector kind this classifier needs

    def classify(self, bodies: List[TrackedBody], layout: FeedLayout) -> GestureReading:
        raise NotImplementedError

    def reset(self) -> None:
        pass

    @classmethod
    def from_config(cls, config: SketchConfig) -> "GestureClassifier":
        return cls()


class CloseHandClassifier(GestureClassifier):
    """
    Thumb, index and middle fingertips pinched together on one hand.

    The threshold scales with the apparent hand size (wrist to middle tip), so the
    gesture works at different distances from the camera.
    """

    name = "close"

    def __init__(self, base_threshold: float = 32.0, reference_hand_size: float = 128.0) -> None:
        self.base_threshold = base_threshold
        self.reference_hand_size = reference_hand_size

    @classmethod
    def from_config(cls, config):
        return cls(config.close_base_threshold, config.close_reference_hand_size)

    def classify(self, bodies, layout):
        hands = _bodies_of(bodies, "hand")
        if not hands:
            return GestureReading(RELEASED)

        idx = (LM.THUMB_TIP, LM.INDEX_TIP, LM.MIDDLE_TIP, LM.WRIST)
        pts = map_landmarks(hands[0], layout, idx)
        if len(pts) < len(idx):
            return GestureReading(RELEASED)

        hand_size = dist(pts[LM.WRIST], pts[LM.MIDDLE_TIP])
        threshold = hand_size / self.reference_hand_size * self.base_threshold

        tips = [pts[LM.THUMB_TIP], pts[LM.INDEX_TIP], pts[LM.MIDDLE_TIP]]
        centroid = mean_point(tips)
        pinched = all(dist(tip, centroid) < threshold for tip in tips)
        return GestureReading(SELECTING if pinched else RELEASED, centroid=centroid)


class TriPinchClassifier(GestureClassifier):
    """Thumb, index and middle fingertips all within a fixed pixel distance of each other."""

    name = "tripinch"

    def __init__(self, close_threshold: float = 48.0) -> None:
        self.close_threshold = close_threshold

    @classmethod
    def from_config(cls, config):
        return cls(config.tripinch_threshold)

    def classify(self, bodies, layout):
        hands = _bodies_of(bodies, "hand")
        if not hands:
            return GestureReading(RELEASED)

        pts = map_landmarks(hands[0], layout, (LM.THUMB_TIP, LM.INDEX_TIP, LM.MIDDLE_TIP))
        if len(pts) < 3:
            return GestureReading(RELEASED)

        thumb, index, middle = pts[LM.THUMB_TIP], pts[LM.INDEX_TIP], pts[LM.MIDDLE_TIP]
        centroid = mean_point([thumb, index, middle])
        pinched = (
            dist(thumb, index) < self.close_threshold
            and dist(thumb, middle) < self.close_threshold
            and dist(index, middle) < self.close_threshold
        )
        return GestureReading(SELECTING if pinched else RELEASED, centroid=centroid)


class _TwoPointClassifier(GestureClassifier):
    """Selecting while two smoothed points are closer than `threshold`."""

    def __init__(self, threshold: float = 96.0, smoothing_window: int = 6) -> None:
        self.threshold = threshold
        self._avg = AveragePosition(smoothing_window)

    def reset(self) -> None:
        self._avg.reset()

    def _points(self, bodies, layout) -> Optional[Dict[str, Point2f]]:
        raise NotImplementedError

    def classify(self, bodies, layout):
        raw = self._points(bodies, layout)
        if raw is None:
            return GestureReading(RELEASED)

        guides: Dict[str, Point2f] = {}
        for key, (x, y) in raw.items():
            guides[key] = (self._avg(f"x_{key}", x), self._avg(f"y_{key}", y))

        a, b = list(guides.values())
        centroid = ((a[0] + b[0]) / 2, (a[1] + b[1]) / 2)
        close = dist(a, b) < self.threshold
        return GestureReading(SELECTING if close else RELEASED, centroid=centroid, guides=guides)


class FarHandsClassifier(_TwoPointClassifier):
    """Both index fingertips (one per hand) brought together."""

    name = "far"

    @classmethod
    def from_config(cls, config):
        return cls(config.far_threshold, config.smoothing_window)

    def _points(self, bodies, layout):
        hands = _bodies_of(bodies, "hand")[:2]
        if len(hands) < 2:
            return None
        # Detection order can swap between frames; key the smoothing windows by
        # handedness when both hands have a distinct label.
        labels = [h.handedness_label for h in hands]
        if None in labels or labels[0] == labels[1]:
            keys = ["hand0", "hand1"]
        else:
            keys = labels
        tips = {}
        for key, hand in sorted(zip(keys, hands), key=lambda kh: kh[0]):
            pts = map_landmarks(hand, layout, (LM.INDEX_TIP,))
            if LM.INDEX_TIP not in pts:
                return None
            tips[key] = pts[LM.INDEX_TIP]
        return tips


class PoseClassifier(_TwoPointClassifier):
    """Both hands of the pose skeleton brought together (thumb landmarks 21 and 22)."""

    name = "pose"
    model = "pose"

    @classmethod
    def from_config(cls, config):
        return cls(config.pose_threshold, config.smoothing_window)

    def _points(self, bodies, layout):
        poses = _bodies_of(bodies, "pose")
        if not poses:
            return None
        pts = map_landmarks(poses[0], layout, (LM.POSE_LEFT_THUMB, LM.POSE_RIGHT_THUMB))
        if len(pts) < 2:
            return None
        return {"left": pts[LM.POSE_LEFT_THUMB], "right": pts[LM.POSE_RIGHT_THUMB]}


class LandmarkFistClassifier(GestureClassifier):
    """
    Fist / open hand from hand landmarks alone, no gesture recognizer needed.

    Each finger is measured tip to base (4/3, 8/5, 12/9, 16/13, 20/17). Enough
    short fingers make a fist, enough long ones an open hand. Anything in between
    keeps the previous state, so a held fist is only released by a clearly open
    hand. The anchor is the middle finger MCP, kept while the hand is lost.
    """

    name = "fistlm"

    FINGERS = (
        (LM.THUMB_TIP, LM.THUMB_IP),
        (LM.INDEX_TIP, LM.INDEX_MCP),
        (LM.MIDDLE_TIP, LM.MIDDLE_MCP),
        (LM.RING_TIP, LM.RING_MCP),
        (LM.PINKY_TIP, LM.PINKY_MCP),
    )

    def __init__(
        self,
        closed_threshold: float = 35.0,
        open_threshold: float = 70.0,
        closed_fingers: int = FIST_CLOSED_FINGERS,
        open_fingers: int = FIST_OPEN_FINGERS,
    ) -> None:
        self.closed_threshold = closed_threshold
        self.open_threshold = open_threshold
        self.closed_fingers = closed_fingers
        self.open_fingers = open_fingers
        self.reset()

    @classmethod
    def from_config(cls, config):
        return cls(config.fist_closed_threshold, config.fist_open_threshold)

    def reset(self) -> None:
        self._state = RELEASED
        self._last_centroid: Optional[Point2f] = None

    def classify(self, bodies, layout):
        hands = _bodies_of(bodies, "hand")
        if not hands:
            return GestureReading(self._state, centroid=self._last_centroid)

        idx = sorted({i for pair in self.FINGERS for i in pair})
        pts = map_landmarks(hands[0], layout, idx)
        if LM.MIDDLE_MCP in pts:
            self._last_centroid = pts[LM.MIDDLE_MCP]
        if len(pts) < len(idx):
            return GestureReading(self._state, centroid=self._last_centroid)

        lengths = [dist(pts[tip], pts[base]) for tip, base in self.FINGERS]
        closed = sum(1 for d in lengths if d < self.closed_threshold)
        opened = sum(1 for d in lengths if d > self.open_threshold)

        if closed >= self.closed_fingers:
            self._state = SELECTING
        elif opened >= self.open_fingers:
            self._state = RELEASED
        logger.debug("Fingers closed=%d open=%d -> %s", closed, opened, self._state.value)
        return GestureReading(self._state, centroid=self._last_centroid)


class FistPalmClassifier(GestureClassifier):
    """
    Gesture recognizer labels: a closed fist selects, an open palm releases.

    Any other label keeps the previous state, and the anchor point (middle finger
    MCP) stays at its last known position while the hand is lost.
    """

    name = "fist"
    model = "gesture"

    SELECT_LABEL = "Closed_Fist"
    RELEASE_LABEL = "Open_Palm"

    def __init__(self) -> None:
        self._state = RELEASED
        self._last_centroid: Optional[Point2f] = None

    def reset(self) -> None:
        self._state = RELEASED
        self._last_centroid = None

    def classify(self, bodies, layout):
        hands = _bodies_of(bodies, "hand")
        label = "None"
        if hands:
            pts = map_landmarks(hands[0], layout, (LM.MIDDLE_MCP,))
            if LM.MIDDLE_MCP in pts:
                self._last_centroid = pts[LM.MIDDLE_MCP]
            label = hands[0].gesture_label or "None"

        if label == self.SELECT_LABEL:
            self._state = SELECTING
        elif label == self.RELEASE_LABEL:
            self._state = RELEASED
        return GestureReading(self._state, centroid=self._last_centroid, label=label)


CLASSIFIERS = {
    "close": CloseHandClassifier,
    "tripinch": TriPinchClassifier,
    "far": FarHandsClassifier,
    "pose": PoseClassifier,
    "fistlm": LandmarkFistClassifier,
    "fist": FistPalmClassifier,
}


def create_classifier(mode: str, config: Optional[SketchConfig] = None) -> GestureClassifier:
    if mode not in CLASSIFIERS:
        raise ValueError(f"Unknown mode '{mode}'. Available: {sorted(CLASSIFIERS)}")
    return CLASSIFIERS[mode].from_config(config or SketchConfig())
