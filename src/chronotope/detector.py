"""
MediaPipe landmark detectors.

Every detector takes a **BGR** frame (OpenCV default) and returns a list of
`TrackedBody` with normalized landmarks. Hands and poses prefer the legacy
`mp.solutions` API and fall back to MediaPipe Tasks, which needs a `.task`
model file on disk (downloaded on first use).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Optional

import cv2

from .config import (
    MAX_NUM_HANDS,
    MIN_DETECTION_CONFIDENCE,
    MIN_PRESENCE_CONFIDENCE,
    MIN_TRACKING_CONFIDENCE,
    MODELS_DIR,
)
from .model_assets import TASK_URLS, default_model_path, ensure_task_asset
from .types import Landmark, TrackedBody

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _SolutionsBackend:
    mp: object
    model: object


@dataclass(frozen=True)
class _TasksBackend:
    mp: object
    task: object


def _solutions_module(name: str):
    import mediapipe as mp  # type: ignore

    if not hasattr(mp, "solutions"):
        return mp, None
    return mp, getattr(mp.solutions, name, None)


def _tasks_api():
    import mediapipe as mp  # type: ignore
    from mediapipe.tasks.python import BaseOptions  # type: ignore
    from mediapipe.tasks.python import vision  # type: ignore

    return mp, BaseOptions, vision


def _landmarks_from(raw_landmarks) -> List[Landmark]:
    out: List[Landmark] = []
    for idx, lm in enumerate(raw_landmarks):
        vis = getattr(lm, "visibility", None)
        out.append(
            Landmark(
                idx=idx,
                x_norm=float(lm.x),
                y_norm=float(lm.y),
                z_norm=float(getattr(lm, "z", 0.0)),
                visibility=float(vis) if vis is not None else None,
            )
        )
    return out


def _top_category(categories):
    if not categories:
        return None, None
    cat0 = categories[0]
    label = getattr(cat0, "category_name", None) or getattr(cat0, "display_name", None)
    score = getattr(cat0, "score", None)
    return label, float(score) if score is not None else None


def _init_error(what: str, model_path: str) -> RuntimeError:
    return RuntimeError(
        f"Could not initialize MediaPipe {what}.\n"
        "Your installed `mediapipe` package may not expose `mp.solutions`, and the Tasks\n"
        f"fallback needs a model file on disk:\n  {model_path}\n\n"
        "Run this and paste the output:\n"
        "  python3 -c \"import mediapipe as mp; print(mp.__file__); print(getattr(mp,'__version__',None))\""
    )


class LandmarkDetector:
    """Shared plumbing: frame conversion, VIDEO-mode timestamps, closing."""

    kind = ""

    def __init__(self) -> None:
        self._solutions: Optional[_SolutionsBackend] = None
        self._tasks: Optional[_TasksBackend] = None
        self._last_timestamp_ms = 0

    def close(self) -> None:
        if self._solutions is not None:
            self._solutions.model.close()
            self._solutions = None
        if self._tasks is not None:
            try:
                self._tasks.task.close()
            except Exception:  # pragma: no cover
                logger.debug("Ignoring error while closing %s task", self.kind, exc_info=True)
            self._tasks = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _next_timestamp_ms(self) -> int:
        # Tasks VIDEO mode requires strictly increasing timestamps.
        now_ms = int(time.monotonic() * 1000)
        self._last_timestamp_ms = max(self._last_timestamp_ms + 1, now_ms)
        return self._last_timestamp_ms

    def _mp_image(self, frame_rgb):
        mp = self._tasks.mp
        if not hasattr(mp, "Image") or not hasattr(mp, "ImageFormat"):
            raise RuntimeError("Your MediaPipe build does not expose `mp.Image` required for the Tasks API.")
        return mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)

    def detect(self, frame_bgr) -> List[TrackedBody]:
        raise NotImplementedError


class HandLandmarkDetector(LandmarkDetector):
    kind = "hand"

    def __init__(
        self,
        max_num_hands: int = MAX_NUM_HANDS,
        min_detection_confidence: float = MIN_DETECTION_CONFIDENCE,
        min_presence_confidence: float = MIN_PRESENCE_CONFIDENCE,
        min_tracking_confidence: float = MIN_TRACKING_CONFIDENCE,
        tasks_model_path: str = default_model_path("hand", MODELS_DIR),
    ) -> None:
        super().__init__()
        mp, hands_mod = _solutions_module("hands")
        if hands_mod is not None:
            hands = hands_mod.Hands(
                static_image_mode=False,
                max_num_hands=max_num_hands,
                model_complexity=1,
                min_detection_confidence=min_detection_confidence,
                min_tracking_confidence=min_tracking_confidence,
            )
            self._solutions = _SolutionsBackend(mp=mp, model=hands)
            logger.info("Hand landmarks: using mp.solutions.hands")
            return

        try:
            mp, BaseOptions, vision = _tasks_api()
            model_path = ensure_task_asset(tasks_model_path, TASK_URLS["hand"])
            options = vision.HandLandmarkerOptions(
                base_options=BaseOptions(model_asset_path=model_path),
                running_mode=vision.RunningMode.VIDEO,
                num_hands=max_num_hands,
                min_hand_detection_confidence=min_detection_confidence,
                min_hand_presence_confidence=min_presence_confidence,
                min_tracking_confidence=min_tracking_confidence,
            )
            self._tasks = _TasksBackend(mp=mp, task=vision.HandLandmarker.create_from_options(options))
        except RuntimeError:
            raise
        except Exception as e:
            raise _init_error("HandLandmarker", tasks_model_path) from e
        logger.info("Hand landmarks: using Tasks HandLandmarker (%s)", tasks_model_path)

    def detect(self, frame_bgr) -> List[TrackedBody]:
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)

        if self._solutions is not None:
            results = self._solutions.model.process(frame_rgb)
            if not results.multi_hand_landmarks:
                return []
            handedness_list = results.multi_handedness or []
            bodies: List[TrackedBody] = []
            for i, hand_landmarks in enumerate(results.multi_hand_landmarks):
                label: Optional[str] = None
                score: Optional[float] = None
                if i < len(handedness_list) and handedness_list[i].classification:
                    c = handedness_list[i].classification[0]
                    label = getattr(c, "label", None)
                    score = float(getattr(c, "score", 0.0))
                bodies.append(
                    TrackedBody(
                        kind="hand",
                        landmarks=_landmarks_from(hand_landmarks.landmark),
                        handedness_label=label,
                        handedness_score=score,
                    )
                )
            return bodies

        if self._tasks is None:
            return []

        result = self._tasks.task.detect_for_video(self._mp_image(frame_rgb), self._next_timestamp_ms())
        hand_landmarks_list = getattr(result, "hand_landmarks", None) or []
        handedness_list = getattr(result, "handedness", None) or []

        bodies = []
        for i, landmarks in enumerate(hand_landmarks_list):
            label, score = _top_category(handedness_list[i] if i < len(handedness_list) else None)
            bodies.append(
                TrackedBody(
                    kind="hand",
                    landmarks=_landmarks_from(landmarks),
                    handedness_label=label,
                    handedness_score=score,
                )
            )
        return bodies


class PoseLandmarkDetector(LandmarkDetector):
    kind = "pose"

    def __init__(
        self,
        min_detection_confidence: float = 0.5,
        min_presence_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        tasks_model_path: str = default_model_path("pose", MODELS_DIR),
    ) -> None:
        super().__init__()
        mp, pose_mod = _solutions_module("pose")
        if pose_mod is not None:
            pose = pose_mod.Pose(
                static_image_mode=False,
                model_complexity=1,
                min_detection_confidence=min_detection_confidence,
                min_tracking_confidence=min_tracking_confidence,
            )
            self._solutions = _SolutionsBackend(mp=mp, model=pose)
            logger.info("Pose landmarks: using mp.solutions.pose")
            return

        try:
            mp, BaseOptions, vision = _tasks_api()
            model_path = ensure_task_asset(tasks_model_path, TASK_URLS["pose"])
            options = vision.PoseLandmarkerOptions(
                base_options=BaseOptions(model_asset_path=model_path),
                running_mode=vision.RunningMode.VIDEO,
                num_poses=1,
                min_pose_detection_confidence=min_detection_confidence,
                min_pose_presence_confidence=min_presence_confidence,
                min_tracking_confidence=min_tracking_confidence,
            )
            self._tasks = _TasksBackend(mp=mp, task=vision.PoseLandmarker.create_from_options(options))
        except RuntimeError:
            raise
        except Exception as e:
            raise _init_error("PoseLandmarker", tasks_model_path) from e
        logger.info("Pose landmarks: using Tasks PoseLandmarker (%s)", tasks_model_path)

    def detect(self, frame_bgr) -> List[TrackedBody]:
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)

        if self._solutions is not None:
            results = self._solutions.model.process(frame_rgb)
            if not results.pose_landmarks:
                return []
            return [TrackedBody(kind="pose", landmarks=_landmarks_from(results.pose_landmarks.landmark))]

        if self._tasks is None:
            return []

        result = self._tasks.task.detect_for_video(self._mp_image(frame_rgb), self._next_timestamp_ms())
        poses = getattr(result, "pose_landmarks", None) or []
        return [TrackedBody(kind="pose", landmarks=_landmarks_from(p)) for p in poses]


class GestureRecognizerDetector(LandmarkDetector):
    """Hands plus the recognizer's gesture label ("Closed_Fist", "Open_Palm", ...)."""

    kind = "gesture"

    def __init__(
        self,
        max_num_hands: int = MAX_NUM_HANDS,
        min_detection_confidence: float = 0.5,
        min_presence_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        tasks_model_path: str = default_model_path("gesture", MODELS_DIR),
    ) -> None:
        super().__init__()
        try:
            mp, BaseOptions, vision = _tasks_api()
            model_path = ensure_task_asset(tasks_model_path, TASK_URLS["gesture"])
            options = vision.GestureRecognizerOptions(
                base_options=BaseOptions(model_asset_path=model_path),
                running_mode=vision.RunningMode.VIDEO,
                num_hands=max_num_hands,
                min_hand_detection_confidence=min_detection_confidence,
                min_hand_presence_confidence=min_presence_confidence,
                min_tracking_confidence=min_tracking_confidence,
            )
            self._tasks = _TasksBackend(mp=mp, task=vision.GestureRecognizer.create_from_options(options))
        except RuntimeError:
            raise
        except Exception as e:
            raise _init_error("GestureRecognizer", tasks_model_path) from e
        logger.info("Gestures: using Tasks GestureRecognizer (%s)", tasks_model_path)

    def detect(self, frame_bgr) -> List[TrackedBody]:
        if self._tasks is None:
            return []

        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        result = self._tasks.task.recognize_for_video(self._mp_image(frame_rgb), self._next_timestamp_ms())
        hand_landmarks_list = getattr(result, "hand_landmarks", None) or []
        handedness_list = getattr(result, "handedness", None) or []
        gestures_list = getattr(result, "gestures", None) or []

        bodies: List[TrackedBody] = []
        for i, landmarks in enumerate(hand_landmarks_list):
            hand_label, hand_score = _top_category(handedness_list[i] if i < len(handedness_list) else None)
            gesture_label, gesture_score = _top_category(gestures_list[i] if i < len(gestures_list) else None)
            bodies.append(
                TrackedBody(
                    kind="hand",
                    landmarks=_landmarks_from(landmarks),
                    handedness_label=hand_label,
                    handedness_score=hand_score,
                    gesture_label=gesture_label,
                    gesture_score=gesture_score,
                )
            )
        return bodies


DETECTORS = {
    "hand": HandLandmarkDetector,
    "pose": PoseLandmarkDetector,
    "gesture": GestureRecognizerDetector,
}


def create_detector(kind: str, models_dir: str = MODELS_DIR, max_num_hands: int = MAX_NUM_HANDS) -> LandmarkDetector:
    if kind not in DETECTORS:
        raise ValueError(f"Unknown detector kind '{kind}'. Available: {sorted(DETECTORS)}")
    model_path = default_model_path(kind, models_dir)
    if kind == "pose":
        return PoseLandmarkDetector(tasks_model_path=model_path)
    return DETECTORS[kind](max_num_hands=max_num_hands, tasks_model_path=model_path)
