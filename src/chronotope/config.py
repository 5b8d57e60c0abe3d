"""Tuning knobs, presets and logging setup for the sketch."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Dict


# =============================================================================
# GESTURE MODES
# =============================================================================
MODES = ("close", "tripinch", "far", "pose", "fistlm", "fist")
DEFAULT_MODE = "close"

# Close (single hand) pinch: thumb/index/middle tips around their centroid.
CLOSE_BASE_THRESHOLD_PX = 32.0
CLOSE_REFERENCE_HAND_SIZE_PX = 128.0

# Tri-pinch: fixed pairwise distance between thumb/index/middle tips.
TRIPINCH_THRESHOLD_PX = 48.0

# Far (two hands): distance between both index fingertips.
FAR_THRESHOLD_PX = 96.0

# Pose: distance between the two thumb landmarks of the pose model.
POSE_THRESHOLD_PX = 96.0

# Landmark-only fist: tip-to-base distance per finger (4/3, 8/5, 12/9, 16/13, 20/17).
FIST_CLOSED_PX = 35.0
FIST_OPEN_PX = 70.0
FIST_CLOSED_FINGERS = 4
FIST_OPEN_FINGERS = 3

LANDMARK_SMOOTHING_WINDOW = 6


# =============================================================================
# DEBOUNCE / SELECTION
# =============================================================================
FRAME_THRESHOLD = 3
MIN_SNAPSHOT_SIZE_PX = 80.0
DEVELOPMENT_S = 0.75


# =============================================================================
# SNAPSHOTS / FADE
# =============================================================================
SNAPSHOT_LIMIT = 20
FADE_ENABLED = True
FADE_HOLD_S = 120.0
FADE_DURATION_S = 10.0
FLASH_PEAK_OPACITY = 240 / 255


# =============================================================================
# DETECTION
# =============================================================================
MAX_NUM_HANDS = 2
MIN_DETECTION_CONFIDENCE = 0.3
MIN_PRESENCE_CONFIDENCE = 0.2
MIN_TRACKING_CONFIDENCE = 0.3
MODELS_DIR = "models"


# =============================================================================
# COLOURS (BGR)
# =============================================================================
COLOR_WHITE = (255, 255, 255)
COLOR_RED = (0, 0, 255)
COLOR_YELLOW = (0, 255, 255)
COLOR_GREEN = (0, 255, 0)

MARKER_RADIUS_PX = 12
GUIDE_RADIUS_PX = 6


@dataclass(frozen=True)
class SketchConfig:
    mode: str = DEFAULT_MODE

    close_base_threshold: float = CLOSE_BASE_THRESHOLD_PX
    close_reference_hand_size: float = CLOSE_REFERENCE_HAND_SIZE_PX
    tripinch_threshold: float = TRIPINCH_THRESHOLD_PX
    far_threshold: float = FAR_THRESHOLD_PX
    pose_threshold: float = POSE_THRESHOLD_PX
    smoothing_window: int = LANDMARK_SMOOTHING_WINDOW
    fist_closed_threshold: float = FIST_CLOSED_PX
    fist_open_threshold: float = FIST_OPEN_PX

    frame_threshold: int = FRAME_THRESHOLD
    min_snapshot_size: float = MIN_SNAPSHOT_SIZE_PX
    development_s: float = DEVELOPMENT_S

    snapshot_limit: int = SNAPSHOT_LIMIT
    fade_enabled: bool = FADE_ENABLED
    fade_hold_s: float = FADE_HOLD_S
    fade_duration_s: float = FADE_DURATION_S
    flash_peak_opacity: float = FLASH_PEAK_OPACITY

    max_num_hands: int = MAX_NUM_HANDS
    models_dir: str = MODELS_DIR
    fit_to_height: bool = False

    def __post_init__(self) -> None:
        if self.mode not in MODES:
            raise ValueError(f"Unknown mode '{self.mode}'. Available: {list(MODES)}")
        if self.frame_threshold < 1:
            raise ValueError(f"frame_threshold must be >= 1, got {self.frame_threshold}")
        if self.snapshot_limit < 1:
            raise ValueError(f"snapshot_limit must be >= 1, got {self.snapshot_limit}")

    def with_overrides(self, **overrides) -> "SketchConfig":
        """Copy with the given fields replaced; `None` values are ignored."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


PRESETS: Dict[str, SketchConfig] = {
    "close": SketchConfig(mode="close"),
    "tripinch": SketchConfig(mode="tripinch", development_s=2.0, frame_threshold=1),
    "far": SketchConfig(mode="far"),
    "pose": SketchConfig(mode="pose"),
    # Fist / open hand from landmarks alone, held steady for 10 frames.
    "fistlm": SketchConfig(mode="fistlm", frame_threshold=10, development_s=2.0),
    # Fist to select, open palm to release. Snapshots stay for a while and vanish quickly.
    "fist": SketchConfig(mode="fist", development_s=0.5, fade_hold_s=20.0, fade_duration_s=1.0),
    "fist-quickfade": SketchConfig(
        mode="fist", development_s=0.5, fade_hold_s=0.0, fade_duration_s=1.0, flash_peak_opacity=124 / 255
    ),
}


def get_preset(name: str) -> SketchConfig:
    if name not in PRESETS:
        raise ValueError(f"Unknown preset '{name}'. Available: {sorted(PRESETS)}")
    return PRESETS[name]


def configure_logging(level: str = "INFO") -> None:
    # Silence noisy native logs before mediapipe gets imported.
    os.environ.setdefault("GLOG_minloglevel", "2")
    os.environ.setdefault("TF_CPP_MIN_LOG_LEVEL", "2")
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="[%(levelname)s] %(name)s: %(message)s",
    )
