"""The CHRONOTOPE draw loop."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Callable, Dict, Optional, Tuple

import numpy as np

from .config import (
    COLOR_GREEN,
    COLOR_RED,
    COLOR_WHITE,
    COLOR_YELLOW,
    GUIDE_RADIUS_PX,
    MARKER_RADIUS_PX,
    MODES,
    SketchConfig,
)
from .debounce import GestureDebouncer
from .detector import LandmarkDetector, create_detector
from .drawing import (
    blend_image_alpha,
    draw_centered_text,
    draw_countdown,
    draw_dashed_rect,
    draw_marker,
    draw_point,
    draw_polyline,
    draw_rect_alpha,
    draw_text,
)
from .feed import FeedLayout, capture_region, compute_feed_layout, render_feed
from .gestures import GestureClassifier, create_classifier
from .selection import SelectionEvent, SelectionMachine
from .snapshots import FadePolicy, Flash, SnapshotGallery
from .types import GestureReading

logger = logging.getLogger(__name__)

DetectorFactory = Callable[..., LandmarkDetector]


class Sketch:
    """
    One frame in, one canvas out.

    Frames are expected already mirrored (selfie view). Errors raised while
    processing a frame are logged and the sketch carries on with the next one.
    """

    def __init__(
        self,
        config: Optional[SketchConfig] = None,
        canvas_size: Tuple[int, int] = (1280, 720),
        detector_factory: DetectorFactory = create_detector,
    ) -> None:
        self.config = config or SketchConfig()
        self.canvas_width, self.canvas_height = canvas_size
        self._detector_factory = detector_factory
        self._detectors: Dict[str, LandmarkDetector] = {}
        self._detector_errors: Dict[str, Exception] = {}

        self.debouncer = GestureDebouncer(self.config.frame_threshold)
        self.selection = SelectionMachine(self.config.min_snapshot_size, self.config.development_s)
        self.gallery = SnapshotGallery(
            capacity=self.config.snapshot_limit,
            fade=FadePolicy(
                enabled=self.config.fade_enabled,
                hold_s=self.config.fade_hold_s,
                duration_s=self.config.fade_duration_s,
            ),
        )
        self.flash: Optional[Flash] = None
        self.last_reading: Optional[GestureReading] = None
        self.mode = self.config.mode
        self.classifier: GestureClassifier = create_classifier(self.mode, self.config)

    # ------------------------------------------------------------------ modes

    def set_mode(self, mode: str) -> None:
        if mode not in MODES:
            raise ValueError(f"Unknown mode '{mode}'. Available: {list(MODES)}")
        self.mode = mode
        self.classifier = create_classifier(mode, self.config)
        self.debouncer.reset()
        self.selection.reset()
        self.flash = None
        self.last_reading = None
        logger.info("Gesture mode: %s", mode)

    def cycle_mode(self) -> str:
        nxt = MODES[(MODES.index(self.mode) + 1) % len(MODES)]
        self.set_mode(nxt)
        return nxt

    def toggle_fade(self) -> bool:
        self.gallery.fade = replace(self.gallery.fade, enabled=not self.gallery.fade.enabled)
        logger.info("Snapshot fade %s", "on" if self.gallery.fade.enabled else "off")
        return self.gallery.fade.enabled

    def handle_key(self, key: int) -> bool:
        """React to a key press; returns False when the sketch should stop."""
        if key in (ord("q"), 27):
            return False
        if key == ord("m"):
            self.cycle_mode()
        elif key == ord("c"):
            self.gallery.clear()
            logger.info("Snapshots cleared")
        elif key == ord("f"):
            self.toggle_fade()
        return True

    # -------------------------------------------------------------- detectors

    def _detector(self, kind: str) -> Optional[LandmarkDetector]:
        """Cached detector for `kind`; `None` once creating it has failed."""
        if kind in self._detector_errors:
            return None
        det = self._detectors.get(kind)
        if det is None:
            try:
                det = self._detector_factory(
                    kind, models_dir=self.config.models_dir, max_num_hands=self.config.max_num_hands
                )
            except Exception as e:
                # Not retried: creation may download a model and block for a long time.
                self._detector_errors[kind] = e
                logger.error("Could not create the %s detector, mode %s is disabled: %s", kind, self.mode, e)
                return None
            self._detectors[kind] = det
        return det

    def close(self) -> None:
        for det in self._detectors.values():
            det.close()
        self._detectors.clear()

    def __enter__(self) -> "Sketch":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------ frame

    def new_canvas(self) -> np.ndarray:
        return np.zeros((self.canvas_height, self.canvas_width, 3), dtype=np.uint8)

    def step(self, frame: Optional[np.ndarray], now: float) -> np.ndarray:
        canvas = self.new_canvas()
        try:
            if frame is None or frame.size == 0:
                draw_centered_text(canvas, "Loading camera...", (self.canvas_width / 2, self.canvas_height / 2))
                return canvas

            fh, fw = frame.shape[:2]
            layout = compute_feed_layout(
                self.canvas_width, self.canvas_height, fw, fh, fit_to_height=self.config.fit_to_height
            )
            render_feed(canvas, frame, layout)

            detector = self._detector(self.classifier.model)
            bodies = detector.detect(frame) if detector is not None else []
            reading = self.classifier.classify(bodies, layout)
            self.last_reading = reading

            confirmed = self.debouncer.update(reading.gesture)
            event = self.selection.update(confirmed, reading.centroid, now)
            if event is SelectionEvent.DEVELOPING:
                self.flash = Flash(
                    rect=self.selection.pending,
                    started_at=now,
                    duration_s=self.config.development_s,
                    peak_opacity=self.config.flash_peak_opacity,
                )

            self._maybe_capture(frame, layout, now)
            self._draw(canvas, reading, now)
        except Exception:
            logger.exception("Draw loop error")
        return canvas

    def _maybe_capture(self, frame: np.ndarray, layout: FeedLayout, now: float) -> None:
        rect = self.selection.capture_due(now)
        if rect is None:
            return
        image = capture_region(frame, layout, rect)
        if image is None:
            logger.warning("Selection at (%.0f, %.0f) is outside the video, nothing captured", rect.x, rect.y)
            return
        self.gallery.add(image, layout.clip_to_feed(rect), now)

    # ---------------------------------------------------------------- drawing

    def _draw(self, canvas: np.ndarray, reading: GestureReading, now: float) -> None:
        for snap, opacity in self.gallery.visible(now):
            blend_image_alpha(canvas, snap.image, int(round(snap.rect.x)), int(round(snap.rect.y)), opacity)

        rect = self.selection.current_rect()
        if rect is not None:
            color = COLOR_RED if self.selection.meets_min_size(rect) else COLOR_YELLOW
            draw_dashed_rect(canvas, rect, color=color, thickness=2)

        if self.flash is not None:
            opacity = self.flash.opacity(now)
            if opacity is None:
                self.flash = None
            else:
                draw_rect_alpha(canvas, self.flash.rect, COLOR_WHITE, opacity)

        remaining = self.selection.development_remaining(now)
        if remaining is not None and remaining > 0 and self.config.development_s >= 1.0:
            draw_countdown(canvas, int(math.ceil(remaining)))

        if reading.guides:
            pts = list(reading.guides.values())
            draw_polyline(canvas, pts, color=COLOR_GREEN, thickness=2)
            for pt in pts:
                draw_point(canvas, pt, color=COLOR_GREEN, radius=GUIDE_RADIUS_PX)

        if reading.centroid is not None:
            if self.selection.is_selecting:
                live = self.selection.current_rect()
                color = COLOR_RED if live is not None and self.selection.meets_min_size(live) else COLOR_YELLOW
                draw_marker(canvas, reading.centroid, MARKER_RADIUS_PX, color, filled=True)
            else:
                draw_marker(canvas, reading.centroid, MARKER_RADIUS_PX, COLOR_WHITE, filled=False)
            if reading.label is not None:
                draw_centered_text(canvas, reading.label, reading.centroid, scale=0.6)

        if self.classifier.model in self._detector_errors:
            draw_centered_text(
                canvas,
                f"{self.classifier.model} detector unavailable, press m",
                (self.canvas_width / 2, self.canvas_height / 2),
                color=COLOR_YELLOW,
            )

        draw_text(
            canvas,
            f"{self.mode.upper()} | snapshots: {len(self.gallery)} | m: mode  c: clear  f: fade  q: quit",
            (12, self.canvas_height - 16),
            scale=0.5,
            thickness=1,
        )
