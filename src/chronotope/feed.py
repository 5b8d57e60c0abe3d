"""Placement of the video feed on the canvas, and camera access."""

from __future__ import annotations

import logging
import platform
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

import cv2
import numpy as np

from .drawing import paste_image
from .types import Point2f, Rect, TrackedBody
from .utils import clamp_int, map_range

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedLayout:
    """Where the video frame is drawn on the canvas, and at which size."""

    x: float
    y: float
    scaled_width: float
    scaled_height: float
    video_width: int
    video_height: int

    def to_canvas(self, x_norm: float, y_norm: float, mirror: bool = False) -> Point2f:
        if mirror:
            cx = map_range(x_norm, 1.0, 0.0, 0.0, self.scaled_width)
        else:
            cx = map_range(x_norm, 0.0, 1.0, 0.0, self.scaled_width)
        cy = map_range(y_norm, 0.0, 1.0, 0.0, self.scaled_height)
        return (self.x + cx, self.y + cy)

    def clip_to_feed(self, rect: Rect) -> Optional[Rect]:
        """Part of `rect` covered by the video feed; `None` if they do not overlap."""
        right = self.x + self.scaled_width
        bottom = self.y + self.scaled_height
        if rect.x >= self.x and rect.y >= self.y and rect.x + rect.w <= right and rect.y + rect.h <= bottom:
            return rect
        x0 = max(rect.x, self.x)
        y0 = max(rect.y, self.y)
        x1 = min(rect.x + rect.w, right)
        y1 = min(rect.y + rect.h, bottom)
        if x1 <= x0 or y1 <= y0:
            return None
        return Rect(x0, y0, x1 - x0, y1 - y0)

    def canvas_rect_to_video(self, rect: Rect) -> Optional[Tuple[int, int, int, int]]:
        sx = self.video_width / self.scaled_width
        sy = self.video_height / self.scaled_height
        x0 = clamp_int(int(round((rect.x - self.x) * sx)), 0, self.video_width)
        y0 = clamp_int(int(round((rect.y - self.y) * sy)), 0, self.video_height)
        x1 = clamp_int(int(round((rect.x + rect.w - self.x) * sx)), 0, self.video_width)
        y1 = clamp_int(int(round((rect.y + rect.h - self.y) * sy)), 0, self.video_height)
        if x1 <= x0 or y1 <= y0:
            return None
        return (x0, y0, x1, y1)


def compute_feed_layout(
    canvas_w: int,
    canvas_h: int,
    video_w: int,
    video_h: int,
    fit_to_height: bool = False,
) -> FeedLayout:
    """
    Fit the video onto the canvas, keeping its aspect ratio.

    When the canvas is wider than the video, the feed covers the full canvas width
    (cropped top and bottom) unless `fit_to_height` asks for the full height instead.
    Otherwise the feed spans the canvas height and is centered horizontally.
    """
    if canvas_w <= 0 or canvas_h <= 0 or video_w <= 0 or video_h <= 0:
        raise ValueError(
            f"Sizes must be positive: canvas={canvas_w}x{canvas_h} video={video_w}x{video_h}"
        )

    canvas_ratio = canvas_w / canvas_h
    video_ratio = video_w / video_h

    x, y = 0.0, 0.0
    w, h = float(canvas_w), float(canvas_h)

    if canvas_ratio > video_ratio:
        if fit_to_height:
            w = canvas_h * video_ratio
            x = (canvas_w - w) / 2
        else:
            h = canvas_w / video_ratio
            y = (canvas_h - h) / 2
    else:
        w = canvas_h * video_ratio
        x = (canvas_w - w) / 2

    return FeedLayout(
        x=x,
        y=y,
        scaled_width=w,
        scaled_height=h,
        video_width=int(video_w),
        video_height=int(video_h),
    )


def map_landmarks(
    body: TrackedBody,
    layout: FeedLayout,
    indices: Iterable[int],
    mirror: bool = False,
) -> Dict[int, Point2f]:
    """Canvas positions of the requested landmarks that exist on `body`."""
    mapped: Dict[int, Point2f] = {}
    for idx in indices:
        lm = body.landmark(idx)
        if lm is None:
            continue
        mapped[idx] = layout.to_canvas(lm.x_norm, lm.y_norm, mirror=mirror)
    return mapped


def render_feed(canvas: np.ndarray, frame: np.ndarray, layout: FeedLayout) -> np.ndarray:
    w = max(1, int(round(layout.scaled_width)))
    h = max(1, int(round(layout.scaled_height)))
    scaled = cv2.resize(frame, (w, h), interpolation=cv2.INTER_LINEAR)
    paste_image(canvas, scaled, int(round(layout.x)), int(round(layout.y)))
    return canvas


def capture_region(frame: np.ndarray, layout: FeedLayout, rect: Rect) -> Optional[np.ndarray]:
    """
    Crop the video pixels behind `rect` and resize them to the rect's canvas size.

    The rect is first clipped to the feed, so the output matches
    `layout.clip_to_feed(rect)` rather than `rect` when they differ.
    """
    rect = layout.clip_to_feed(rect)
    if rect is None or rect.is_empty:
        return None
    box = layout.canvas_rect_to_video(rect)
    if box is None:
        return None
    x0, y0, x1, y1 = box
    crop = frame[y0:y1, x0:x1]
    if crop.size == 0:
        return None
    out_w = max(1, int(round(rect.w)))
    out_h = max(1, int(round(rect.h)))
    return cv2.resize(crop, (out_w, out_h), interpolation=cv2.INTER_LINEAR)


def open_camera(index: int = 0, width: int = 1920, height: int = 1080):
    if platform.system() == "Darwin":
        cap = cv2.VideoCapture(index, cv2.CAP_AVFOUNDATION)
    else:
        cap = cv2.VideoCapture(index)
    if not cap.isOpened():
        raise RuntimeError(
            f"Could not open camera index {index}. "
            "On macOS: System Settings -> Privacy & Security -> Camera -> allow your terminal."
        )

    # Best effort; drivers pick the closest supported mode.
    cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
    logger.info(
        "Camera %d opened at %dx%d",
        index,
        int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
        int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
    )
    return cap
