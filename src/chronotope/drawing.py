from __future__ import annotations

from typing import Iterable, Tuple

import cv2
import numpy as np

from .types import Rect


def draw_point(frame, pt: Tuple[int, int], color=(0, 0, 255), radius=5):
    cv2.circle(frame, (int(pt[0]), int(pt[1])), radius, color, -1, lineType=cv2.LINE_AA)
    return frame


def draw_marker(frame, center: Tuple[float, float], radius: int, color, filled: bool, thickness: int = 2):
    c = (int(round(center[0])), int(round(center[1])))
    cv2.circle(frame, c, radius, color, -1 if filled else thickness, lineType=cv2.LINE_AA)
    return frame


def draw_text(frame, text: str, org: Tuple[int, int], color=(255, 255, 255), scale=0.6, thickness=2):
    cv2.putText(frame, text, org, cv2.FONT_HERSHEY_SIMPLEX, scale, (0, 0, 0), thickness + 2, cv2.LINE_AA)
    cv2.putText(frame, text, org, cv2.FONT_HERSHEY_SIMPLEX, scale, color, thickness, cv2.LINE_AA)
    return frame


def draw_centered_text(frame, text: str, center: Tuple[float, float], color=(255, 255, 255), scale=0.8, thickness=2):
    (tw, th), _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, scale, thickness)
    org = (int(center[0] - tw / 2), int(center[1] + th / 2))
    return draw_text(frame, text, org, color=color, scale=scale, thickness=thickness)


def draw_polyline(frame, points: Iterable[Tuple[float, float]], color=(255, 255, 0), thickness=2, closed=False):
    pts = np.array([(int(x), int(y)) for x, y in points], dtype=np.int32)
    if pts.shape[0] < 2:
        return frame
    cv2.polylines(frame, [pts], closed, color, thickness, cv2.LINE_AA)
    return frame


def _dashed_line(frame, p0, p1, color, thickness: int, dash: int, gap: int) -> None:
    x0, y0 = p0
    x1, y1 = p1
    length = float(np.hypot(x1 - x0, y1 - y0))
    if length == 0:
        return
    ux = (x1 - x0) / length
    uy = (y1 - y0) / length
    pos = 0.0
    while pos < length:
        end = min(pos + dash, length)
        a = (int(round(x0 + ux * pos)), int(round(y0 + uy * pos)))
        b = (int(round(x0 + ux * end)), int(round(y0 + uy * end)))
        cv2.line(frame, a, b, color, thickness, cv2.LINE_AA)
        pos += dash + gap


def draw_dashed_rect(frame, rect: Rect, color=(0, 0, 255), thickness: int = 2, dash: int = 5, gap: int = 5):
    x0, y0, x1, y1 = rect.corners()
    for p0, p1 in (((x0, y0), (x1, y0)), ((x1, y0), (x1, y1)), ((x1, y1), (x0, y1)), ((x0, y1), (x0, y0))):
        _dashed_line(frame, p0, p1, color, thickness, dash, gap)
    return frame


def draw_rect_alpha(frame, rect: Rect, color_bgr, alpha: float):
    """Alpha-blend a solid rect on top of the frame."""
    x0, y0, x1, y1 = rect.corners()
    x0 = max(0, x0)
    y0 = max(0, y0)
    x1 = min(frame.shape[1], x1)
    y1 = min(frame.shape[0], y1)
    if x1 <= x0 or y1 <= y0 or alpha <= 0.0:
        return frame

    roi = frame[y0:y1, x0:x1]
    overlay = np.empty_like(roi)
    overlay[:, :] = color_bgr
    cv2.addWeighted(overlay, float(alpha), roi, float(1.0 - alpha), 0.0, dst=roi)
    return frame


def _clip(dst_shape, src_shape, x: int, y: int):
    h, w = src_shape[:2]
    H, W = dst_shape[:2]
    x0 = max(0, x)
    y0 = max(0, y)
    x1 = min(W, x + w)
    y1 = min(H, y + h)
    if x1 <= x0 or y1 <= y0:
        return None
    sx0 = x0 - x
    sy0 = y0 - y
    return (x0, y0, x1, y1), (sx0, sy0, sx0 + (x1 - x0), sy0 + (y1 - y0))


def blend_image_alpha(dst_bgr, src_bgr, x: int, y: int, alpha: float):
    """Alpha-blend `src_bgr` onto `dst_bgr` at top-left (x,y)."""
    if alpha <= 0.0:
        return dst_bgr
    if alpha >= 1.0:
        return paste_image(dst_bgr, src_bgr, x, y)
    clipped = _clip(dst_bgr.shape, src_bgr.shape, x, y)
    if clipped is None:
        return dst_bgr
    (x0, y0, x1, y1), (sx0, sy0, sx1, sy1) = clipped
    roi = dst_bgr[y0:y1, x0:x1]
    src = src_bgr[sy0:sy1, sx0:sx1]
    cv2.addWeighted(src, float(alpha), roi, float(1.0 - alpha), 0.0, dst=roi)
    return dst_bgr


def paste_image(dst_bgr, src_bgr, x: int, y: int):
    """Copy `src_bgr` onto `dst_bgr` at top-left (x,y), clipping at the borders."""
    clipped = _clip(dst_bgr.shape, src_bgr.shape, x, y)
    if clipped is None:
        return dst_bgr
    (x0, y0, x1, y1), (sx0, sy0, sx1, sy1) = clipped
    dst_bgr[y0:y1, x0:x1] = src_bgr[sy0:sy1, sx0:sx1]
    return dst_bgr


def draw_countdown(frame, number: int, center: Tuple[int, int] = (50, 50), radius: int = 30):
    cv2.circle(frame, center, radius, (255, 255, 255), 2, lineType=cv2.LINE_AA)
    return draw_centered_text(frame, str(number), center, scale=1.0, thickness=2)
