from __future__ import annotations

import argparse
import os
import sys

import cv2

# Allow running without installing the package (repo-local usage).
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_ROOT = os.path.join(REPO_ROOT, "src")
if SRC_ROOT not in sys.path:
    sys.path.insert(0, SRC_ROOT)

from chronotope.config import MODES, SketchConfig, configure_logging  # noqa: E402
from chronotope.detector import create_detector  # noqa: E402
from chronotope.drawing import draw_marker, draw_point, draw_text  # noqa: E402
from chronotope.feed import compute_feed_layout  # noqa: E402
from chronotope.gestures import create_classifier  # noqa: E402
from chronotope.types import GestureState  # noqa: E402


def main() -> int:
    ap = argparse.ArgumentParser(description="Classify the selection gesture on a still image.")
    ap.add_argument("--image", required=True, help="Path to input image")
    ap.add_argument("--out", required=True, help="Path to output image (annotated)")
    ap.add_argument("--mode", choices=list(MODES), default="close", help="Gesture mode")
    ap.add_argument("--models-dir", default="models", help="Where MediaPipe Tasks models are stored")
    args = ap.parse_args()
    configure_logging("INFO")

    frame = cv2.imread(args.image)
    if frame is None:
        raise RuntimeError(f"Could not read image: {args.image}")

    config = SketchConfig(mode=args.mode, models_dir=args.models_dir)
    classifier = create_classifier(args.mode, config)
    h, w = frame.shape[:2]
    layout = compute_feed_layout(w, h, w, h)

    with create_detector(classifier.model, models_dir=args.models_dir) as detector:
        bodies = detector.detect(frame)
    reading = classifier.classify(bodies, layout)

    for pt in reading.guides.values():
        draw_point(frame, pt, color=(0, 255, 0), radius=6)
    if reading.centroid is not None:
        draw_marker(frame, reading.centroid, 12, (0, 0, 255), filled=reading.gesture is GestureState.SELECTING)
    draw_text(frame, f"{args.mode}: {reading.gesture.value}", (12, 28))

    ok = cv2.imwrite(args.out, frame)
    if not ok:
        raise RuntimeError(f"Could not write output image: {args.out}")

    print(f"bodies: {len(bodies)} gesture: {reading.gesture.value} centroid: {reading.centroid}")
    if reading.label is not None:
        print(f"label: {reading.label}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
