from __future__ import annotations

import argparse
import logging
import time
from typing import List, Optional

import cv2

from .config import MODES, PRESETS, SketchConfig, configure_logging, get_preset
from .feed import open_camera
from .sketch import Sketch

logger = logging.getLogger(__name__)

WINDOW_NAME = "CHRONOTOPE"


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Select a region of the webcam feed with a gesture and develop it into a fading snapshot."
    )
    ap.add_argument("--camera", type=int, default=0, help="Camera index (default: 0)")
    ap.add_argument("--width", type=int, default=1920, help="Capture width (best effort)")
    ap.add_argument("--height", type=int, default=1080, help="Capture height (best effort)")
    ap.add_argument("--canvas-width", type=int, default=1280, help="Canvas width in pixels")
    ap.add_argument("--canvas-height", type=int, default=720, help="Canvas height in pixels")
    ap.add_argument("--fullscreen", action="store_true", help="Open the window fullscreen")
    ap.add_argument(
        "--no-mirror",
        action="store_true",
        help="Disable horizontal mirroring (default is mirrored/selfie mode)",
    )
    ap.add_argument("--preset", default="close", choices=sorted(PRESETS), help="Starting configuration")
    ap.add_argument("--mode", choices=list(MODES), default=None, help="Gesture mode (overrides the preset)")
    ap.add_argument("--frame-threshold", type=int, default=None, help="Frames needed to confirm a gesture change")
    ap.add_argument("--min-size", type=float, default=None, help="Minimum snapshot size in pixels")
    ap.add_argument("--capacity", type=int, default=None, help="Maximum number of snapshots kept")
    ap.add_argument("--development-ms", type=float, default=None, help="Development (flash) duration in milliseconds")
    ap.add_argument("--no-fade", action="store_true", help="Keep snapshots forever")
    ap.add_argument("--fade-hold-s", type=float, default=None, help="Seconds before a snapshot starts fading")
    ap.add_argument("--fade-duration-s", type=float, default=None, help="Seconds a snapshot takes to fade out")
    ap.add_argument("--fit-to-height", action="store_true", help="Letterbox the feed instead of cropping it")
    ap.add_argument("--models-dir", default=None, help="Where MediaPipe Tasks models are stored")
    ap.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    return ap


def config_from_args(args: argparse.Namespace) -> SketchConfig:
    base = get_preset(args.preset)
    return base.with_overrides(
        mode=args.mode,
        frame_threshold=args.frame_threshold,
        min_snapshot_size=args.min_size,
        snapshot_limit=args.capacity,
        development_s=args.development_ms / 1000.0 if args.development_ms is not None else None,
        fade_enabled=False if args.no_fade else None,
        fade_hold_s=args.fade_hold_s,
        fade_duration_s=args.fade_duration_s,
        fit_to_height=True if args.fit_to_height else None,
        models_dir=args.models_dir,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    config = config_from_args(args)
    logger.info("Starting in %s mode (preset %s)", config.mode, args.preset)

    cap = open_camera(args.camera, args.width, args.height)

    cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)
    if args.fullscreen:
        cv2.setWindowProperty(WINDOW_NAME, cv2.WND_PROP_FULLSCREEN, cv2.WINDOW_FULLSCREEN)
    else:
        cv2.resizeWindow(WINDOW_NAME, args.canvas_width, args.canvas_height)

    try:
        with Sketch(config, canvas_size=(args.canvas_width, args.canvas_height)) as sketch:
            while True:
                ok, frame = cap.read()
                if not ok:
                    frame = None
                elif not args.no_mirror:
                    frame = cv2.flip(frame, 1)

                canvas = sketch.step(frame, time.monotonic())
                cv2.imshow(WINDOW_NAME, canvas)
                key = cv2.waitKey(1) & 0xFF
                if key != 0xFF and not sketch.handle_key(key):
                    break
    finally:
        cap.release()
        cv2.destroyAllWindows()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
