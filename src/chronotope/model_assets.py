from __future__ import annotations

import logging
import os
import ssl
import subprocess
import urllib.request
from typing import Dict

logger = logging.getLogger(__name__)


TASK_URLS: Dict[str, str] = {
    "hand": (
        "https://storage.googleapis.com/mediapipe-models/hand_landmarker/hand_landmarker/float16/latest/hand_landmarker.task"
    ),
    "pose": (
        "https://storage.googleapis.com/mediapipe-models/pose_landmarker/pose_landmarker_full/float16/latest/pose_landmarker_full.task"
    ),
    "gesture": (
        "https://storage.googleapis.com/mediapipe-models/gesture_recognizer/gesture_recognizer/float16/latest/gesture_recognizer.task"
    ),
}

TASK_FILENAMES: Dict[str, str] = {
    "hand": "hand_landmarker.task",
    "pose": "pose_landmarker_full.task",
    "gesture": "gesture_recognizer.task",
}


def default_model_path(kind: str, models_dir: str = "models") -> str:
    if kind not in TASK_FILENAMES:
        raise ValueError(f"Unknown model kind '{kind}'. Available: {sorted(TASK_FILENAMES)}")
    return os.path.join(models_dir, TASK_FILENAMES[kind])


def _remove_partial(model_path: str) -> None:
    try:
        if os.path.exists(model_path):
            os.remove(model_path)
    except OSError:
        logger.warning("Could not remove partial download %s", model_path)


def ensure_task_asset(model_path: str, url: str, *, timeout_s: int = 30) -> str:
    """
    Ensure a MediaPipe Tasks model file exists at `model_path`.

    If missing, attempts to download it from the official MediaPipe model bucket.
    """

    if os.path.exists(model_path):
        return model_path

    os.makedirs(os.path.dirname(model_path) or ".", exist_ok=True)
    logger.info("Downloading %s -> %s", url, model_path)

    # 1) Try Python download first.
    try:
        # Some macOS Python builds (notably from python.org) ship without root certificates,
        # resulting in CERTIFICATE_VERIFY_FAILED. Prefer certifi if available.
        try:
            import certifi  # type: ignore

            ctx = ssl.create_default_context(cafile=certifi.where())
        except ImportError:
            ctx = ssl.create_default_context()

        with urllib.request.urlopen(url, context=ctx, timeout=timeout_s) as r, open(model_path, "wb") as f:
            f.write(r.read())
    except Exception as e:
        logger.warning("Python download failed (%s), trying curl", e)
        _remove_partial(model_path)

        # 2) Fallback to curl. This often succeeds even when Python's SSL cert store is misconfigured.
        proc = None
        try:
            proc = subprocess.run(
                ["curl", "-L", "-o", model_path, url],
                check=False,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
            if proc.returncode == 0 and os.path.exists(model_path) and os.path.getsize(model_path) > 0:
                return model_path
        except OSError:
            proc = None

        _remove_partial(model_path)

        curl_hint = (
            f'  mkdir -p "{os.path.dirname(model_path) or "."}"\n'
            f'  curl -L -o "{model_path}" "{url}"\n'
        )
        curl_err = ""
        if proc is not None:
            curl_err = f"\n\ncurl stderr:\n{proc.stderr.strip()}\n"

        raise RuntimeError(
            "Missing MediaPipe Tasks model file and auto-download failed.\n\n"
            f"Expected model at: {model_path}\n"
            f"URL: {url}\n\n"
            "This is commonly caused by a Python SSL certificate issue (CERTIFICATE_VERIFY_FAILED).\n"
            "Download it manually:\n"
            f"{curl_hint}"
            f"{curl_err}"
        ) from e

    return model_path

