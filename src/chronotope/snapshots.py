"""Developed snapshots, their fade-out, and the capture flash."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterator, List, Optional, Tuple

import numpy as np

from .config import FADE_DURATION_S, FADE_ENABLED, FADE_HOLD_S, FLASH_PEAK_OPACITY, SNAPSHOT_LIMIT
from .types import Rect
from .utils import clamp, map_range

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FadePolicy:
    """
    Opacity over a snapshot's lifetime.

    Fully opaque for `hold_s` seconds, then linearly down to 0 over `duration_s`.
    A short hold fades right after capture; a long one lets snapshots dwell.
    """

    enabled: bool = FADE_ENABLED
    hold_s: float = FADE_HOLD_S
    duration_s: float = FADE_DURATION_S

    def opacity(self, age_s: float) -> float:
        if not self.enabled or age_s <= self.hold_s:
            return 1.0
        if self.duration_s <= 0:
            return 0.0
        return clamp(map_range(age_s - self.hold_s, 0.0, self.duration_s, 1.0, 0.0), 0.0, 1.0)


@dataclass
class Snapshot:
    image: np.ndarray
    rect: Rect
    created_at: float


class SnapshotGallery:
    """Bounded, ordered collection of snapshots; the oldest is evicted first."""

    def __init__(self, capacity: int = SNAPSHOT_LIMIT, fade: Optional[FadePolicy] = None) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self.fade = fade or FadePolicy()
        self._items: Deque[Snapshot] = deque()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Snapshot]:
        return iter(self._items)

    def add(self, image: np.ndarray, rect: Rect, now: float) -> Snapshot:
        snap = Snapshot(image=image, rect=rect, created_at=now)
        self._items.append(snap)
        while len(self._items) > self.capacity:
            self._items.popleft()
            logger.debug("Snapshot limit %d reached, evicted the oldest", self.capacity)
        logger.info("Snapshot added (%d/%d)", len(self._items), self.capacity)
        return snap

    def visible(self, now: float) -> List[Tuple[Snapshot, float]]:
        """`(snapshot, opacity)` pairs, oldest first. Fully faded snapshots are dropped."""
        out: List[Tuple[Snapshot, float]] = []
        kept: Deque[Snapshot] = deque()
        for snap in self._items:
            opacity = self.fade.opacity(now - snap.created_at)
            if opacity <= 0.0:
                continue
            kept.append(snap)
            out.append((snap, opacity))
        if len(kept) != len(self._items):
            logger.debug("%d snapshot(s) faded out", len(self._items) - len(kept))
            self._items = kept
        return out

    def clear(self) -> None:
        self._items.clear()


@dataclass(frozen=True)
class Flash:
    """White overlay fading out over a freshly selected region."""

    rect: Rect
    started_at: float
    duration_s: float
    peak_opacity: float = FLASH_PEAK_OPACITY

    def opacity(self, now: float) -> Optional[float]:
        elapsed = now - self.started_at
        if elapsed >= self.duration_s or self.duration_s <= 0:
            return None
        return map_range(max(0.0, elapsed), 0.0, self.duration_s, self.peak_opacity, 0.0)
