"""Moving-average smoothing for jittery landmark coordinates."""

from __future__ import annotations

from collections import deque
from typing import Deque, Dict, Optional


class AveragePosition:
    """
    Keyed moving average.

    Each key keeps its own window of the last `size` values, so one instance can
    smooth several coordinates at once:

        avg = AveragePosition(6)
        x = avg("x8_hand0", raw_x)
        y = avg("y8_hand0", raw_y)

    `None` values are passed through and not recorded.
    """

    def __init__(self, size: int = 3) -> None:
        if size < 1:
            raise ValueError(f"size must be >= 1, got {size}")
        self.size = size
        self._queues: Dict[str, Deque[float]] = {}

    def __call__(self, key: str, value: Optional[float]) -> Optional[float]:
        if value is None:
            return None
        queue = self._queues.get(key)
        if queue is None:
            queue = deque(maxlen=self.size)
            self._queues[key] = queue
        queue.append(float(value))
        return sum(queue) / len(queue)

    def reset(self, key: Optional[str] = None) -> None:
        if key is None:
            self._queues.clear()
        else:
            self._queues.pop(key, None)

