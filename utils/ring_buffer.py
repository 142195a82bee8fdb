# utils/ring_buffer.py
"""
Rolling window of the most recent temperature samples
- Fixed capacity (default 10), oldest sample evicted on overflow
- Arrival order preserved; owned by the UI thread only
"""
from collections import deque
from typing import Deque, Iterator, Tuple

import numpy as np


class RollingWindow:
    def __init__(self, capacity: int = 10):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._buf: Deque[float] = deque(maxlen=int(capacity))

    @property
    def capacity(self) -> int:
        return self._buf.maxlen

    @property
    def is_full(self) -> bool:
        return len(self._buf) >= self._buf.maxlen

    def append(self, sample: float) -> None:
        self._buf.append(sample)

    def clear(self) -> None:
        self._buf.clear()

    def values(self) -> np.ndarray:
        return np.asarray(self._buf, dtype=float)

    def y_range(self, include: Tuple[float, float] = (15.0, 30.0)) -> Tuple[float, float]:
        """Y limits covering both the include interval and every sample."""
        lo, hi = float(min(include)), float(max(include))
        if self._buf:
            lo = min(lo, float(min(self._buf)))
            hi = max(hi, float(max(self._buf)))
        return lo, hi

    def __len__(self) -> int:
        return len(self._buf)

    def __iter__(self) -> Iterator[float]:
        return iter(self._buf)
