"""Sliding window of recent throughput samples for the history graph."""

from __future__ import annotations

import math
from collections import deque
from collections.abc import Iterator
from typing import Any


def coerce_sample(value: Any) -> float:
    """Turn a raw throughput reading into a non-negative float.

    Missing, unparseable, negative and non-finite readings all count as 0 so
    that every poll advances the window by exactly one slot.
    """
    if isinstance(value, bool):
        return 0.0
    try:
        sample = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(sample) or sample < 0:
        return 0.0
    return sample


class HistoryBuffer:
    """Fixed-capacity FIFO of throughput samples, oldest first."""

    def __init__(self, capacity: int = 24) -> None:
        if capacity < 1:
            raise ValueError(f"history capacity must be at least 1, got {capacity}")
        self._samples: deque[float] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._samples.maxlen or 0

    def record(self, sample: Any) -> None:
        """Append a sample, evicting the oldest one once at capacity."""
        self._samples.append(coerce_sample(sample))

    def snapshot(self) -> tuple[float, ...]:
        return tuple(self._samples)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[float]:
        return iter(self.snapshot())
