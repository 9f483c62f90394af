"""Sliding-window stability detection for weighbridge readings."""
from __future__ import annotations

import math
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional

STABILITY_WINDOW = 5
# Every sample in the window must sit closer than this to the window mean (kg).
STABILITY_TOLERANCE = 5.0


@dataclass(frozen=True, slots=True)
class WeightSample:
    value: float
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True, slots=True)
class WeightUpdate:
    weight: float
    stable: bool
    stable_weight: int
    simulation: bool
    timestamp: float


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class StabilityFilter:
    """Decide whether the last ``window`` samples have settled.

    The window slides on every sample. ``stable_weight`` only moves when the
    window is full and stable; otherwise it keeps the last settled value, so a
    passing disturbance never erases a captured reading.
    """

    def __init__(self, window: int = STABILITY_WINDOW, tolerance: float = STABILITY_TOLERANCE) -> None:
        if window < 1:
            raise ValueError("window must be at least 1")
        self._window = window
        self._tolerance = float(tolerance)
        self._buffer: Deque[float] = deque(maxlen=window)
        self._stable_weight = 0
        self._last: Optional[WeightUpdate] = None

    @property
    def stable_weight(self) -> int:
        return self._stable_weight

    @property
    def last_update(self) -> Optional[WeightUpdate]:
        return self._last

    @property
    def samples(self) -> tuple[float, ...]:
        return tuple(self._buffer)

    def reset(self) -> None:
        """Forget buffered samples; the remembered stable weight survives."""

        self._buffer.clear()

    def ingest(self, sample: WeightSample, *, simulation: bool = False) -> WeightUpdate:
        self._buffer.append(float(sample.value))

        stable = False
        if len(self._buffer) == self._window:
            mean = sum(self._buffer) / self._window
            stable = all(abs(value - mean) < self._tolerance for value in self._buffer)
            if stable:
                self._stable_weight = _round_half_up(mean)

        update = WeightUpdate(
            weight=sample.value,
            stable=stable,
            stable_weight=self._stable_weight,
            simulation=simulation,
            timestamp=sample.timestamp,
        )
        self._last = update
        return update


__all__ = [
    "STABILITY_TOLERANCE",
    "STABILITY_WINDOW",
    "StabilityFilter",
    "WeightSample",
    "WeightUpdate",
]
