"""Synthetic weight feed used while no indicator is connected."""
from __future__ import annotations

import random
from typing import Callable, Optional

from weighbridge.core.log import get_logger
from weighbridge.core.scheduling import PeriodicTask

LOG = get_logger("simulation")

SIMULATION_BASELINE = 39170
SIMULATION_INTERVAL = 1.0
SIMULATION_STEP = 10


class SimulationGenerator:
    """Random walk around a loaded-truck baseline, one sample per tick."""

    def __init__(
        self,
        on_sample: Callable[[float], None],
        is_connected: Callable[[], bool],
        *,
        interval: float = SIMULATION_INTERVAL,
        baseline: int = SIMULATION_BASELINE,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._on_sample = on_sample
        self._is_connected = is_connected
        self._baseline = baseline
        self._base = baseline
        self._rng = rng or random.Random()
        self._task = PeriodicTask("weight-simulation", interval, self.tick)

    @property
    def running(self) -> bool:
        return self._task.running

    @property
    def value(self) -> int:
        return self._base

    def start(self) -> None:
        if self.running:
            return
        self._base = self._baseline
        self._task.start()
        LOG.warning("SIMULATION mode active")

    def stop(self) -> None:
        if not self.running:
            return
        self._task.stop()
        LOG.info("Simulation stopped")

    def tick(self) -> Optional[int]:
        if self._is_connected():
            self.stop()
            return None
        noise = self._rng.randint(-SIMULATION_STEP, SIMULATION_STEP)
        self._base = max(0, self._base + noise)
        self._on_sample(self._base)
        return self._base


__all__ = ["SIMULATION_BASELINE", "SimulationGenerator"]
