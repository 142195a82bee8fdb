# sensors/simulator.py
"""Synthetic temperature source with the same run(emit, wake) contract as TemperatureSensor."""
from __future__ import annotations

import asyncio
import logging
import math
from typing import Callable, Optional

import numpy as np

from sensors.errors import ChannelClosed

logger = logging.getLogger(__name__)


class SimulatedSensor:
    """Slow sine wave around `base` °C, one sample per `period` seconds."""

    def __init__(self, period: float = 1.0, base: float = 22.0, amplitude: float = 3.0,
                 cycle: int = 30, count: Optional[int] = None):
        self.period = float(period)
        self.base = float(base)
        self.amplitude = float(amplitude)
        self.cycle = max(1, int(cycle))
        self.count = count
        self.samples = 0

    def value_at(self, i: int) -> np.float32:
        phase = 2 * math.pi * (i % self.cycle) / self.cycle
        return np.float32(self.base + self.amplitude * math.sin(phase))

    async def run(self, emit: Callable[[float], None], wake: Callable[[], None]) -> None:
        logger.info("simulated sensor started (period=%.2fs)", self.period)
        i = 0
        while self.count is None or i < self.count:
            try:
                emit(self.value_at(i))
            except ChannelClosed:
                logger.info("sample consumer gone, stopping")
                return
            self.samples += 1
            wake()
            i += 1
            await asyncio.sleep(self.period)
        logger.info("simulated sensor finished after %d samples", self.samples)
