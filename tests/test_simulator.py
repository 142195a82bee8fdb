import numpy as np
import pytest

from sensors.errors import ChannelClosed
from sensors.simulator import SimulatedSensor


@pytest.mark.asyncio
async def test_emits_count_samples_then_ends():
    sim = SimulatedSensor(period=0, base=20.0, amplitude=2.0, cycle=4, count=5)
    got, wakes = [], []
    await sim.run(got.append, lambda: wakes.append(1))
    assert len(got) == 5
    assert len(wakes) == 5
    assert got[0] == np.float32(20.0)
    assert got[1] == pytest.approx(22.0, abs=1e-5)
    assert got[4] == got[0]


@pytest.mark.asyncio
async def test_stops_when_channel_closed():
    sim = SimulatedSensor(period=0, count=None)
    got = []

    def emit(v):
        if len(got) == 3:
            raise ChannelClosed("closed")
        got.append(v)

    await sim.run(emit, lambda: None)
    assert len(got) == 3
    assert sim.samples == 3
