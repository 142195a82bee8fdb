# sensors/temperature_sensor.py
"""
TemperatureSensor: BLE thermometer acquisition pipeline

  manager -> first adapter -> scan (2 s dwell) -> first peripheral whose
  local name contains "Temperature" -> connect -> discover services ->
  0x2A1C characteristic -> subscribe -> decode every notification

run(emit, wake) returns when the notification stream ends or the consumer
goes away; every other failure raises an AcquisitionError subclass.
There is no reconnect: one run is one session.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from typing import Callable, Optional

from bleak.uuids import normalize_uuid_16

from sensors import decoder
from sensors.backends import BleAdapter, BleBackend, BlePeripheral
from sensors.errors import (
    ChannelClosed,
    ConnectFailedError,
    DiscoverFailedError,
    NoAdapterError,
    NoBleStackError,
    NoCharacteristicError,
    NoSensorError,
    ScanFailedError,
    SubscribeFailedError,
)

logger = logging.getLogger(__name__)

TEMPERATURE_MEASUREMENT = 0x2A1C
DEFAULT_NAME_FILTER = "Temperature"
DEFAULT_SCAN_DWELL_S = 2.0


class SensorState(enum.Enum):
    INIT = "init"
    ADAPTER_READY = "adapter_ready"
    SCANNING = "scanning"
    SELECTED = "selected"
    CONNECTED = "connected"
    DISCOVERED = "discovered"
    SUBSCRIBED = "subscribed"
    STREAMING = "streaming"
    TERMINATED = "terminated"


def sensor_uuid(short: int) -> str:
    """Expand a 16-bit assigned number against the Bluetooth base UUID."""
    return normalize_uuid_16(short).lower()


class TemperatureSensor:
    def __init__(
        self,
        backend: BleBackend,
        name_filter: str = DEFAULT_NAME_FILTER,
        scan_dwell: float = DEFAULT_SCAN_DWELL_S,
        characteristic: int = TEMPERATURE_MEASUREMENT,
        decoder_mode: str = decoder.MODE_MILLIDEGREE,
        on_state: Optional[Callable[["SensorState"], None]] = None,
    ):
        self.backend = backend
        self.name_filter = name_filter
        self.scan_dwell = float(scan_dwell)
        self.char_uuid = sensor_uuid(characteristic)
        self.decoder_mode = decoder.check_mode(decoder_mode)
        self.on_state = on_state
        self.state = SensorState.INIT
        self.adapter: Optional[BleAdapter] = None
        self.sensor: Optional[BlePeripheral] = None
        self.samples = 0
        self.dropped = 0
        self._scanning = False

    def _enter(self, state: SensorState) -> None:
        self.state = state
        logger.debug("state -> %s", state.value)
        if self.on_state is not None:
            self.on_state(state)

    # ---- main protocol ----
    async def run(self, emit: Callable[[float], None], wake: Callable[[], None]) -> None:
        try:
            await self._acquire(emit, wake)
        finally:
            await self._stop_scan()
            if self.sensor is not None and self.state is not SensorState.SELECTED:
                await self._release()
            self._enter(SensorState.TERMINATED)

    async def _acquire(self, emit, wake) -> None:
        try:
            manager = await self.backend.manager()
        except NoBleStackError:
            raise
        except Exception as e:
            raise NoBleStackError(f"BLE manager unavailable: {e}") from e

        # get the first bluetooth adapter
        try:
            adapters = await manager.adapters()
        except Exception as e:
            raise NoAdapterError(f"adapter enumeration failed: {e}") from e
        if not adapters:
            raise NoAdapterError("no bluetooth adapter found")
        self.adapter = adapters[0]
        logger.info("using adapter: %s", self.adapter.name)
        self._enter(SensorState.ADAPTER_READY)

        try:
            await self.adapter.start_scan()
        except Exception as e:
            raise ScanFailedError(f"could not start scan: {e}") from e
        self._scanning = True
        self._enter(SensorState.SCANNING)
        await asyncio.sleep(self.scan_dwell)

        self.sensor = await self.find_sensor(self.adapter)
        self._enter(SensorState.SELECTED)
        await self._stop_scan()

        logger.info("connecting to sensor: %s", self.sensor.address)
        try:
            await self.sensor.connect()
        except Exception as e:
            raise ConnectFailedError(f"connect to {self.sensor.address} failed: {e}") from e
        self._enter(SensorState.CONNECTED)

        logger.info("discovering services")
        try:
            await self.sensor.discover_services()
        except Exception as e:
            raise DiscoverFailedError(f"service discovery failed: {e}") from e
        self._enter(SensorState.DISCOVERED)

        logger.info("locating temperature characteristic %s", self.char_uuid)
        uuids = [u.lower() for u in self.sensor.characteristics()]
        if self.char_uuid not in uuids:
            raise NoCharacteristicError(f"characteristic {self.char_uuid} not found")

        logger.info("subscribing to characteristic")
        try:
            await self.sensor.subscribe(self.char_uuid)
        except Exception as e:
            raise SubscribeFailedError(f"subscribe to {self.char_uuid} failed: {e}") from e
        self._enter(SensorState.SUBSCRIBED)

        await self._stream(emit, wake)

    async def _stream(self, emit, wake) -> None:
        self._enter(SensorState.STREAMING)
        async for data in self.sensor.notifications():
            temp = decoder.decode(data, self.decoder_mode)
            if temp is None:
                self.dropped += 1
                logger.debug("dropped %d-byte frame", len(data))
                continue
            try:
                emit(temp)
            except ChannelClosed:
                logger.info("sample consumer gone, stopping")
                return
            self.samples += 1
            wake()
        logger.info("notification stream ended after %d samples", self.samples)

    async def find_sensor(self, adapter: BleAdapter) -> BlePeripheral:
        for p in await adapter.peripherals():
            try:
                props = await p.properties()
            except Exception as e:
                logger.debug("no properties for %s: %s", p.address, e)
                continue
            if props is None or props.local_name is None:
                continue
            logger.info("discover sensor: %s", props.local_name)
            if self.name_filter in props.local_name:
                return p
        raise NoSensorError(f"no peripheral advertising a name containing {self.name_filter!r}")

    async def _stop_scan(self) -> None:
        if not self._scanning:
            return
        self._scanning = False
        try:
            await self.adapter.stop_scan()
        except Exception as e:
            logger.debug("stop scan failed: %s", e)

    async def _release(self) -> None:
        try:
            await self.sensor.disconnect()
        except Exception as e:
            logger.debug("disconnect failed: %s", e)
