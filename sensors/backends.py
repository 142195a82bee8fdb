# sensors/backends.py
"""
BLE backend seam
- Abstract async interface used by TemperatureSensor (manager -> adapters ->
  scan -> peripherals -> connect -> characteristics -> notifications)
- BleakBackend: the real implementation on top of bleak
Tests plug a fake backend in at this seam.
"""
from __future__ import annotations

import asyncio
import logging
import platform
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, List, Optional

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError

from sensors.errors import NoBleStackError

logger = logging.getLogger(__name__)

SYSFS_BLUETOOTH = Path("/sys/class/bluetooth")
_HCI_RE = re.compile(r"^hci(\d+)$")


@dataclass(frozen=True)
class PeripheralProperties:
    address: str
    local_name: Optional[str] = None
    rssi: Optional[int] = None


# ========== Interfaces ==========
class BlePeripheral(ABC):
    address: str

    @abstractmethod
    async def properties(self) -> Optional[PeripheralProperties]: ...

    @abstractmethod
    async def connect(self) -> None: ...

    @abstractmethod
    async def discover_services(self) -> None: ...

    @abstractmethod
    def characteristics(self) -> List[str]: ...

    @abstractmethod
    async def subscribe(self, uuid: str) -> None: ...

    @abstractmethod
    def notifications(self) -> AsyncIterator[bytes]: ...

    @abstractmethod
    async def disconnect(self) -> None: ...


class BleAdapter(ABC):
    name: str

    @abstractmethod
    async def start_scan(self) -> None: ...

    @abstractmethod
    async def stop_scan(self) -> None: ...

    @abstractmethod
    async def peripherals(self) -> List[BlePeripheral]: ...


class BleManager(ABC):
    @abstractmethod
    async def adapters(self) -> List[BleAdapter]: ...


class BleBackend(ABC):
    @abstractmethod
    async def manager(self) -> BleManager: ...


# ========== bleak ==========
def list_hci_adapters(root: Path = SYSFS_BLUETOOTH) -> List[str]:
    """hciN controller names known to the Linux kernel, by index."""
    if not root.is_dir():
        return []
    found = []
    for entry in root.iterdir():
        m = _HCI_RE.match(entry.name)
        if m:
            found.append((int(m.group(1)), entry.name))
    return [name for _, name in sorted(found)]


class BleakPeripheral(BlePeripheral):
    def __init__(self, device, advertisement, adapter: Optional[str] = None):
        self._device = device
        self._adv = advertisement
        self._adapter = adapter
        self._client: Optional[BleakClient] = None
        self._queue: "asyncio.Queue[Optional[bytes]]" = asyncio.Queue()
        self.address = device.address

    async def properties(self) -> Optional[PeripheralProperties]:
        if self._adv is None:
            return None
        name = self._adv.local_name or getattr(self._device, "name", None)
        return PeripheralProperties(self.address, name, getattr(self._adv, "rssi", None))

    def _on_disconnect(self, _client) -> None:
        logger.info("sensor %s disconnected", self.address)
        self._queue.put_nowait(None)

    def _on_notify(self, _sender, data: bytearray) -> None:
        self._queue.put_nowait(bytes(data))

    async def connect(self) -> None:
        kwargs = {"disconnected_callback": self._on_disconnect}
        if self._adapter:
            kwargs["adapter"] = self._adapter
        self._client = BleakClient(self._device, **kwargs)
        await self._client.connect()

    async def discover_services(self) -> None:
        # bleak resolves the GATT table during connect(); fail if it is empty
        if self._client is None or not self._client.is_connected:
            raise BleakError("not connected")
        if self._client.services is None:
            raise BleakError("service discovery returned nothing")

    def characteristics(self) -> List[str]:
        if self._client is None or self._client.services is None:
            return []
        return [
            char.uuid.lower()
            for service in self._client.services
            for char in service.characteristics
        ]

    async def subscribe(self, uuid: str) -> None:
        await self._client.start_notify(uuid, self._on_notify)

    async def notifications(self) -> AsyncIterator[bytes]:
        while True:
            data = await self._queue.get()
            if data is None:
                return
            yield data

    async def disconnect(self) -> None:
        if self._client is not None and self._client.is_connected:
            await self._client.disconnect()


class BleakAdapter(BleAdapter):
    def __init__(self, name: Optional[str] = None):
        self.name = name or "default"
        self._hci = name
        self._scanner: Optional[BleakScanner] = None

    async def start_scan(self) -> None:
        if self._hci:
            self._scanner = BleakScanner(adapter=self._hci)
        else:
            self._scanner = BleakScanner()
        await self._scanner.start()

    async def stop_scan(self) -> None:
        if self._scanner is not None:
            await self._scanner.stop()

    async def peripherals(self) -> List[BlePeripheral]:
        if self._scanner is None:
            return []
        seen = self._scanner.discovered_devices_and_advertisement_data
        return [BleakPeripheral(dev, adv, self._hci) for dev, adv in seen.values()]


class BleakManager(BleManager):
    async def adapters(self) -> List[BleAdapter]:
        if platform.system() == "Linux":
            return [BleakAdapter(name) for name in list_hci_adapters()]
        # CoreBluetooth / WinRT only expose the OS default controller
        return [BleakAdapter()]


async def check_bluez() -> None:
    """Connect to BlueZ over D-Bus; raises if the system bus or bluetoothd is down."""
    from bleak.backends.bluezdbus.manager import get_global_bluez_manager

    await get_global_bluez_manager()


class BleakBackend(BleBackend):
    async def manager(self) -> BleManager:
        try:
            # raises BleakError on platforms bleak has no backend for
            BleakScanner()
        except BleakError as e:
            raise NoBleStackError(f"BLE stack unavailable: {e}") from e
        if platform.system() == "Linux":
            try:
                await check_bluez()
            except Exception as e:
                raise NoBleStackError(f"BlueZ not reachable over D-Bus: {e}") from e
        return BleakManager()
