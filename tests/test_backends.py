from types import SimpleNamespace

import pytest
from bleak.exc import BleakError

from sensors import backends
from sensors.backends import (
    BleakAdapter,
    BleakBackend,
    BleakManager,
    BleakPeripheral,
    list_hci_adapters,
)
from sensors.errors import NoBleStackError


def test_list_hci_adapters_sorted_by_index(tmp_path):
    for name in ("hci10", "hci1", "hci0", "rfkill3", "hci2:1"):
        (tmp_path / name).mkdir()
    assert list_hci_adapters(tmp_path) == ["hci0", "hci1", "hci10"]


def test_list_hci_adapters_missing_root(tmp_path):
    assert list_hci_adapters(tmp_path / "absent") == []


@pytest.mark.asyncio
async def test_manager_linux_uses_sysfs(monkeypatch):
    monkeypatch.setattr(backends.platform, "system", lambda: "Linux")
    monkeypatch.setattr(backends, "list_hci_adapters", lambda: ["hci0", "hci1"])
    adapters = await BleakManager().adapters()
    assert [a.name for a in adapters] == ["hci0", "hci1"]


@pytest.mark.asyncio
async def test_manager_linux_without_controllers(monkeypatch):
    monkeypatch.setattr(backends.platform, "system", lambda: "Linux")
    monkeypatch.setattr(backends, "list_hci_adapters", lambda: [])
    assert await BleakManager().adapters() == []


@pytest.mark.asyncio
async def test_manager_other_platforms_single_default(monkeypatch):
    monkeypatch.setattr(backends.platform, "system", lambda: "Darwin")
    adapters = await BleakManager().adapters()
    assert len(adapters) == 1
    assert adapters[0].name == "default"


@pytest.mark.asyncio
async def test_backend_maps_unsupported_platform(monkeypatch):
    def boom(*a, **kw):
        raise BleakError("Unsupported platform")
    monkeypatch.setattr(backends, "BleakScanner", boom)
    with pytest.raises(NoBleStackError):
        await BleakBackend().manager()


@pytest.mark.asyncio
async def test_adapter_peripherals_in_discovery_order():
    adapter = BleakAdapter("hci0")
    d1 = SimpleNamespace(address="AA:01", name=None)
    d2 = SimpleNamespace(address="AA:02", name="Room Temperature")
    adapter._scanner = SimpleNamespace(discovered_devices_and_advertisement_data={
        "AA:01": (d1, SimpleNamespace(local_name="Kitchen", rssi=-60)),
        "AA:02": (d2, SimpleNamespace(local_name=None, rssi=-70)),
    })
    ps = await adapter.peripherals()
    assert [p.address for p in ps] == ["AA:01", "AA:02"]
    props = [await p.properties() for p in ps]
    assert props[0].local_name == "Kitchen"
    # falls back to the device name when the advertisement has none
    assert props[1].local_name == "Room Temperature"


@pytest.mark.asyncio
async def test_adapter_before_scan_has_no_peripherals():
    assert await BleakAdapter().peripherals() == []


@pytest.mark.asyncio
async def test_peripheral_notifications_end_on_disconnect():
    p = BleakPeripheral(SimpleNamespace(address="AA:01", name=None), None)
    assert await p.properties() is None
    p._on_notify(None, bytearray(b"\x00\xd0\x5d\x00\x00"))
    p._on_notify(None, bytearray(b"\x00\x01"))
    p._on_disconnect(None)
    got = [d async for d in p.notifications()]
    assert got == [b"\x00\xd0\x5d\x00\x00", b"\x00\x01"]


def test_peripheral_characteristics_flattened():
    p = BleakPeripheral(SimpleNamespace(address="AA:01", name=None), None)
    assert p.characteristics() == []
    p._client = SimpleNamespace(services=[
        SimpleNamespace(characteristics=[SimpleNamespace(uuid="00002A19-0000-1000-8000-00805F9B34FB")]),
        SimpleNamespace(characteristics=[SimpleNamespace(uuid="00002a1c-0000-1000-8000-00805f9b34fb")]),
    ])
    assert p.characteristics() == [
        "00002a19-0000-1000-8000-00805f9b34fb",
        "00002a1c-0000-1000-8000-00805f9b34fb",
    ]


@pytest.mark.asyncio
async def test_backend_linux_without_bluez_is_no_ble_stack(monkeypatch):
    async def bus_down():
        raise FileNotFoundError("/run/dbus/system_bus_socket")
    monkeypatch.setattr(backends, "BleakScanner", lambda *a, **kw: None)
    monkeypatch.setattr(backends.platform, "system", lambda: "Linux")
    monkeypatch.setattr(backends, "check_bluez", bus_down)
    with pytest.raises(NoBleStackError) as exc:
        await BleakBackend().manager()
    assert isinstance(exc.value.__cause__, FileNotFoundError)


@pytest.mark.asyncio
async def test_backend_linux_with_bluez_returns_manager(monkeypatch):
    checked = []

    async def bus_up():
        checked.append(True)
    monkeypatch.setattr(backends, "BleakScanner", lambda *a, **kw: None)
    monkeypatch.setattr(backends.platform, "system", lambda: "Linux")
    monkeypatch.setattr(backends, "check_bluez", bus_up)
    assert isinstance(await BleakBackend().manager(), BleakManager)
    assert checked == [True]


@pytest.mark.asyncio
async def test_backend_skips_bluez_check_off_linux(monkeypatch):
    async def never():
        raise AssertionError("BlueZ checked on a non-Linux host")
    monkeypatch.setattr(backends, "BleakScanner", lambda *a, **kw: None)
    monkeypatch.setattr(backends.platform, "system", lambda: "Windows")
    monkeypatch.setattr(backends, "check_bluez", never)
    assert isinstance(await BleakBackend().manager(), BleakManager)
