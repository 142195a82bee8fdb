"""
BLE Temperature main window (PyQt6 + pyqtgraph)
- Acquisition runs on a daemon worker thread hosting its own asyncio loop
- Samples reach the UI only through SampleChannel + RepaintSignal
- Status / failure go back to the UI thread through Qt signals

Usage:
  pip install -e .
  ble-temperature            # or: python temperature_app_main.py
  BLE_TEMP_LOG=debug ble-temperature

Exit code: 0 on normal close, 1 if acquisition died with a fatal error.
"""
from __future__ import annotations

import asyncio
import logging
import sys
import threading
from pathlib import Path
from typing import Any, Dict, Optional

import pyqtgraph as pg
from PyQt6.QtCore import QObject, pyqtSignal
from PyQt6.QtGui import QFont
from PyQt6.QtWidgets import QApplication, QLabel, QMainWindow, QVBoxLayout, QWidget

from controllers.temperature_controller import TemperatureController
from sensors import decoder
from sensors.backends import BleakBackend
from sensors.errors import AcquisitionError
from sensors.simulator import SimulatedSensor
from sensors.temperature_sensor import (
    DEFAULT_NAME_FILTER,
    DEFAULT_SCAN_DWELL_S,
    TEMPERATURE_MEASUREMENT,
    SensorState,
    TemperatureSensor,
)
from utils.channel import RepaintSignal, SampleChannel
from utils.config import load_config, section
from utils.logging_setup import setup_logging

logger = logging.getLogger(__name__)

_STATE_TEXT = {
    SensorState.ADAPTER_READY: "Adapter ready",
    SensorState.SCANNING: "Scanning…",
    SensorState.SELECTED: "Sensor found",
    SensorState.CONNECTED: "Connected",
    SensorState.DISCOVERED: "Services discovered",
    SensorState.SUBSCRIBED: "Subscribed",
    SensorState.STREAMING: "Streaming",
}


def build_source(cfg: Dict[str, Any], on_state=None):
    """Pick the sample producer from config: real BLE sensor or simulator."""
    kind = str(cfg.get("source", "ble")).lower()
    if kind == "simulator":
        sim = section(cfg, "simulator")
        return SimulatedSensor(
            period=float(sim.get("period_s", 1.0)),
            base=float(sim.get("base", 22.0)),
            amplitude=float(sim.get("amplitude", 3.0)),
        )
    if kind != "ble":
        raise ValueError(f"unknown source {kind!r}, expected 'ble' or 'simulator'")
    ble = section(cfg, "ble")
    return TemperatureSensor(
        BleakBackend(),
        name_filter=str(ble.get("name_filter", DEFAULT_NAME_FILTER)),
        scan_dwell=float(ble.get("scan_dwell_s", DEFAULT_SCAN_DWELL_S)),
        characteristic=int(ble.get("characteristic", TEMPERATURE_MEASUREMENT)),
        decoder_mode=str(ble.get("decoder", decoder.MODE_MILLIDEGREE)),
        on_state=on_state,
    )


def build_channel(cfg: Dict[str, Any]) -> SampleChannel:
    raw = section(cfg, "channel").get("maxsize", 0)
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ValueError(f"[channel] maxsize must be an integer, got {raw!r}")
    return SampleChannel(raw)


# ========== worker → UI bridge ==========
class WorkerSignals(QObject):
    status = pyqtSignal(str)
    failed = pyqtSignal(str)
    finished = pyqtSignal()


class AcquisitionWorker:
    """Runs source.run(emit, wake) once on a daemon thread; never restarted."""

    def __init__(self, source, channel: SampleChannel, repaint: RepaintSignal):
        self.source = source
        self.channel = channel
        self.repaint = repaint
        self.signals = WorkerSignals()
        self.error: Optional[BaseException] = None
        self._thread = threading.Thread(target=self._run, name="acquisition", daemon=True)
        if isinstance(source, TemperatureSensor) and source.on_state is None:
            source.on_state = self.report_state

    def start(self) -> None:
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    @property
    def fatal(self) -> bool:
        return self.error is not None

    def report_state(self, state: SensorState) -> None:
        text = _STATE_TEXT.get(state)
        if text:
            self.signals.status.emit(text)

    def _run(self) -> None:
        try:
            asyncio.run(self.source.run(self.channel.send, self.repaint.pulse))
        except AcquisitionError as e:
            self.error = e
            logger.error("acquisition failed: %s", e)
            self.signals.failed.emit(f"{type(e).__name__}: {e}")
        except Exception as e:
            self.error = e
            logger.exception("acquisition crashed")
            self.signals.failed.emit(f"{type(e).__name__}: {e}")
        else:
            self.signals.status.emit("Sensor stream ended")
        finally:
            self.signals.finished.emit()


# ========== main window ==========
class MainWindow(QMainWindow):
    def __init__(self, cfg: Dict[str, Any], channel: SampleChannel, repaint: RepaintSignal):
        super().__init__()
        ui_cfg = section(cfg, "ui")
        self.setWindowTitle(str(ui_cfg.get("window_title", "BLE Temperature")))
        self.resize(int(ui_cfg.get("width", 600)), int(ui_cfg.get("height", 400)))
        self.channel = channel

        central = QWidget(self)
        self.setCentralWidget(central)
        layout = QVBoxLayout(central)

        self.heading = QLabel("BLE Temperature")
        font = QFont()
        font.setPointSize(16)
        font.setBold(True)
        self.heading.setFont(font)
        layout.addWidget(self.heading)

        self.plot = pg.PlotWidget()
        layout.addWidget(self.plot, 1)

        self.controller = TemperatureController(
            plot_widget=self.plot,
            status_bar=self.statusBar(),
            channel=channel,
            repaint=repaint,
            cfg=cfg,
        )
        self.controller.set_status("Starting…")

    def attach_worker(self, worker: AcquisitionWorker) -> None:
        worker.signals.status.connect(self._on_status)
        worker.signals.failed.connect(self._on_failed)

    def _on_status(self, text: str) -> None:
        self.controller.set_status(text)

    def _on_failed(self, text: str) -> None:
        self.controller.set_status(f"⚠ {text}")

    def closeEvent(self, e):
        self.controller.stop()
        self.channel.close()
        return super().closeEvent(e)


def main(argv=None) -> int:
    setup_logging()
    argv = list(sys.argv if argv is None else argv)
    cfg_path = Path(argv[1]) if len(argv) > 1 else None
    cfg = load_config(cfg_path)

    # light theme
    pg.setConfigOptions(background="w", foreground="k", antialias=True)

    app = QApplication.instance() or QApplication(argv)
    try:
        channel = build_channel(cfg)
        source = build_source(cfg)
    except (ValueError, TypeError) as e:
        logger.error("bad configuration: %s", e)
        return 2
    repaint = RepaintSignal()
    w = MainWindow(cfg, channel, repaint)
    worker = AcquisitionWorker(source, channel, repaint)
    w.attach_worker(worker)

    w.show()
    w.controller.start()
    worker.start()
    rc = app.exec()

    if worker.fatal:
        return 1
    return rc


if __name__ == "__main__":
    sys.exit(main())
