# controllers/temperature_controller.py
from __future__ import annotations
"""
TemperatureController —— sample channel → rolling window → pyqtgraph line
Depends on: PyQt6, pyqtgraph, numpy. Knows nothing about BLE: anything that
feeds the SampleChannel and pulses the RepaintSignal can drive it.
"""

import logging
from typing import Any, Dict, Optional, Tuple

import numpy as np
import pyqtgraph as pg
from PyQt6.QtCore import Qt, QTimer

from utils.channel import RepaintSignal, SampleChannel
from utils.config import section
from utils.ring_buffer import RollingWindow

logger = logging.getLogger(__name__)

LINE_COLOR = (100, 200, 100)
PLOT_NAME = "temperature"


class TemperatureController:
    """
    Owns the rolling window and the curve (UI thread only):
      - on_frame(): QTimer cadence, drains at most one sample
      - on_repaint(): same, triggered by the acquisition side
    """
    def __init__(
        self,
        plot_widget: pg.PlotWidget,
        status_bar,
        channel: SampleChannel,
        repaint: RepaintSignal,
        cfg: Optional[Dict[str, Any]] = None,
    ):
        ui_cfg = section(cfg or {}, "ui")
        self.plot = plot_widget
        self.status_bar = status_bar
        self.channel = channel
        self.repaint = repaint

        # --- settings ---
        self.window = RollingWindow(int(ui_cfg.get("window", 10)))
        inc = ui_cfg.get("y_include", [15.0, 30.0])
        self.y_include: Tuple[float, float] = (float(inc[0]), float(inc[1]))
        self.frame_ms = int(ui_cfg.get("frame_ms", 30))

        # --- plot ---
        self.plot.setObjectName(PLOT_NAME)
        self.plot.addLegend()
        self.plot.showGrid(x=True, y=True)
        item = self.plot.getPlotItem()
        item.hideAxis("bottom")
        item.showAxis("left")
        self.plot.setMouseEnabled(x=False, y=False)
        pen = pg.mkPen(color=LINE_COLOR, width=3, style=Qt.PenStyle.SolidLine)
        self.curve = self.plot.plot([], [], pen=pen, name="Temperature")
        self._apply_y_range()

        # --- wiring ---
        self.repaint.requested.connect(self.on_repaint)
        self.timer = QTimer()
        self.timer.timeout.connect(self.on_frame)

    # ---- frame loop ----
    def start(self) -> None:
        self.timer.start(self.frame_ms)

    def stop(self) -> None:
        self.timer.stop()

    def on_frame(self) -> None:
        self.poll_once()
        self.redraw()

    def on_repaint(self) -> None:
        self.repaint.acknowledge()
        self.on_frame()

    def poll_once(self) -> bool:
        temp = self.channel.poll()
        if temp is None:
            return False
        self.window.append(float(temp))
        return True

    def redraw(self) -> None:
        ys = self.window.values()
        xs = np.arange(ys.size, dtype=float)
        self.curve.setData(xs, ys)
        self._apply_y_range()

    def _apply_y_range(self) -> None:
        lo, hi = self.window.y_range(self.y_include)
        self.plot.setYRange(lo, hi, padding=0.05)
        if len(self.window) > 1:
            self.plot.setXRange(0, len(self.window) - 1, padding=0.02)

    def set_status(self, text: str) -> None:
        try:
            self.status_bar.showMessage(text)
        except RuntimeError:
            # status bar already deleted during shutdown
            logger.debug("status bar gone, dropped: %s", text)
